# app/testplan/routes.py
import json
import logging
from contextlib import closing

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import Database, get_database, get_db
from app.core.errors import NotFoundError
from app.settings.schemas import MessageResponse
from app.testplan import services as history_service
from app.testplan.orchestrator import TestPlanService
from app.testplan.providers.factory import ProviderFactory, get_provider_factory
from app.testplan.schemas import (
    GenerateRequest,
    GenerateSyncData,
    GenerateSyncResponse,
    HistoryListResponse,
    HistoryResponse,
)
from app.ticket.jira import TicketSourceFactory
from app.ticket.routes import get_ticket_source_factory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/testplan", tags=["Test Plans"])


def sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.post("/generate")
def generate(
    payload: GenerateRequest,
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
    ticket_source_factory: TicketSourceFactory = Depends(get_ticket_source_factory),
):
    logger.info(
        "Test plan generation requested (ticket=%s, provider=%s)",
        payload.ticket_id, payload.provider,
    )

    # The session lives as long as the stream; a client disconnect closes the
    # generator, which closes the provider stream and the session.
    def event_stream():
        with database.session() as db:
            service = TestPlanService(db, settings, provider_factory, ticket_source_factory)
            events = service.generate(payload.ticket_id, payload.template_id, payload.provider)
            with closing(events):
                for event in events:
                    yield sse(event.model_dump(exclude_none=True))
                    if event.is_terminal:
                        break
        yield sse({"type": "done"})

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/generate-sync", response_model=GenerateSyncResponse)
def generate_sync(
    payload: GenerateRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
    ticket_source_factory: TicketSourceFactory = Depends(get_ticket_source_factory),
):
    service = TestPlanService(db, settings, provider_factory, ticket_source_factory)
    content = service.generate_sync(payload.ticket_id, payload.template_id, payload.provider)
    return GenerateSyncResponse(
        data=GenerateSyncData(
            content=content, ticket_id=payload.ticket_id, provider=payload.provider
        )
    )


@router.get("/history", response_model=HistoryListResponse)
def history(
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    items = history_service.list_history(db, limit)
    return HistoryListResponse(data=items, count=len(items))


@router.get("/history/{history_id}", response_model=HistoryResponse)
def get_history(history_id: int, db: Session = Depends(get_db)):
    item = history_service.get_history(db, history_id)
    if not item:
        raise NotFoundError("Test plan")
    return HistoryResponse(data=item)


@router.delete("/history/{history_id}", response_model=MessageResponse)
def delete_history(history_id: int, db: Session = Depends(get_db)):
    history_service.delete_history(db, history_id)
    return MessageResponse(message="Test plan deleted successfully")


@router.get("/history/{history_id}/export")
def export_history(history_id: int, db: Session = Depends(get_db)):
    item = history_service.get_history(db, history_id)
    if not item:
        raise NotFoundError("Test plan")
    filename = f"test-plan-{item.ticket_key}-{item.id}.md"
    return Response(
        content=item.generated_content,
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
