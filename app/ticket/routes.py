# app/ticket/routes.py
import logging

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import BadRequestError, PreconditionError
from app.settings import services as settings_service
from app.settings.schemas import MessageResponse
from app.ticket import services as ticket_service
from app.ticket.jira import JiraClient, TicketSourceFactory, jira_client_from_config
from app.ticket.schemas import (
    TICKET_KEY_PATTERN,
    TicketFetchRequest,
    TicketListResponse,
    TicketOut,
    TicketResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jira", tags=["JIRA"])


def get_ticket_source_factory() -> TicketSourceFactory:
    return jira_client_from_config


def open_jira_client(
    db: Session, settings: Settings, factory: TicketSourceFactory
) -> JiraClient:
    config = settings_service.get_jira_config(db, settings)
    if not config.is_configured:
        raise PreconditionError(
            "JIRA credentials not configured. Please configure in settings first."
        )
    return factory(config, settings)


def _to_out(db_ticket) -> TicketOut:
    data = ticket_service.to_ticket_data(db_ticket)
    return TicketOut(**data.model_dump(), fetched_at=db_ticket.fetched_at)


def _fetch_and_cache(
    ticket_id: str, db: Session, settings: Settings, factory: TicketSourceFactory
) -> TicketResponse:
    with open_jira_client(db, settings, factory) as client:
        ticket = client.fetch_ticket(ticket_id)
    db_ticket = ticket_service.upsert_ticket(db, ticket)
    logger.info("Ticket %s fetched and cached", ticket_id)
    return TicketResponse(
        data=_to_out(db_ticket), cached=False, message="Ticket fetched from JIRA"
    )


@router.get("/fetch/{ticket_id}", response_model=TicketResponse)
def fetch(
    ticket_id: str = Path(..., pattern=TICKET_KEY_PATTERN),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    factory: TicketSourceFactory = Depends(get_ticket_source_factory),
):
    return _fetch_and_cache(ticket_id, db, settings, factory)


@router.post("/fetch", response_model=TicketResponse)
def fetch_body(
    payload: TicketFetchRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    factory: TicketSourceFactory = Depends(get_ticket_source_factory),
):
    return _fetch_and_cache(payload.ticket_id, db, settings, factory)


@router.get("/ticket/{ticket_id}", response_model=TicketResponse)
def get(
    ticket_id: str = Path(..., pattern=TICKET_KEY_PATTERN),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    factory: TicketSourceFactory = Depends(get_ticket_source_factory),
):
    cached = ticket_service.get_ticket(db, ticket_id)
    if cached:
        return TicketResponse(
            data=_to_out(cached), cached=True, message="Ticket retrieved from cache"
        )
    logger.info("Ticket %s not in cache, fetching from JIRA", ticket_id)
    return _fetch_and_cache(ticket_id, db, settings, factory)


@router.get("/recent", response_model=TicketListResponse)
def recent(
    limit: int = Query(default=5, ge=1, le=100),
    db: Session = Depends(get_db),
):
    items = [_to_out(t) for t in ticket_service.list_recent(db, limit)]
    return TicketListResponse(data=items, count=len(items))


@router.get("/search", response_model=TicketListResponse)
def search(
    q: str = Query(default="", description="Matches key, summary or description"),
    db: Session = Depends(get_db),
):
    if len(q.strip()) < 2:
        raise BadRequestError("Search query must be at least 2 characters")
    items = [_to_out(t) for t in ticket_service.search_tickets(db, q.strip())]
    return TicketListResponse(data=items, count=len(items))


@router.delete("/ticket/{ticket_id}", response_model=MessageResponse)
def delete(
    ticket_id: str = Path(..., pattern=TICKET_KEY_PATTERN),
    db: Session = Depends(get_db),
):
    ticket_service.delete_ticket(db, ticket_id)
    return MessageResponse(message=f"Ticket {ticket_id} removed from cache")
