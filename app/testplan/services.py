# app/testplan/services.py
"""History store: an append-only log of generated test plans."""
import logging

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.testplan.models import TestPlanHistory
from app.testplan.schemas import HistoryOut
from app.ticket import services as ticket_service

logger = logging.getLogger(__name__)


def create_history(
    db: Session,
    ticket_key: str,
    template_id: int | None,
    provider: str,
    content: str,
) -> TestPlanHistory:
    db_ticket = ticket_service.get_ticket(db, ticket_key)
    record = TestPlanHistory(
        ticket_key=ticket_key,
        ticket_id=db_ticket.id if db_ticket else None,
        template_id=template_id,
        llm_provider=provider,
        generated_content=content,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Test plan %s saved for %s (%s)", record.id, ticket_key, provider)
    return record


def to_history_out(record: TestPlanHistory) -> HistoryOut:
    summary = record.ticket.summary if record.ticket is not None else None
    return HistoryOut(
        id=record.id,
        ticket_key=record.ticket_key,
        ticket_id=record.ticket_id,
        template_id=record.template_id,
        llm_provider=record.llm_provider,
        generated_content=record.generated_content,
        created_at=record.created_at,
        ticket_summary=summary or record.ticket_key,
    )


def list_history(db: Session, limit: int = 20) -> list[HistoryOut]:
    records = (
        db.query(TestPlanHistory)
        .order_by(TestPlanHistory.created_at.desc(), TestPlanHistory.id.desc())
        .limit(limit)
        .all()
    )
    return [to_history_out(r) for r in records]


def get_history(db: Session, history_id: int) -> HistoryOut | None:
    record = db.get(TestPlanHistory, history_id)
    return to_history_out(record) if record else None


def delete_history(db: Session, history_id: int) -> None:
    record = db.get(TestPlanHistory, history_id)
    if record is None:
        raise NotFoundError("Test plan")
    db.delete(record)
    db.commit()
    logger.info("Test plan %s deleted from history", history_id)
