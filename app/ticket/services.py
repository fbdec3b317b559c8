# app/ticket/services.py
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.ticket.models import Ticket, utcnow
from app.ticket.schemas import TicketData

logger = logging.getLogger(__name__)


def get_ticket(db: Session, ticket_key: str) -> Ticket | None:
    return db.query(Ticket).filter(Ticket.ticket_key == ticket_key).first()


def upsert_ticket(db: Session, data: TicketData) -> Ticket:
    """Insert the ticket or overwrite the cached copy, refreshing fetched_at.

    Concurrent writers for the same key resolve as last-write-wins.
    """
    values = {
        "summary": data.summary,
        "description": data.description,
        "priority": data.priority,
        "status": data.status,
        "assignee": data.assignee,
        "labels": list(data.labels),
        "acceptance_criteria": data.acceptance_criteria,
        "attachments": [a.model_dump() for a in data.attachments],
        "raw_data": data.model_dump(),
        "fetched_at": utcnow(),
    }
    db_ticket = get_ticket(db, data.key)
    if db_ticket is None:
        db_ticket = Ticket(ticket_key=data.key, **values)
        db.add(db_ticket)
        try:
            db.commit()
        except IntegrityError:
            # another writer inserted the key first; overwrite its row
            db.rollback()
            logger.info("Ticket %s inserted concurrently, updating instead", data.key)
            db_ticket = _overwrite(db, get_ticket(db, data.key), values)
    else:
        db_ticket = _overwrite(db, db_ticket, values)
    db.refresh(db_ticket)
    logger.info("Ticket %s saved to cache", data.key)
    return db_ticket


def _overwrite(db: Session, db_ticket: Ticket, values: dict) -> Ticket:
    for field, value in values.items():
        setattr(db_ticket, field, value)
    db.commit()
    return db_ticket


def to_ticket_data(db_ticket: Ticket) -> TicketData:
    return TicketData(
        key=db_ticket.ticket_key,
        summary=db_ticket.summary or "",
        description=db_ticket.description or "",
        priority=db_ticket.priority or "Unknown",
        status=db_ticket.status or "Unknown",
        assignee=db_ticket.assignee or "Unassigned",
        labels=db_ticket.labels or [],
        acceptance_criteria=db_ticket.acceptance_criteria or "",
        attachments=db_ticket.attachments or [],
    )


def list_recent(db: Session, limit: int = 5) -> list[Ticket]:
    return (
        db.query(Ticket)
        .order_by(Ticket.fetched_at.desc(), Ticket.id.desc())
        .limit(limit)
        .all()
    )


def search_tickets(db: Session, query: str) -> list[Ticket]:
    pattern = f"%{query}%"
    return (
        db.query(Ticket)
        .filter(
            or_(
                Ticket.ticket_key.ilike(pattern),
                Ticket.summary.ilike(pattern),
                Ticket.description.ilike(pattern),
            )
        )
        .order_by(Ticket.fetched_at.desc(), Ticket.id.desc())
        .all()
    )


def count_tickets(db: Session) -> int:
    return db.query(Ticket).count()


def delete_ticket(db: Session, ticket_key: str) -> None:
    db_ticket = get_ticket(db, ticket_key)
    if not db_ticket:
        raise NotFoundError("Ticket")
    db.delete(db_ticket)
    db.commit()
    logger.info("Ticket %s deleted from cache", ticket_key)
