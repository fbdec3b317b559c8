# app/ticket/models.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Ticket(Base):
    __tablename__ = "jira_tickets"

    id = Column(Integer, primary_key=True, index=True)
    ticket_key = Column(String, unique=True, index=True, nullable=False)
    summary = Column(String, default="")
    description = Column(Text, default="")
    priority = Column(String, default="Unknown")
    status = Column(String, default="Unknown")
    assignee = Column(String, default="Unassigned")
    labels = Column(JSON, default=list)
    acceptance_criteria = Column(Text, default="")
    attachments = Column(JSON, default=list)
    raw_data = Column(JSON, nullable=True)
    fetched_at = Column(DateTime(timezone=True), default=utcnow, index=True)
