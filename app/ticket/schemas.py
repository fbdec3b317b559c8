# app/ticket/schemas.py
from datetime import datetime

from pydantic import Field

from app.core.schemas import APIModel

TICKET_KEY_PATTERN = r"^[A-Z][A-Z0-9]*-\d+$"


class Attachment(APIModel):
    filename: str
    content_type: str | None = None
    size: int = 0
    url: str | None = None


class TicketData(APIModel):
    """Normalized ticket as returned by the tracker and stored in the cache."""

    key: str
    summary: str = ""
    description: str = ""
    priority: str = "Unknown"
    status: str = "Unknown"
    assignee: str = "Unassigned"
    labels: list[str] = Field(default_factory=list)
    acceptance_criteria: str = ""
    attachments: list[Attachment] = Field(default_factory=list)


class TicketOut(TicketData):
    fetched_at: datetime | None = None


class TicketFetchRequest(APIModel):
    ticket_id: str = Field(..., pattern=TICKET_KEY_PATTERN)


class TicketResponse(APIModel):
    success: bool = True
    data: TicketOut
    cached: bool
    message: str


class TicketListResponse(APIModel):
    success: bool = True
    data: list[TicketOut]
    count: int
