# app/testplan/schemas.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.core.schemas import APIModel
from app.settings.schemas import ProviderName
from app.ticket.schemas import TICKET_KEY_PATTERN, TicketData

EventType = Literal["progress", "content", "complete", "error"]


class StreamEvent(BaseModel):
    """One unit of a generation stream.

    ``complete`` and ``error`` are terminal: nothing follows them.
    ``code`` is only set on ``error`` events.
    """

    type: EventType
    data: str = ""
    progress: int | None = None
    code: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type in ("complete", "error")


class GenerationContext(BaseModel):
    """Per-request bundle handed to a provider; never persisted."""

    model_config = ConfigDict(frozen=True)

    ticket: TicketData
    template: str
    temperature: float | None = None


class GenerateRequest(APIModel):
    ticket_id: str = Field(..., pattern=TICKET_KEY_PATTERN)
    template_id: int | None = Field(default=None, ge=1)
    provider: ProviderName


class GenerateSyncData(APIModel):
    content: str
    ticket_id: str
    provider: ProviderName


class GenerateSyncResponse(APIModel):
    success: bool = True
    data: GenerateSyncData


class HistoryOut(APIModel):
    id: int
    ticket_key: str
    ticket_id: int | None = None
    template_id: int | None = None
    llm_provider: str
    generated_content: str
    created_at: datetime | None = None
    ticket_summary: str


class HistoryListResponse(APIModel):
    success: bool = True
    data: list[HistoryOut]
    count: int


class HistoryResponse(APIModel):
    success: bool = True
    data: HistoryOut
