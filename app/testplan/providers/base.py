# app/testplan/providers/base.py
from abc import ABC, abstractmethod
from collections.abc import Iterator

from app.core.errors import AppError
from app.settings.schemas import ConnectionResult
from app.testplan.schemas import GenerationContext, StreamEvent


def progress_event(message: str, progress: int) -> StreamEvent:
    return StreamEvent(type="progress", data=message, progress=progress)


def content_event(text: str, progress: int | None = None) -> StreamEvent:
    return StreamEvent(type="content", data=text, progress=progress)


def complete_event(text: str) -> StreamEvent:
    return StreamEvent(type="complete", data=text, progress=100)


def error_event(error: AppError) -> StreamEvent:
    return StreamEvent(type="error", data=error.message, code=error.code)


class LLMProvider(ABC):
    """A backend that turns a generation context into a stream of events."""

    name: str

    @abstractmethod
    def generate(self, context: GenerationContext) -> Iterator[StreamEvent]:
        """Yield progress/content events ending with exactly one complete or error.

        The iterator is single-pass; closing it early must release the
        upstream connection.
        """

    @abstractmethod
    def test_connection(self) -> ConnectionResult:
        """Lightweight reachability check. Never raises for expected failures."""

    @abstractmethod
    def list_models(self) -> list[str]:
        pass
