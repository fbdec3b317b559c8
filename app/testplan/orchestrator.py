# app/testplan/orchestrator.py
"""
Test plan generation pipeline.

resolve ticket -> resolve template -> stream from provider -> save history.
Each stage reports a progress event; the stream ends with exactly one
``complete`` or ``error`` event.
"""
import logging
from collections.abc import Iterator
from contextlib import closing

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import AppError, InternalError, NotFoundError, PreconditionError, error_from_code
from app.settings import services as settings_service
from app.template import services as template_service
from app.template.models import Template
from app.testplan import services as history_service
from app.testplan.providers.base import complete_event, error_event, progress_event
from app.testplan.providers.factory import ProviderFactory, create_provider
from app.testplan.schemas import GenerationContext, StreamEvent
from app.ticket import services as ticket_service
from app.ticket.jira import TicketSourceFactory, jira_client_from_config
from app.ticket.schemas import TicketData

logger = logging.getLogger(__name__)


class TestPlanService:
    __test__ = False

    def __init__(
        self,
        db: Session,
        settings: Settings,
        provider_factory: ProviderFactory = create_provider,
        ticket_source_factory: TicketSourceFactory = jira_client_from_config,
    ):
        self.db = db
        self.settings = settings
        self.provider_factory = provider_factory
        self.ticket_source_factory = ticket_source_factory

    def generate(
        self,
        ticket_id: str,
        template_id: int | None = None,
        provider: str = "groq",
    ) -> Iterator[StreamEvent]:
        logger.info(
            "Starting test plan generation (ticket=%s, provider=%s, template=%s)",
            ticket_id, provider, template_id,
        )
        try:
            yield progress_event("Fetching JIRA ticket...", 5)
            ticket = self._resolve_ticket(ticket_id)
            yield progress_event(f"Ticket found: {ticket.summary}", 15)

            yield progress_event("Loading template...", 20)
            template = self._resolve_template(template_id)
            yield progress_event("Template loaded", 25)

            llm_config = settings_service.get_llm_config(self.db, self.settings)
            provider_config = settings_service.get_provider_config(self.db, self.settings, provider)
            context = GenerationContext(
                ticket=ticket,
                template=template.content or "",
                temperature=provider_config.temperature,
            )
            yield progress_event(f"Generating with {provider}...", 30)
            llm = self.provider_factory(provider, llm_config)
        except AppError as e:
            logger.warning("Test plan generation aborted for %s: %s", ticket_id, e.message)
            yield error_event(e)
            return
        except Exception:
            logger.exception("Test plan generation failed for %s", ticket_id)
            yield error_event(InternalError("Generation failed"))
            return

        parts: list[str] = []
        final_payload = ""
        try:
            with closing(llm.generate(context)) as events:
                for event in events:
                    if event.type == "error":
                        logger.warning("Provider %s failed for %s: %s", provider, ticket_id, event.data)
                        yield event
                        return
                    if event.type == "complete":
                        final_payload = event.data
                        break
                    if event.type == "content":
                        parts.append(event.data)
                    yield event
        except AppError as e:
            logger.warning("Provider %s raised for %s: %s", provider, ticket_id, e.message)
            yield error_event(e)
            return
        except Exception:
            logger.exception("Provider %s crashed for %s", provider, ticket_id)
            yield error_event(InternalError("Generation failed"))
            return

        # the accumulated fragments are authoritative; a bare final payload
        # only counts when the provider sent no content events at all
        full_text = "".join(parts) if parts else final_payload

        if full_text:
            yield progress_event("Saving to history...", 95)
            self._save_history(ticket.key, template.id, provider, full_text)

        yield complete_event(full_text)

    def generate_sync(
        self,
        ticket_id: str,
        template_id: int | None = None,
        provider: str = "groq",
    ) -> str:
        """Drain ``generate`` and return the final text, raising on a terminal error."""
        for event in self.generate(ticket_id, template_id, provider):
            if event.type == "error":
                raise error_from_code(event.code, event.data)
            if event.type == "complete":
                return event.data
        raise InternalError("Generation ended without a result")

    def _resolve_ticket(self, ticket_id: str) -> TicketData:
        cached = ticket_service.get_ticket(self.db, ticket_id)
        if cached is not None:
            logger.info("Using cached ticket %s", ticket_id)
            return ticket_service.to_ticket_data(cached)

        config = settings_service.get_jira_config(self.db, self.settings)
        if not config.is_configured:
            raise PreconditionError(
                "Ticket not in cache and JIRA not configured. Please configure JIRA settings first."
            )
        with self.ticket_source_factory(config, self.settings) as client:
            ticket = client.fetch_ticket(ticket_id)
        ticket_service.upsert_ticket(self.db, ticket)
        return ticket

    def _resolve_template(self, template_id: int | None) -> Template:
        template = None
        if template_id is not None:
            template = template_service.get_template(self.db, template_id)
        if template is None:
            template = template_service.get_default_template(self.db)
        if template is None:
            raise NotFoundError("Template")
        return template

    def _save_history(self, ticket_key: str, template_id: int, provider: str, content: str) -> None:
        # the plan was already streamed; a failed write is logged and the run
        # still completes
        try:
            history_service.create_history(self.db, ticket_key, template_id, provider, content)
        except Exception:
            self.db.rollback()
            logger.exception("Failed to save test plan for %s to history", ticket_key)
