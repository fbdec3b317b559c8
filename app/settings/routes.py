# app/settings/routes.py
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import AppError
from app.settings import services as settings_service
from app.settings.schemas import (
    ConnectionResult,
    GroqSettingsOut,
    JiraSettingsIn,
    JiraSettingsOut,
    LLMSettingsIn,
    LLMSettingsOut,
    MessageResponse,
    OllamaSettingsOut,
    ProviderName,
    ProviderTestRequest,
)
from app.testplan.providers.factory import ProviderFactory, get_provider_factory
from app.ticket.jira import TicketSourceFactory
from app.ticket.routes import get_ticket_source_factory, open_jira_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("/jira", response_model=JiraSettingsOut)
def get_jira(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    config = settings_service.get_jira_config(db, settings)
    return JiraSettingsOut(
        base_url=config.base_url,
        username=config.username,
        is_connected=config.is_connected,
        has_credentials=config.is_configured,
    )


@router.post("/jira", response_model=MessageResponse)
def save_jira(
    payload: JiraSettingsIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    settings_service.save_jira_settings(db, settings, payload)
    return MessageResponse(message="JIRA settings saved successfully")


@router.post("/jira/test", response_model=ConnectionResult)
def test_jira(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    factory: TicketSourceFactory = Depends(get_ticket_source_factory),
):
    try:
        with open_jira_client(db, settings, factory) as client:
            result = client.test_connection()
    except AppError:
        settings_service.set_jira_connected(db, False)
        raise
    settings_service.set_jira_connected(db, True)
    return ConnectionResult(**result)


@router.get("/llm", response_model=LLMSettingsOut)
def get_llm(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    config = settings_service.get_llm_config(db, settings)
    return LLMSettingsOut(
        provider=config.provider,
        groq=GroqSettingsOut(
            model=config.groq.model,
            temperature=config.groq.temperature,
            has_api_key=bool(config.groq.api_key),
        ),
        ollama=OllamaSettingsOut(base_url=config.ollama.base_url, model=config.ollama.model),
    )


@router.post("/llm", response_model=MessageResponse)
def save_llm(
    payload: LLMSettingsIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    settings_service.save_llm_settings(db, settings, payload)
    return MessageResponse(message="LLM settings saved successfully")


@router.get("/llm/models", response_model=list[str])
def list_models(
    provider: ProviderName = Query(default="ollama"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    config = settings_service.get_llm_config(db, settings)
    return provider_factory(provider, config).list_models()


@router.post("/llm/test", response_model=ConnectionResult)
def test_llm(
    payload: ProviderTestRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    config = settings_service.get_llm_config(db, settings)
    result = provider_factory(payload.provider, config).test_connection()
    logger.info("LLM connection test for %s: %s", payload.provider, result.success)
    return result
