# app/settings/services.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import BadRequestError
from app.core.security import get_secret_box
from app.settings.models import AppSettings
from app.settings.schemas import (
    GroqConfig,
    JiraConfig,
    JiraSettingsIn,
    LLMConfig,
    LLMSettingsIn,
    OllamaConfig,
)

logger = logging.getLogger(__name__)


def get_settings_row(db: Session) -> AppSettings:
    row = db.get(AppSettings, 1)
    if row is None:
        db.add(AppSettings(id=1))
        try:
            db.commit()
        except IntegrityError:
            # created by a concurrent request
            db.rollback()
        row = db.get(AppSettings, 1)
    return row


def _decrypt(settings: Settings, value: str | None) -> str:
    if not value:
        return ""
    try:
        return get_secret_box(settings.ENCRYPTION_KEY).decrypt(value)
    except ValueError:
        logger.warning("Failed to decrypt stored secret, treating it as empty")
        return ""


def _encrypt(settings: Settings, value: str) -> str:
    return get_secret_box(settings.ENCRYPTION_KEY).encrypt(value)


def get_jira_config(db: Session, settings: Settings) -> JiraConfig:
    row = get_settings_row(db)
    return JiraConfig(
        base_url=row.jira_base_url or settings.JIRA_BASE_URL,
        username=row.jira_username or settings.JIRA_USERNAME,
        api_token=_decrypt(settings, row.jira_api_token) or settings.JIRA_API_TOKEN,
        is_connected=bool(row.jira_connected),
    )


def get_llm_config(db: Session, settings: Settings) -> LLMConfig:
    row = get_settings_row(db)
    groq_temperature = row.groq_temperature
    if groq_temperature is None:
        groq_temperature = settings.GROQ_TEMPERATURE
    return LLMConfig(
        provider=row.llm_provider or "groq",
        groq=GroqConfig(
            api_key=_decrypt(settings, row.groq_api_key) or settings.GROQ_API_KEY,
            model=row.groq_model or settings.GROQ_MODEL,
            temperature=groq_temperature,
            base_url=settings.GROQ_BASE_URL,
            timeout=settings.GROQ_TIMEOUT,
        ),
        ollama=OllamaConfig(
            base_url=row.ollama_base_url or settings.OLLAMA_BASE_URL,
            model=row.ollama_model or settings.OLLAMA_MODEL,
            temperature=settings.OLLAMA_TEMPERATURE,
            timeout=settings.OLLAMA_TIMEOUT,
        ),
    )


def get_provider_config(db: Session, settings: Settings, provider: str) -> GroqConfig | OllamaConfig:
    config = get_llm_config(db, settings)
    if provider == "groq":
        return config.groq
    if provider == "ollama":
        return config.ollama
    raise BadRequestError(f"Unknown provider: {provider}")


def save_jira_settings(db: Session, settings: Settings, payload: JiraSettingsIn) -> AppSettings:
    row = get_settings_row(db)
    row.jira_base_url = str(payload.base_url).rstrip("/")
    row.jira_username = payload.username
    row.jira_api_token = _encrypt(settings, payload.api_token)
    row.jira_connected = False
    db.commit()
    db.refresh(row)
    logger.info("JIRA settings saved for %s", row.jira_base_url)
    return row


def set_jira_connected(db: Session, connected: bool) -> None:
    row = get_settings_row(db)
    row.jira_connected = connected
    db.commit()
    logger.info("JIRA connection status updated: %s", connected)


def save_llm_settings(db: Session, settings: Settings, payload: LLMSettingsIn) -> AppSettings:
    """Partial update: fields left as None keep their stored value."""
    row = get_settings_row(db)
    row.llm_provider = payload.provider
    if payload.groq_api_key:
        row.groq_api_key = _encrypt(settings, payload.groq_api_key)
    if payload.groq_model is not None:
        row.groq_model = payload.groq_model
    if payload.groq_temperature is not None:
        row.groq_temperature = payload.groq_temperature
    if payload.ollama_base_url is not None:
        row.ollama_base_url = str(payload.ollama_base_url).rstrip("/")
    if payload.ollama_model is not None:
        row.ollama_model = payload.ollama_model
    db.commit()
    db.refresh(row)
    logger.info("LLM settings saved (provider=%s)", payload.provider)
    return row
