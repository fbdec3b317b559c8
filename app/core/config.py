# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./testplans.db")
    APP_NAME: str = "Test Plan Generator"
    APP_DESC: str = "Generate QA test plans from JIRA tickets with Groq or Ollama"
    APP_VERSION: str = "1.0.0"

    # Mount point for the feature routers
    API_PREFIX: str = "/api"

    # CORS origins, comma separated
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    # Template storage
    TEMPLATES_DIR: str = "./templates"
    MAX_TEMPLATE_SIZE: int = 5 * 1024 * 1024

    # Secret used to encrypt API tokens at rest
    ENCRYPTION_KEY: str = ""

    # Fallbacks used when nothing is stored in the settings table
    JIRA_BASE_URL: str = ""
    JIRA_USERNAME: str = ""
    JIRA_API_TOKEN: str = ""
    JIRA_TIMEOUT: float = 30.0

    GROQ_API_KEY: str = ""
    GROQ_MODEL: str = "llama3-70b-8192"
    GROQ_TEMPERATURE: float = 0.7
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    GROQ_TIMEOUT: float = 60.0

    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3"
    OLLAMA_TEMPERATURE: float = 0.7
    OLLAMA_TIMEOUT: float = 180.0

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
