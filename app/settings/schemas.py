# app/settings/schemas.py
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl

from app.core.schemas import APIModel

ProviderName = Literal["groq", "ollama"]


class JiraConfig(BaseModel):
    base_url: str = ""
    username: str = ""
    api_token: str = ""
    is_connected: bool = False

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.username and self.api_token)


class GroqConfig(BaseModel):
    api_key: str = ""
    model: str
    temperature: float
    base_url: str
    timeout: float


class OllamaConfig(BaseModel):
    base_url: str
    model: str
    temperature: float
    timeout: float


class LLMConfig(BaseModel):
    provider: ProviderName = "groq"
    groq: GroqConfig
    ollama: OllamaConfig


# API bodies

class JiraSettingsIn(APIModel):
    base_url: HttpUrl
    username: str = Field(..., min_length=1)
    api_token: str = Field(..., min_length=1)


class JiraSettingsOut(APIModel):
    base_url: str
    username: str
    is_connected: bool
    has_credentials: bool


class LLMSettingsIn(APIModel):
    provider: ProviderName
    groq_api_key: str | None = None
    groq_model: str | None = None
    groq_temperature: float | None = Field(default=None, ge=0, le=1)
    ollama_base_url: HttpUrl | None = None
    ollama_model: str | None = None


class GroqSettingsOut(APIModel):
    model: str
    temperature: float
    has_api_key: bool


class OllamaSettingsOut(APIModel):
    base_url: str
    model: str


class LLMSettingsOut(APIModel):
    provider: ProviderName
    groq: GroqSettingsOut
    ollama: OllamaSettingsOut


class ProviderTestRequest(APIModel):
    provider: ProviderName


class ConnectionResult(APIModel):
    success: bool
    message: str
    models: list[str] | None = None
    user: str | None = None


class MessageResponse(APIModel):
    success: bool = True
    message: str
