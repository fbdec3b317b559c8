# app/testplan/providers/factory.py
from collections.abc import Callable

from app.core.errors import BadRequestError
from app.settings.schemas import LLMConfig
from app.testplan.providers.base import LLMProvider
from app.testplan.providers.groq import GroqProvider
from app.testplan.providers.ollama import OllamaProvider

ProviderFactory = Callable[[str, LLMConfig], LLMProvider]


def create_provider(name: str, config: LLMConfig) -> LLMProvider:
    """Map a provider name to an instance bound to the stored configuration."""
    if name == "groq":
        return GroqProvider(
            api_key=config.groq.api_key,
            model=config.groq.model,
            temperature=config.groq.temperature,
            base_url=config.groq.base_url,
            timeout=config.groq.timeout,
        )
    if name == "ollama":
        return OllamaProvider(
            base_url=config.ollama.base_url,
            model=config.ollama.model,
            temperature=config.ollama.temperature,
            timeout=config.ollama.timeout,
        )
    raise BadRequestError(f"Unknown provider: {name}")


def get_provider_factory() -> ProviderFactory:
    return create_provider
