# app/testplan/providers/groq.py
"""
Groq provider.

Groq serves an OpenAI-compatible API, so the official openai client is used
with Groq's base URL.
"""
import logging
from collections.abc import Iterator
from contextlib import closing

import openai

from app.core.errors import (
    AppError,
    BadGatewayError,
    PreconditionError,
    RateLimitedError,
    UnauthorizedError,
    UnreachableError,
)
from app.settings.schemas import ConnectionResult
from app.testplan.providers.base import (
    LLMProvider,
    complete_event,
    content_event,
    error_event,
    progress_event,
)
from app.testplan.providers.prompt import SYSTEM_PROMPT, build_prompt
from app.testplan.schemas import GenerationContext, StreamEvent

logger = logging.getLogger(__name__)

GROQ_MODELS = [
    "llama3-70b-8192",
    "llama3-8b-8192",
    "mixtral-8x7b-32768",
    "gemma-7b-it",
    "llama2-70b-4096",
]

MAX_TOKENS = 4096
PROGRESS_EVERY = 5


class GroqProvider(LLMProvider):
    name = "groq"

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        base_url: str = "https://api.groq.com/openai/v1",
        timeout: float = 60.0,
        client: openai.OpenAI | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.base_url = base_url
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> openai.OpenAI:
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def generate(self, context: GenerationContext) -> Iterator[StreamEvent]:
        temperature = context.temperature if context.temperature is not None else self.temperature
        logger.info(
            "Starting Groq generation (model=%s, ticket=%s, temperature=%s)",
            self.model, context.ticket.key, temperature,
        )
        yield progress_event("Generating test plan with Groq...", 10)

        if not self.api_key:
            yield error_event(PreconditionError("Groq API key not configured"))
            return

        parts: list[str] = []
        length = 0
        chunk_count = 0
        try:
            stream = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(context)},
                ],
                temperature=temperature,
                max_tokens=MAX_TOKENS,
                stream=True,
            )
            with closing(stream):
                for chunk in stream:
                    if not chunk.choices:
                        continue
                    text = chunk.choices[0].delta.content or ""
                    if not text:
                        continue
                    parts.append(text)
                    length += len(text)
                    chunk_count += 1
                    if chunk_count % PROGRESS_EVERY == 0:
                        yield content_event(text, progress=min(10 + length // 100, 90))
                    else:
                        yield content_event(text)
        except openai.APIError as e:
            error = self._classify(e)
            logger.error("Groq generation failed: %s", error.message)
            yield error_event(error)
            return

        logger.info(
            "Groq generation complete (model=%s, chunks=%d, length=%d)",
            self.model, chunk_count, length,
        )
        yield complete_event("".join(parts))

    def test_connection(self) -> ConnectionResult:
        if not self.api_key:
            return ConnectionResult(success=False, message="Groq API key not configured")
        try:
            self.client.models.list()
        except openai.APIError as e:
            error = self._classify(e)
            logger.warning("Groq connection test failed: %s", error.message)
            return ConnectionResult(success=False, message=error.message)
        models = self.list_models()
        return ConnectionResult(
            success=True,
            message=f"Connected to Groq. {len(models)} models available.",
            models=models,
        )

    def list_models(self) -> list[str]:
        return list(GROQ_MODELS)

    def _classify(self, error: openai.APIError) -> AppError:
        if isinstance(error, openai.AuthenticationError):
            return UnauthorizedError("Invalid Groq API key")
        if isinstance(error, openai.RateLimitError):
            return RateLimitedError("Groq rate limit exceeded. Please try again later.")
        if isinstance(error, openai.APITimeoutError):
            return BadGatewayError("Request to Groq timed out")
        if isinstance(error, openai.APIConnectionError):
            return UnreachableError(f"Cannot connect to Groq at {self.base_url}")
        if isinstance(error, openai.APIStatusError) and error.status_code >= 500:
            return BadGatewayError("Groq service error. Please try again later.")
        return BadGatewayError(error.message)
