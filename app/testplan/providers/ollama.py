# app/testplan/providers/ollama.py
"""
Ollama provider.

Talks to a local Ollama daemon over its HTTP API. ``/api/generate`` streams
newline-delimited JSON objects, each holding a ``response`` fragment and a
``done`` flag.
"""
import json
import logging
from collections.abc import Iterator

import httpx

from app.core.errors import AppError, BadGatewayError, NotFoundError, UnreachableError
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

TAGS_TIMEOUT = 5.0


class OllamaProvider(LLMProvider):
    name = "ollama"

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.7,
        timeout: float = 180.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._transport = transport

    def _http(self, timeout: float) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=timeout, transport=self._transport)

    def _unreachable(self) -> UnreachableError:
        return UnreachableError(
            f"Cannot connect to Ollama. Please ensure Ollama is running on {self.base_url}"
        )

    def generate(self, context: GenerationContext) -> Iterator[StreamEvent]:
        temperature = context.temperature if context.temperature is not None else self.temperature
        logger.info(
            "Starting Ollama generation (model=%s, ticket=%s, base_url=%s)",
            self.model, context.ticket.key, self.base_url,
        )
        yield progress_event("Generating test plan with Ollama (local)...", 10)

        payload = {
            "model": self.model,
            "prompt": build_prompt(context),
            "system": SYSTEM_PROMPT,
            "stream": True,
            "options": {"temperature": temperature},
        }
        parts: list[str] = []
        length = 0
        fragments = 0
        try:
            with self._http(self.timeout) as client, client.stream(
                "POST", "/api/generate", json=payload
            ) as response:
                if response.is_error:
                    response.read()
                    raise self._status_error(response)
                for line in response.iter_lines():
                    if not line.strip():
                        continue
                    try:
                        data = json.loads(line)
                    except ValueError:
                        logger.debug("Skipping invalid JSON line from Ollama")
                        continue
                    if not isinstance(data, dict):
                        continue
                    if data.get("error"):
                        raise BadGatewayError(f"Ollama error: {data['error']}")
                    fragments += 1
                    text = data.get("response") or ""
                    done = bool(data.get("done"))
                    if text:
                        parts.append(text)
                        length += len(text)
                        yield content_event(
                            text, progress=100 if done else min(10 + length // 100, 95)
                        )
                    if done:
                        logger.info(
                            "Ollama generation complete (model=%s, length=%d)", self.model, length
                        )
                        yield complete_event("".join(parts))
                        return
        except AppError as e:
            logger.error("Ollama generation failed: %s", e.message)
            yield error_event(e)
            return
        except httpx.ConnectError:
            logger.error("Ollama unreachable at %s", self.base_url)
            yield error_event(self._unreachable())
            return
        except httpx.TimeoutException:
            logger.error("Ollama request timed out after %ss", self.timeout)
            yield error_event(BadGatewayError("Connection to Ollama timed out"))
            return
        except httpx.TransportError as e:
            logger.error("Ollama connection dropped after %d fragments: %s", fragments, e)
            if fragments == 0:
                yield error_event(self._unreachable())
            else:
                yield error_event(BadGatewayError("Connection to Ollama was lost during generation"))
            return

        # stream closed without a done flag; keep what arrived
        logger.info("Ollama stream ended without done flag (length=%d)", length)
        yield complete_event("".join(parts))

    def test_connection(self) -> ConnectionResult:
        try:
            models = self.list_models()
        except AppError as e:
            logger.warning("Ollama connection test failed: %s", e.message)
            return ConnectionResult(success=False, message=e.message)
        return ConnectionResult(
            success=True,
            message=f"Connected to Ollama. {len(models)} models available.",
            models=models,
        )

    def list_models(self) -> list[str]:
        logger.info("Fetching Ollama models from %s", self.base_url)
        try:
            with self._http(TAGS_TIMEOUT) as client:
                response = client.get("/api/tags")
        except httpx.ConnectError as e:
            raise self._unreachable() from e
        except httpx.TimeoutException as e:
            raise BadGatewayError("Connection to Ollama timed out") from e
        except httpx.HTTPError as e:
            raise BadGatewayError(f"Ollama request failed: {e.__class__.__name__}") from e
        if response.is_error:
            raise self._status_error(response)
        models = response.json().get("models") or []
        return sorted(m["name"] for m in models if m.get("name"))

    def _status_error(self, response: httpx.Response) -> AppError:
        if response.status_code == 404:
            return NotFoundError(
                message=(
                    f"Ollama model '{self.model}' not found. "
                    f"Please pull the model first with: ollama pull {self.model}"
                )
            )
        return BadGatewayError(f"Ollama request failed with status {response.status_code}")
