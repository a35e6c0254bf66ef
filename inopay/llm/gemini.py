"""
Gemini Provider

google.genai client behind the LLMProvider interface. The client is
created on first use, so the API and the CLI start without a key and
only assisted cleaning fails when GEMINI_API_KEY is missing.

Each call walks the model chain (configured model, then the fallback
model) with backoff on transient API errors. Consecutive chain
failures open a circuit breaker; while it is open, assisted cleaning
fails fast and callers keep the deterministic result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from google import genai
from google.genai import errors, types

from inopay.config import settings
from inopay.llm import LLMProvider

logger = logging.getLogger(__name__)

LIBERATION_SYSTEM_INSTRUCTION = (
    "You rewrite single source files of web projects so they no longer "
    "depend on a proprietary AI builder platform. You answer with JSON only."
)

_TRANSIENT_STATUS = frozenset({408, 429, 500, 502, 503, 504})


class CircuitOpenError(Exception):
    """Raised instead of calling the model while the breaker is open."""


class CircuitBreaker:

    def __init__(
        self,
        failure_threshold: int = settings.LLM_FAILURE_THRESHOLD,
        recovery_timeout: float = settings.LLM_RECOVERY_SECONDS,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._failures = 0
        self._opened_at: float = 0
        self._state = "closed"  # closed | open | half-open

    @property
    def state(self) -> str:
        elapsed = time.monotonic() - self._opened_at
        if self._state == "open" and elapsed >= self.recovery_timeout:
            self._state = "half-open"
        return self._state

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    def record_success(self) -> None:
        self._failures = 0
        self._state = "closed"

    def record_failure(self) -> None:
        self._failures += 1
        self._opened_at = time.monotonic()
        if self._failures < self.failure_threshold:
            return
        self._state = "open"
        logger.warning(
            "Assisted cleaning paused for %ds after %d failed model calls",
            self.recovery_timeout, self._failures,
        )


def _is_transient(error: Exception) -> bool:
    if isinstance(error, errors.APIError):
        return error.code in _TRANSIENT_STATUS
    return isinstance(error, (asyncio.TimeoutError, ConnectionError))


class GeminiProvider(LLMProvider):

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key or settings.GEMINI_API_KEY
        self._model = model or settings.GEMINI_MODEL
        self._client: Optional[genai.Client] = None
        self.circuit_breaker = CircuitBreaker()

    @property
    def models(self) -> list[str]:
        chain = [self._model]
        if settings.GEMINI_FALLBACK_MODEL not in chain:
            chain.append(settings.GEMINI_FALLBACK_MODEL)
        return chain

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise RuntimeError(
                    "GEMINI_API_KEY is not set; assisted cleaning is unavailable"
                )
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def _attempt(self, model: str, prompt: str, config: types.GenerateContentConfig, tries: int) -> str:
        client = self._get_client()
        for attempt in range(1, tries + 1):
            try:
                response = await client.aio.models.generate_content(
                    model=model, contents=prompt, config=config,
                )
            except Exception as e:
                if attempt == tries or not _is_transient(e):
                    raise
                await asyncio.sleep(2 ** (attempt - 1))
            else:
                return response.text or ""
        raise RuntimeError(f"{model}: no attempt made")

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.2,
        json_mode: bool = False,
    ) -> str:
        if self.circuit_breaker.is_open:
            raise CircuitOpenError("Assisted cleaning is paused after repeated model failures")
        self._get_client()

        config = types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system_instruction or LIBERATION_SYSTEM_INSTRUCTION,
            response_mime_type="application/json" if json_mode else None,
        )

        failure: Optional[Exception] = None
        for position, model in enumerate(self.models):
            tries = settings.LLM_MAX_RETRIES if position == 0 else 1
            try:
                text = await self._attempt(model, prompt, config, tries)
            except Exception as e:
                failure = e
                logger.warning("Gemini model %s failed: %s", model, e)
                continue
            self.circuit_breaker.record_success()
            return text

        self.circuit_breaker.record_failure()
        raise failure  # type: ignore[misc]
