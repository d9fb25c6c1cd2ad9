"""HTTP client for an OpenAI-compatible chat-completion API.

The client is process-wide: it is created on first use, reused across
requests, and its connection pool is dropped and rebuilt after a
transport-level failure. Routes receive it through the ``get_ai_client``
dependency so tests can override it with a fake.
"""

import logging
from typing import Any

import httpx

from edutest.config import Settings, settings
from edutest.core.errors import ConfigurationMissingError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You write multiple-choice tests from educational content."


class AIClient:
    """Thin wrapper around ``POST /chat/completions``."""

    def __init__(self, config: Settings = settings) -> None:
        self._config = config
        self._base = config.AI_BASE_URL.rstrip("/")
        self._http: httpx.Client | None = None

    @property
    def configured(self) -> bool:
        return self._config.ai_configured

    @property
    def model(self) -> str:
        return self._config.AI_MODEL

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(
                base_url=self._base,
                timeout=self._config.AI_TIMEOUT_SECONDS,
                headers={"Authorization": f"Bearer {self._config.AI_API_KEY}"},
            )
            logger.info("AI client initialised → %s (model=%s)", self._base, self.model)
        return self._http

    def _reset(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    # ── completion ────────────────────────────────────────────────────────

    def complete(self, prompt: str, *, system_prompt: str = SYSTEM_PROMPT) -> str:
        """Send one user prompt and return the assistant message text.

        Raises ``ConfigurationMissingError`` when no API key is configured,
        ``httpx.HTTPStatusError`` on a non-2xx reply and ``httpx.TransportError``
        when the connection fails (the pooled connection is discarded first).
        A 2xx reply without a text message raises ``httpx.DecodingError``.
        """
        if not self.configured:
            raise ConfigurationMissingError(
                "AI_API_KEY is not set. Configure it to enable test generation."
            )

        payload: dict[str, Any] = {
            "model": self.model,
            "temperature": self._config.AI_TEMPERATURE,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
        }
        try:
            r = self._client().post("/chat/completions", json=payload)
        except httpx.TransportError:
            logger.warning("AI transport error, dropping pooled connection")
            self._reset()
            raise
        if r.is_error:
            logger.error("AI response:error status=%s body=%s", r.status_code, r.text[:500])
        r.raise_for_status()

        try:
            content = r.json()["choices"][0]["message"]["content"]
        except (ValueError, LookupError, TypeError) as e:
            logger.error("AI response:undecodable body=%s", r.text[:500])
            raise httpx.DecodingError(
                f"Unexpected AI response body: {type(e).__name__}", request=r.request
            ) from e
        if content is None:
            return ""
        if not isinstance(content, str):
            raise httpx.DecodingError(
                f"AI message content is {type(content).__name__}, expected text",
                request=r.request,
            )
        return content

    def close(self) -> None:
        self._reset()


# ── singleton accessor ────────────────────────────────────────────────────────

_instance: AIClient | None = None


def get_ai_client() -> AIClient:
    """FastAPI dependency returning the shared AI client."""
    global _instance
    if _instance is None:
        _instance = AIClient()
    return _instance
