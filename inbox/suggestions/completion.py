"""Message prompt suggestions from a hosted text-completion API."""

from __future__ import annotations

import logging
import time

import httpx

from ..config import Settings
from ..domain.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

SEPARATOR = "||"

SUGGESTION_PROMPT = (
    "Create a list of three open-ended and engaging questions formatted as a single string. "
    "Each question should be separated by '||'. These questions are for an anonymous social "
    "messaging platform and should be suitable for a diverse audience. Avoid personal or "
    "sensitive topics, focusing instead on universal themes that encourage friendly interaction. "
    "For example: 'What's a hobby you've recently started?||If you could have dinner with any "
    "historical figure, who would it be?||What's a simple thing that makes you happy?'. "
    "Reply with the string only."
)


def parse_suggestions(text: str) -> list[str]:
    """Split a ``||``-joined completion into individual, non-empty prompts."""
    return [part.strip() for part in text.split(SEPARATOR) if part.strip()]


def _safe_extract(payload: dict, *path, default: str = "") -> str:
    try:
        value = payload
        for key in path:
            value = value[key]
    except (KeyError, IndexError, TypeError):
        return default
    # some providers answer with a list of content parts
    if not isinstance(value, str):
        return default
    return value or default


class SuggestionClient:
    """Calls an OpenAI-compatible ``/chat/completions`` endpoint for prompt ideas."""

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.Client(
            base_url=settings.completion_api_url,
            timeout=settings.http_timeout_seconds,
        )

    def suggest(self) -> str:
        """Return the raw ``||``-delimited completion string."""
        if not self._settings.completion_api_key:
            raise UpstreamServiceError("Suggestion service is not configured")

        payload = {
            "model": self._settings.completion_model,
            "messages": [{"role": "user", "content": SUGGESTION_PROMPT}],
            "max_tokens": 400,
        }
        headers = {"Authorization": f"Bearer {self._settings.completion_api_key}"}
        start = time.monotonic()
        try:
            resp = self._client.post("/chat/completions", json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "completion API error status=%s body=%s (%.1fms)",
                exc.response.status_code,
                exc.response.text[:300],
                (time.monotonic() - start) * 1000,
            )
            raise UpstreamServiceError("Failed to fetch message suggestions") from exc
        except httpx.HTTPError as exc:
            logger.error("completion API unreachable: %s", exc)
            raise UpstreamServiceError("Failed to fetch message suggestions") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamServiceError("Completion API returned malformed JSON") from exc
        text = _safe_extract(data, "choices", 0, "message", "content").strip()
        if not text:
            raise UpstreamServiceError("Completion API returned an empty suggestion")
        logger.info("completion API answered in %.1fms", (time.monotonic() - start) * 1000)
        return text

    def close(self) -> None:
        self._client.close()
