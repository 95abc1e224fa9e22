"""Narrative generation through a language-completion API.

One bounded request per alert. Every failure mode returns None so the
caller falls back to the template; nothing here raises into the pipeline.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from flashwatch_relay.metrics import NARRATIVE_LATENCY, NARRATIVE_TOTAL
from flashwatch_relay.narrative.prompt import SYSTEM_PROMPT, build_user_message

if TYPE_CHECKING:
    from flashwatch_relay.enrichment.models import EnrichmentResult
    from flashwatch_relay.ingress.models import AlertEvent

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.anthropic.com"
DEFAULT_MODEL = "claude-haiku-4-5"
DEFAULT_MAX_TOKENS = 300
DEFAULT_TIMEOUT_SECONDS = 15.0
ANTHROPIC_VERSION = "2023-06-01"


def _extract_text(data: Any) -> str | None:
    """Pull the text blocks out of a Messages API response body."""
    if not isinstance(data, dict):
        return None
    blocks = data.get("content")
    if not isinstance(blocks, list):
        return None
    parts = [
        block["text"]
        for block in blocks
        if isinstance(block, dict)
        and block.get("type", "text") == "text"
        and isinstance(block.get("text"), str)
    ]
    text = "".join(parts).strip()
    return text or None


class NarrativeGenerator:
    """Write a short first-person post about an alert.

    Example:
        ```python
        generator = NarrativeGenerator(api_key="sk-...", timeout=15.0)
        text = await generator.generate(event, enrichment)
        if text is None:
            ...  # use the template
        ```
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the generator.

        Args:
            api_key: Completion API key; None or empty disables generation.
            api_url: Base URL of the completion API.
            model: Model identifier.
            max_tokens: Output token cap.
            timeout: Hard timeout for the whole request in seconds.
        """
        self.api_key = api_key or None
        self.api_url = api_url.rstrip("/")
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        """Return True if a credential is configured."""
        return self.api_key is not None

    async def _request(self, user_message: str) -> str | None:
        headers = {
            "x-api-key": self.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": user_message}],
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.api_url}/v1/messages",
                headers=headers,
                json=payload,
            )

        if not 200 <= response.status_code < 300:
            logger.error(
                "Narrative request failed: %s %s",
                response.status_code,
                response.text[:300],
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("Narrative response was not JSON")
            return None

        return _extract_text(data)

    async def generate(
        self,
        event: AlertEvent,
        enrichment: EnrichmentResult,
    ) -> str | None:
        """Generate post text for an alert.

        Returns:
            The generated text, or None on a missing credential, timeout,
            transport error, error status, or empty/malformed response.
        """
        if not self.enabled:
            logger.debug("Narrative generation disabled (no API key)")
            NARRATIVE_TOTAL.labels(outcome="disabled").inc()
            return None

        user_message = build_user_message(event, enrichment)
        start = time.monotonic()
        try:
            text = await asyncio.wait_for(self._request(user_message), self.timeout)
        except (TimeoutError, httpx.TimeoutException):
            logger.warning("Narrative generation timed out after %.1fs", self.timeout)
            NARRATIVE_TOTAL.labels(outcome="timeout").inc()
            return None
        except httpx.HTTPError as e:
            logger.error("Narrative transport error: %s", e)
            NARRATIVE_TOTAL.labels(outcome="error").inc()
            return None
        finally:
            NARRATIVE_LATENCY.observe(time.monotonic() - start)

        if text is None:
            NARRATIVE_TOTAL.labels(outcome="empty").inc()
            return None

        NARRATIVE_TOTAL.labels(outcome="success").inc()
        logger.info("Narrative generated for %s (%d chars)", event.rule_name, len(text))
        return text
