"""Moltbook publisher.

Posts are delivered at most once. A non-2xx answer or a transport error
drops the alert: there is no retry, and the cooldown is left untouched so
the next alert for the rule can still go out.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from flashwatch_relay.metrics import PUBLISH_TOTAL
from flashwatch_relay.publisher.models import Post, ProcessingPath, PublishRecord

if TYPE_CHECKING:
    from flashwatch_relay.publisher.audit import AuditLog
    from flashwatch_relay.publisher.cooldown import CooldownGate

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.moltbook.com/api/v1"
DEFAULT_SUBMOLT = "lablab"
DEFAULT_TIMEOUT_SECONDS = 10.0


class MoltbookPublisher:
    """Publish posts to a Moltbook community.

    Example:
        ```python
        publisher = MoltbookPublisher(api_key, cooldown=gate, audit=audit_log)
        record = await publisher.publish("whale-transfer", ProcessingPath.TEMPLATE, post)
        ```
    """

    def __init__(
        self,
        api_key: str,
        *,
        cooldown: CooldownGate,
        audit: AuditLog,
        api_url: str = DEFAULT_API_URL,
        submolt: str = DEFAULT_SUBMOLT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        dry_run: bool = False,
    ) -> None:
        """Initialize the publisher.

        Args:
            api_key: Moltbook API key, sent as a bearer token.
            cooldown: Gate updated after each confirmed post.
            audit: Log every outcome is written to.
            api_url: Moltbook API base URL.
            submolt: Community to post into.
            timeout: HTTP request timeout in seconds.
            dry_run: Log posts instead of sending them.
        """
        self.api_key = api_key
        self.cooldown = cooldown
        self.audit = audit
        self.api_url = api_url.rstrip("/")
        self.submolt = submolt
        self.timeout = timeout
        self.dry_run = dry_run

    async def _send(self, post: Post) -> tuple[int | None, str | None]:
        """Send one post. Returns (status_code, error)."""
        if self.dry_run:
            logger.info("[dry-run] Would post %r:\n%s", post.title, post.content)
            return None, None

        payload = {
            "submolt_name": self.submolt,
            "title": post.title,
            "content": post.content,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.api_url}/posts",
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException:
            logger.error("Moltbook request timed out after %.1fs", self.timeout)
            return None, "timeout"
        except httpx.HTTPError as e:
            logger.error("Moltbook request failed: %s", e)
            return None, f"transport error: {e}"
        except Exception as e:
            logger.exception("Moltbook request could not be sent")
            return None, f"error: {e}"

        if 200 <= response.status_code < 300:
            return response.status_code, None

        logger.error(
            "Moltbook rejected post: %s %s",
            response.status_code,
            response.text[:300],
        )
        return response.status_code, f"http {response.status_code}"

    async def publish(
        self,
        rule_name: str,
        path: ProcessingPath,
        post: Post,
    ) -> PublishRecord:
        """Publish a post once and record the outcome.

        Args:
            rule_name: Rule the post is about (cooldown key).
            path: Processing path the alert took.
            post: Title, content and content type.

        Returns:
            The PublishRecord written to the audit log.
        """
        status_code, error = await self._send(post)
        success = error is None

        if success:
            self.cooldown.record(rule_name)
            logger.info("Posted (%s): %s", post.content_type.value, post.title)
        else:
            logger.warning("Dropped %s alert after failed post: %s", rule_name, error)

        record = PublishRecord(
            rule_name=rule_name,
            path=path,
            content_type=post.content_type,
            success=success,
            status_code=status_code,
            title=post.title,
            error=error,
        )
        PUBLISH_TOTAL.labels(
            content_type=post.content_type.value,
            outcome="success" if success else "failure",
        ).inc()
        await self.audit.append(record)
        return record
