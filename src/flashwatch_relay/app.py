"""Assemble the relay from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redis.asyncio import Redis

from flashwatch_relay.enrichment import (
    ChainClient,
    EnrichmentEngine,
    KnownEntityTable,
    NameResolver,
)
from flashwatch_relay.ingress import WebhookServer
from flashwatch_relay.narrative import NarrativeGenerator
from flashwatch_relay.pipeline import RelayPipeline
from flashwatch_relay.publisher import (
    CooldownGate,
    JsonlAuditLog,
    MoltbookPublisher,
    RedisAuditLog,
    TemplateFormatter,
)

if TYPE_CHECKING:
    from flashwatch_relay.config import Settings
    from flashwatch_relay.publisher import AuditLog

logger = logging.getLogger(__name__)


def build_audit_log(settings: Settings) -> AuditLog:
    """Pick the audit backend: Redis when configured, else a JSONL file."""
    if settings.audit.redis_url:
        return RedisAuditLog(Redis.from_url(settings.audit.redis_url))
    return JsonlAuditLog(settings.audit.path)


def build_pipeline(
    settings: Settings,
    *,
    audit: AuditLog,
    dry_run: bool = False,
) -> RelayPipeline:
    """Wire every pipeline component from settings."""
    entities = KnownEntityTable()
    enrichment = EnrichmentEngine(
        entities,
        ChainClient(settings.rpc.url, timeout=settings.rpc.timeout_seconds),
        NameResolver(settings.naming.url, timeout=settings.naming.timeout_seconds),
    )

    api_key = settings.narrative.api_key
    narrative = NarrativeGenerator(
        api_key.get_secret_value() if api_key else None,
        api_url=settings.narrative.api_url,
        model=settings.narrative.model,
        timeout=settings.narrative.timeout_seconds,
    )
    if not narrative.enabled:
        logger.warning("ANTHROPIC_API_KEY not set, every alert will use the template")

    cooldown = CooldownGate(settings.relay.cooldown_seconds)
    publisher = MoltbookPublisher(
        settings.moltbook.api_key.get_secret_value(),
        cooldown=cooldown,
        audit=audit,
        api_url=settings.moltbook.api_url,
        submolt=settings.moltbook.submolt,
        timeout=settings.moltbook.timeout_seconds,
        dry_run=dry_run,
    )

    return RelayPipeline(
        cooldown=cooldown,
        formatter=TemplateFormatter(entities),
        publisher=publisher,
        enrichment=enrichment,
        narrative=narrative,
        threshold_eth=settings.relay.ai_threshold_eth,
    )


class Relay:
    """The running relay: webhook server, pipeline and audit log.

    Example:
        ```python
        relay = Relay(settings, dry_run=True)
        await relay.start()
        ...
        await relay.stop()
        ```
    """

    def __init__(
        self,
        settings: Settings,
        *,
        dry_run: bool = False,
        port: int | None = None,
    ) -> None:
        self.settings = settings
        self.host = settings.relay.bind
        self.port = port or settings.relay.port
        self.audit = build_audit_log(settings)
        self.pipeline = build_pipeline(settings, audit=self.audit, dry_run=dry_run)
        self.server = WebhookServer(self.pipeline)

    async def start(self) -> None:
        """Start accepting alerts."""
        await self.server.start(host=self.host, port=self.port)

    async def stop(self) -> None:
        """Stop accepting alerts, abandon in-flight work and close the audit log."""
        await self.server.stop()
        await self.pipeline.stop()
        if isinstance(self.audit, RedisAuditLog):
            await self.audit.close()
