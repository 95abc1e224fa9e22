"""Alert relay pipeline.

Each accepted alert runs as its own asyncio task through this state
machine:

    RECEIVED -> ADMITTED | REJECTED_COOLDOWN
    ADMITTED -> CLASSIFIED (template | enriched)
    enriched: ENRICHING -> GENERATING -> NARRATIVE_READY
                                      | NARRATIVE_FAILED -> TEMPLATE_READY
    template: TEMPLATE_READY
    -> PUBLISHING -> PUBLISHED | PUBLISH_FAILED

Every admitted alert ends in PUBLISHED or PUBLISH_FAILED. The webhook
handler never waits for any of this.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from flashwatch_relay.metrics import (
    ALERTS_IN_FLIGHT,
    ALERTS_REJECTED,
    PATH_TOTAL,
)
from flashwatch_relay.pipeline.classifier import classify
from flashwatch_relay.publisher.models import ContentType, Post, ProcessingPath

if TYPE_CHECKING:
    from flashwatch_relay.enrichment.engine import EnrichmentEngine
    from flashwatch_relay.ingress.models import AlertEvent
    from flashwatch_relay.narrative.generator import NarrativeGenerator
    from flashwatch_relay.publisher.cooldown import CooldownGate
    from flashwatch_relay.publisher.formatter import TemplateFormatter
    from flashwatch_relay.publisher.models import PublishRecord
    from flashwatch_relay.publisher.moltbook import MoltbookPublisher

logger = logging.getLogger(__name__)


class AlertState(Enum):
    """Processing state of one alert."""

    RECEIVED = "received"
    ADMITTED = "admitted"
    REJECTED_COOLDOWN = "rejected_cooldown"
    CLASSIFIED = "classified"
    ENRICHING = "enriching"
    GENERATING = "generating"
    NARRATIVE_READY = "narrative_ready"
    NARRATIVE_FAILED = "narrative_failed"
    TEMPLATE_READY = "template_ready"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish_failed"


TERMINAL_STATES = frozenset(
    [AlertState.REJECTED_COOLDOWN, AlertState.PUBLISHED, AlertState.PUBLISH_FAILED]
)


@dataclass
class AlertOutcome:
    """Result of running one alert through the pipeline."""

    rule_name: str
    state: AlertState = AlertState.RECEIVED
    path: ProcessingPath | None = None
    content_type: ContentType | None = None
    record: PublishRecord | None = None
    history: list[AlertState] = field(default_factory=lambda: [AlertState.RECEIVED])

    def advance(self, state: AlertState) -> None:
        """Move to a new state."""
        self.state = state
        self.history.append(state)
        logger.debug("%s -> %s", self.rule_name, state.value)

    @property
    def is_terminal(self) -> bool:
        """Return True if the alert reached a final state."""
        return self.state in TERMINAL_STATES


class RelayPipeline:
    """Turn alert events into published posts.

    Example:
        ```python
        pipeline = RelayPipeline(
            cooldown=gate,
            formatter=TemplateFormatter(entities),
            publisher=publisher,
            enrichment=engine,
            narrative=generator,
            threshold_eth=50.0,
        )
        pipeline.submit(event)          # fire and forget
        outcome = await pipeline.process(event)  # or run inline
        ```
    """

    def __init__(
        self,
        *,
        cooldown: CooldownGate,
        formatter: TemplateFormatter,
        publisher: MoltbookPublisher,
        enrichment: EnrichmentEngine | None = None,
        narrative: NarrativeGenerator | None = None,
        threshold_eth: float = 50.0,
    ) -> None:
        """Initialize the pipeline.

        Args:
            cooldown: Per-rule cooldown gate.
            formatter: Template formatter (always available fallback).
            publisher: Moltbook publisher.
            enrichment: Enrichment engine for the enriched path.
            narrative: Narrative generator; None or disabled forces templates.
            threshold_eth: Materiality threshold for the enriched path.
        """
        self.cooldown = cooldown
        self.formatter = formatter
        self.publisher = publisher
        self.enrichment = enrichment
        self.narrative = narrative
        self.threshold_eth = threshold_eth
        self._tasks: set[asyncio.Task[AlertOutcome]] = set()

    @property
    def narrative_enabled(self) -> bool:
        """Return True if the enriched path can be taken."""
        return (
            self.narrative is not None
            and self.narrative.enabled
            and self.enrichment is not None
        )

    @property
    def in_flight(self) -> int:
        """Number of alerts currently being processed."""
        return len(self._tasks)

    def submit(self, event: AlertEvent) -> asyncio.Task[AlertOutcome]:
        """Schedule an alert for processing and return immediately.

        The returned task is tracked until it finishes; callers do not need
        to await it.
        """
        task = asyncio.create_task(self.process(event), name=f"alert:{event.rule_name}")
        self._tasks.add(task)
        ALERTS_IN_FLIGHT.set(len(self._tasks))
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[AlertOutcome]) -> None:
        self._tasks.discard(task)
        ALERTS_IN_FLIGHT.set(len(self._tasks))
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Alert task failed unexpectedly: %s", exc, exc_info=exc)

    async def _narrate(
        self,
        event: AlertEvent,
        outcome: AlertOutcome,
        enrichment: EnrichmentEngine,
        narrative: NarrativeGenerator,
    ) -> Post:
        """Enrich and narrate, falling back to the template on any failure."""
        logger.info(
            "Large alert (%.2f ETH >= %.2f ETH threshold), enriching %s",
            event.value_eth,
            self.threshold_eth,
            event.rule_name,
        )

        text: str | None = None
        try:
            outcome.advance(AlertState.ENRICHING)
            enriched = await enrichment.enrich(event)
            outcome.advance(AlertState.GENERATING)
            text = await narrative.generate(event, enriched)
        except Exception:
            logger.exception("Enrichment or narration failed for %s", event.rule_name)

        if text:
            outcome.advance(AlertState.NARRATIVE_READY)
            return Post(
                title=self.formatter.format_title(event),
                content=text,
                content_type=ContentType.AI_GENERATED,
            )

        outcome.advance(AlertState.NARRATIVE_FAILED)
        post = self.formatter.format(event, ContentType.AI_FALLBACK)
        outcome.advance(AlertState.TEMPLATE_READY)
        return post

    async def process(self, event: AlertEvent) -> AlertOutcome:
        """Run one alert through the full pipeline.

        Returns:
            The AlertOutcome with its terminal state.
        """
        outcome = AlertOutcome(rule_name=event.rule_name)
        start = time.monotonic()

        if not self.cooldown.admit(event.rule_name):
            ALERTS_REJECTED.labels(reason="cooldown").inc()
            outcome.advance(AlertState.REJECTED_COOLDOWN)
            return outcome
        outcome.advance(AlertState.ADMITTED)

        path = classify(event.value_eth, self.threshold_eth, self.narrative_enabled)
        outcome.path = path
        outcome.advance(AlertState.CLASSIFIED)
        PATH_TOTAL.labels(path=path.value).inc()

        if (
            path is ProcessingPath.ENRICHED
            and self.enrichment is not None
            and self.narrative is not None
        ):
            post = await self._narrate(event, outcome, self.enrichment, self.narrative)
        else:
            post = self.formatter.format(event)
            outcome.advance(AlertState.TEMPLATE_READY)
        outcome.content_type = post.content_type

        async with self.cooldown.hold(event.rule_name):
            # Another alert for this rule may have posted while we were enriching.
            if not self.cooldown.admit(event.rule_name):
                ALERTS_REJECTED.labels(reason="cooldown").inc()
                outcome.advance(AlertState.REJECTED_COOLDOWN)
                return outcome

            outcome.advance(AlertState.PUBLISHING)
            logger.info(
                "Publishing %s (type=%s): %s",
                path.value,
                post.content_type.value,
                post.title,
            )
            record = await self.publisher.publish(event.rule_name, path, post)

        outcome.record = record
        outcome.advance(AlertState.PUBLISHED if record.success else AlertState.PUBLISH_FAILED)
        logger.info(
            "Alert %s finished as %s in %.2fs",
            event.rule_name,
            outcome.state.value,
            time.monotonic() - start,
        )
        return outcome

    async def stop(self) -> None:
        """Abandon outstanding alerts.

        Delivery is at most once, so in-flight work is cancelled rather
        than drained.
        """
        tasks = list(self._tasks)
        if tasks:
            logger.info("Abandoning %d in-flight alerts", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
