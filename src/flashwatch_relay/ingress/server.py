"""Webhook ingress and health endpoints.

The webhook handler validates the body and hands the alert to the
pipeline as an independent task before responding. Its response never
depends on enrichment, narration or publishing: the producer only ever
sees accept (200) or reject (400).
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web
from prometheus_client import generate_latest

from flashwatch_relay.exceptions import AlertParseError
from flashwatch_relay.ingress.models import AlertEvent
from flashwatch_relay.metrics import ALERTS_RECEIVED, ALERTS_REJECTED

if TYPE_CHECKING:
    from flashwatch_relay.pipeline.relay import RelayPipeline

logger = logging.getLogger(__name__)

SERVICE_NAME = "flashwatch-relay"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4747
MAX_BODY_BYTES = 256 * 1024


class WebhookServer:
    """HTTP front door of the relay.

    Endpoints:
        POST /webhook  Accept one alert event (200) or reject it (400).
        GET  /health   Narrative availability, threshold and cooldown map.
        GET  /metrics  Prometheus metrics.

    Example:
        ```python
        server = WebhookServer(pipeline)
        await server.start(host="127.0.0.1", port=4747)
        ...
        await server.stop()
        ```
    """

    def __init__(self, pipeline: RelayPipeline) -> None:
        """Initialize the server.

        Args:
            pipeline: Pipeline that receives accepted alerts.
        """
        self.pipeline = pipeline
        self._start_time = time.time()
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        """Return True if the HTTP server is listening."""
        return self._runner is not None

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        """Handle POST /webhook."""
        try:
            body = await request.text()
            event = AlertEvent.from_dict(json.loads(body))
        except (AlertParseError, ValueError, RecursionError) as e:
            logger.warning("Rejected malformed alert: %s", e)
            ALERTS_REJECTED.labels(reason="malformed").inc()
            return web.json_response({"error": f"bad request: {e}"}, status=400)

        logger.info(
            "Alert %s: %.4f ETH → %s",
            event.rule_name,
            event.value_eth,
            event.tx.to_label or event.tx.to_address or "unknown",
        )
        ALERTS_RECEIVED.inc()

        # Not awaited: the producer must not wait on outbound calls.
        self.pipeline.submit(event)
        return web.json_response({"status": "accepted"}, status=200)

    def health_body(self) -> dict[str, Any]:
        """Build the /health response body."""
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "ai_enabled": self.pipeline.narrative_enabled,
            "ai_threshold_eth": self.pipeline.threshold_eth,
            "cooldown_seconds": self.pipeline.cooldown.cooldown_seconds,
            "cooldowns": self.pipeline.cooldown.snapshot(),
            "in_flight": self.pipeline.in_flight,
            "uptime_seconds": round(time.time() - self._start_time, 1),
        }

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Handle GET /health."""
        return web.json_response(self.health_body(), status=200)

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Handle GET /metrics (Prometheus format)."""
        return web.Response(
            body=generate_latest(),
            content_type="text/plain",
            charset="utf-8",
        )

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application(client_max_size=MAX_BODY_BYTES)
        app.router.add_post("/webhook", self._handle_webhook)
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        return app

    async def start(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        """Start listening.

        Args:
            host: Address to bind.
            port: Port to listen on.
        """
        if self._runner:
            logger.warning("Webhook server already running")
            return

        self._app = self.create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, host, port)
        await site.start()

        self._start_time = time.time()
        logger.info("FlashWatch relay listening on http://%s:%d", host, port)
        logger.info("  Webhook: POST /webhook")
        logger.info("  Health:  GET  /health")

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._app = None
            logger.info("Webhook server stopped")
