"""Ingress layer - webhook intake and health reporting."""

from flashwatch_relay.ingress.models import AlertEvent, AlertTx
from flashwatch_relay.ingress.server import WebhookServer

__all__ = [
    "AlertEvent",
    "AlertTx",
    "WebhookServer",
]
