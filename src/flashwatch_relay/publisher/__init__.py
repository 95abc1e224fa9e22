"""Publishing layer - formatting, rate limiting, delivery and audit."""

from flashwatch_relay.publisher.audit import (
    AuditLog,
    JsonlAuditLog,
    MemoryAuditLog,
    RedisAuditLog,
)
from flashwatch_relay.publisher.cooldown import CooldownGate
from flashwatch_relay.publisher.formatter import TemplateFormatter, Tier, get_tier
from flashwatch_relay.publisher.models import ContentType, Post, ProcessingPath, PublishRecord
from flashwatch_relay.publisher.moltbook import MoltbookPublisher

__all__ = [
    "AuditLog",
    "ContentType",
    "CooldownGate",
    "JsonlAuditLog",
    "MemoryAuditLog",
    "MoltbookPublisher",
    "Post",
    "ProcessingPath",
    "PublishRecord",
    "RedisAuditLog",
    "TemplateFormatter",
    "Tier",
    "get_tier",
]
