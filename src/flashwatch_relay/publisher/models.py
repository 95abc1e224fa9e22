"""Data models for the publisher module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ProcessingPath(Enum):
    """How much work the relay does for an alert."""

    TEMPLATE = "template"
    ENRICHED = "enriched"


class ContentType(Enum):
    """Where the published text came from."""

    TEMPLATE = "template"
    AI_GENERATED = "ai-generated"
    AI_FALLBACK = "ai-fallback"


@dataclass(frozen=True)
class Post:
    """A post ready for the content platform."""

    title: str
    content: str
    content_type: ContentType


@dataclass(frozen=True)
class PublishRecord:
    """Audit record of one alert's publish attempt.

    Attributes:
        rule_name: Rule that fired.
        path: Processing path the classifier chose.
        content_type: Source of the published text.
        success: True if the platform accepted the post.
        status_code: Platform HTTP status, None on transport error or dry run.
        title: Post title.
        error: Short failure description, if any.
        timestamp: When the attempt finished.
    """

    rule_name: str
    path: ProcessingPath
    content_type: ContentType
    success: bool
    status_code: int | None = None
    title: str = ""
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for storage."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "rule_name": self.rule_name,
            "path": self.path.value,
            "content_type": self.content_type.value,
            "success": self.success,
            "status_code": self.status_code,
            "title": self.title,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublishRecord:
        """Deserialize from dictionary."""
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        elif timestamp is None:
            timestamp = datetime.now(UTC)

        return cls(
            rule_name=data["rule_name"],
            path=ProcessingPath(data["path"]),
            content_type=ContentType(data["content_type"]),
            success=bool(data["success"]),
            status_code=data.get("status_code"),
            title=data.get("title", ""),
            error=data.get("error"),
            timestamp=timestamp,
        )
