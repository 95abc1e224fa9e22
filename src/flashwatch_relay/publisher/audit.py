"""Append-only audit log of publish outcomes.

One record is written per admitted alert, whether the post succeeded or
not. Alerts rejected by the cooldown gate or at the webhook never reach
this module.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from flashwatch_relay.publisher.models import PublishRecord

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_TAIL_SIZE = 100
DEFAULT_RETENTION_DAYS = 30


class AuditLog(Protocol):
    """Protocol for audit log backends."""

    async def append(self, record: PublishRecord) -> None:
        """Append a record. Implementations must not raise."""
        ...

    async def recent(self, limit: int = 20) -> list[PublishRecord]:
        """Return up to ``limit`` most recent records, newest last."""
        ...


class MemoryAuditLog:
    """Bounded in-memory audit log (tests and dry runs)."""

    def __init__(self, max_records: int = DEFAULT_TAIL_SIZE) -> None:
        self._records: deque[PublishRecord] = deque(maxlen=max_records)

    async def append(self, record: PublishRecord) -> None:
        self._records.append(record)

    async def recent(self, limit: int = 20) -> list[PublishRecord]:
        return list(self._records)[-limit:]

    def __len__(self) -> int:
        return len(self._records)


class JsonlAuditLog:
    """Audit log that appends JSON lines to a file.

    File writes run in a worker thread so the event loop never blocks on
    disk. A bounded tail is kept in memory for ``recent``.
    """

    def __init__(self, path: str | Path, *, tail_size: int = DEFAULT_TAIL_SIZE) -> None:
        """Initialize the log.

        Args:
            path: File to append to; parent directories are created.
            tail_size: Number of records kept in memory.
        """
        self.path = Path(path)
        self._tail: deque[PublishRecord] = deque(maxlen=tail_size)
        self._lock = asyncio.Lock()

    def _write_line(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    async def append(self, record: PublishRecord) -> None:
        """Append a record to the file."""
        self._tail.append(record)
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        try:
            async with self._lock:
                await asyncio.to_thread(self._write_line, line)
        except OSError as e:
            logger.error("Failed to write audit record to %s: %s", self.path, e)

    async def recent(self, limit: int = 20) -> list[PublishRecord]:
        """Return the most recent records seen by this process."""
        return list(self._tail)[-limit:]


class RedisAuditLog:
    """Audit log kept in Redis.

    Records are pushed onto a list and indexed by time in a sorted set so
    they can be queried by range, with a retention TTL on both keys.
    """

    KEY_RECORDS = "flashwatch:audit:records"
    KEY_INDEX_TIME = "flashwatch:audit:index:time"

    def __init__(
        self,
        redis: Redis,
        *,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        """Initialize the log.

        Args:
            redis: Redis client (async).
            retention_days: Days to retain audit history.
        """
        self.redis = redis
        self.retention_days = retention_days
        self._retention_ttl = retention_days * 86400

    async def append(self, record: PublishRecord) -> None:
        """Append a record to Redis."""
        payload = json.dumps(record.to_dict(), ensure_ascii=False)
        try:
            async with self.redis.pipeline() as pipe:
                pipe.rpush(self.KEY_RECORDS, payload)
                pipe.expire(self.KEY_RECORDS, self._retention_ttl)
                pipe.zadd(self.KEY_INDEX_TIME, {payload: record.timestamp.timestamp()})
                pipe.expire(self.KEY_INDEX_TIME, self._retention_ttl)
                await pipe.execute()
        except Exception as e:
            logger.error("Failed to write audit record to Redis: %s", e)

    async def recent(self, limit: int = 20) -> list[PublishRecord]:
        """Return the newest records from Redis."""
        raw: list[Any] = await self.redis.lrange(self.KEY_RECORDS, -limit, -1)
        records = []
        for item in raw:
            if isinstance(item, bytes):
                item = item.decode()
            records.append(PublishRecord.from_dict(json.loads(item)))
        return records

    async def close(self) -> None:
        """Close the Redis connection."""
        await self.redis.aclose()
