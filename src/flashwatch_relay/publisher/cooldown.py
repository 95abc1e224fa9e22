"""Per-rule cooldown between successful posts.

A cooldown means "the audience already heard about this rule recently",
so only a confirmed publish starts one. Failed attempts leave the state
untouched and a later alert for the same rule can still go out.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 600.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CooldownGate:
    """Rate limiter keyed by rule name.

    The gate owns the only mutable state shared between alerts. All access
    happens on the event loop; ``hold`` additionally serializes the final
    publish decision for a rule so that two in-flight alerts cannot both
    post inside one window.

    Example:
        ```python
        gate = CooldownGate(cooldown_seconds=600)
        if gate.admit("whale-transfer"):
            async with gate.hold("whale-transfer"):
                if gate.admit("whale-transfer"):
                    ...  # post
                    gate.record("whale-transfer")
        ```
    """

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the gate.

        Args:
            cooldown_seconds: Minimum seconds between successful posts per rule.
            clock: Source of the current time (injectable for tests).
        """
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._last_published: dict[str, datetime] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def elapsed(self, rule_name: str, now: datetime | None = None) -> float | None:
        """Seconds since the last successful post, or None if never posted."""
        last = self._last_published.get(rule_name)
        if last is None:
            return None
        return ((now or self._clock()) - last).total_seconds()

    def remaining(self, rule_name: str, now: datetime | None = None) -> float:
        """Seconds until the rule may post again (0 when it may post now)."""
        elapsed = self.elapsed(rule_name, now)
        if elapsed is None:
            return 0.0
        return max(0.0, self.cooldown_seconds - elapsed)

    def admit(self, rule_name: str, now: datetime | None = None) -> bool:
        """Return True if an alert for this rule may proceed."""
        elapsed = self.elapsed(rule_name, now)
        if elapsed is not None and elapsed < self.cooldown_seconds:
            logger.info(
                "Cooldown: skipping %s, posted %ds ago",
                rule_name,
                int(elapsed),
            )
            return False
        return True

    def record(self, rule_name: str, when: datetime | None = None) -> None:
        """Start a cooldown window after a confirmed publish.

        Rules whose window has already closed are forgotten.
        """
        now = when or self._clock()
        expired = [
            rule
            for rule, last in self._last_published.items()
            if (now - last).total_seconds() >= self.cooldown_seconds
        ]
        for rule in expired:
            del self._last_published[rule]
        self._last_published[rule_name] = now
        logger.debug("Cooldown started for %s", rule_name)

    @asynccontextmanager
    async def hold(self, rule_name: str) -> AsyncIterator[None]:
        """Serialize the publish decision for one rule.

        The lock is dropped once nobody holds or waits on it.
        """
        lock = self._locks.setdefault(rule_name, asyncio.Lock())
        self._holders[rule_name] = self._holders.get(rule_name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[rule_name] -= 1
            if not self._holders[rule_name]:
                del self._holders[rule_name]
                del self._locks[rule_name]

    def snapshot(self) -> dict[str, str]:
        """Return the last-publish time of every rule as ISO 8601 strings."""
        return {rule: ts.isoformat() for rule, ts in self._last_published.items()}
