"""Tests for the per-rule cooldown gate."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from flashwatch_relay.publisher.cooldown import DEFAULT_COOLDOWN_SECONDS, CooldownGate

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def gate(clock: FakeClock) -> CooldownGate:
    """Create a gate with a ten-minute cooldown."""
    return CooldownGate(cooldown_seconds=600, clock=clock)


class TestCooldownGate:
    """Tests for the CooldownGate class."""

    def test_default_cooldown(self) -> None:
        """The default window is ten minutes."""
        assert CooldownGate().cooldown_seconds == DEFAULT_COOLDOWN_SECONDS == 600.0

    def test_admits_unseen_rule(self, gate: CooldownGate) -> None:
        """A rule that never posted is admitted."""
        assert gate.admit("whale-transfer") is True
        assert gate.elapsed("whale-transfer") is None
        assert gate.remaining("whale-transfer") == 0.0

    def test_admit_does_not_start_cooldown(self, gate: CooldownGate) -> None:
        """Admission alone leaves the state untouched."""
        gate.admit("whale-transfer")
        gate.admit("whale-transfer")

        assert gate.snapshot() == {}

    def test_rejects_within_window(self, gate: CooldownGate, clock: FakeClock) -> None:
        """A rule that posted recently is rejected."""
        gate.record("whale-transfer")
        clock.advance(599)

        assert gate.admit("whale-transfer") is False
        assert gate.remaining("whale-transfer") == pytest.approx(1.0)

    def test_admits_at_window_end(self, gate: CooldownGate, clock: FakeClock) -> None:
        """A rule is admitted once the full window has passed."""
        gate.record("whale-transfer")
        clock.advance(600)

        assert gate.admit("whale-transfer") is True

    def test_rules_are_independent(self, gate: CooldownGate) -> None:
        """Cooldown on one rule does not affect another."""
        gate.record("whale-transfer")

        assert gate.admit("whale-transfer") is False
        assert gate.admit("bridge-outflow") is True

    def test_zero_cooldown_always_admits(self, clock: FakeClock) -> None:
        """A zero window never rejects."""
        gate = CooldownGate(cooldown_seconds=0, clock=clock)
        gate.record("whale-transfer")

        assert gate.admit("whale-transfer") is True

    def test_explicit_times(self, gate: CooldownGate) -> None:
        """Explicit timestamps override the clock."""
        gate.record("whale-transfer", when=T0)

        assert gate.admit("whale-transfer", now=T0 + timedelta(seconds=300)) is False
        assert gate.elapsed("whale-transfer", now=T0 + timedelta(seconds=300)) == 300.0

    def test_snapshot_is_iso(self, gate: CooldownGate) -> None:
        """The snapshot maps rules to ISO 8601 timestamps."""
        gate.record("whale-transfer")

        assert gate.snapshot() == {"whale-transfer": T0.isoformat()}

    def test_snapshot_is_a_copy(self, gate: CooldownGate) -> None:
        """Mutating the snapshot does not change the gate."""
        gate.record("whale-transfer")
        gate.snapshot().clear()

        assert "whale-transfer" in gate.snapshot()

    def test_record_forgets_expired_rules(self, gate: CooldownGate, clock: FakeClock) -> None:
        """Rules past their window are dropped when a new window starts."""
        gate.record("whale-transfer")
        clock.advance(600)
        gate.record("bridge-outflow")

        assert gate.snapshot() == {"bridge-outflow": clock.now.isoformat()}
        assert gate.admit("whale-transfer") is True


class TestHold:
    """Tests for the per-rule publish lock."""

    @pytest.mark.asyncio
    async def test_hold_serializes_same_rule(self, gate: CooldownGate) -> None:
        """Two holders of the same rule never overlap."""
        active = 0
        peak = 0

        async def worker() -> None:
            nonlocal active, peak
            async with gate.hold("whale-transfer"):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(worker(), worker(), worker())

        assert peak == 1

    @pytest.mark.asyncio
    async def test_hold_allows_different_rules(self, gate: CooldownGate) -> None:
        """Different rules can be held at the same time."""
        inside = asyncio.Event()
        other_done = asyncio.Event()

        async def first() -> None:
            async with gate.hold("whale-transfer"):
                inside.set()
                await other_done.wait()

        async def second() -> None:
            await inside.wait()
            async with gate.hold("bridge-outflow"):
                other_done.set()

        await asyncio.wait_for(asyncio.gather(first(), second()), timeout=1.0)

    @pytest.mark.asyncio
    async def test_hold_releases_lock_entries(self, gate: CooldownGate) -> None:
        """Locks are not kept for rules nobody is holding."""
        for rule in ("a", "b", "c"):
            async with gate.hold(rule):
                assert rule in gate._locks

        assert gate._locks == {}
        assert gate._holders == {}

    @pytest.mark.asyncio
    async def test_hold_keeps_lock_while_waiting(self, gate: CooldownGate) -> None:
        """A waiter shares the holder's lock until both are done."""
        inside = asyncio.Event()
        release = asyncio.Event()
        order: list[str] = []

        async def first() -> None:
            async with gate.hold("whale-transfer"):
                inside.set()
                await release.wait()
                order.append("first")

        async def second() -> None:
            await inside.wait()
            async with gate.hold("whale-transfer"):
                order.append("second")

        tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
        await inside.wait()
        await asyncio.sleep(0.01)
        assert gate._holders["whale-transfer"] == 2

        release.set()
        await asyncio.wait_for(asyncio.gather(*tasks), timeout=1.0)

        assert order == ["first", "second"]
        assert gate._locks == {}
