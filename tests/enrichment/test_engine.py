"""Tests for the enrichment engine."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from flashwatch_relay.enrichment.chain import RPCError
from flashwatch_relay.enrichment.engine import EnrichmentEngine
from flashwatch_relay.enrichment.entities import KnownEntityTable
from flashwatch_relay.enrichment.models import AccountState
from flashwatch_relay.enrichment.naming import NameResolutionError
from flashwatch_relay.ingress.models import AlertEvent

SENDER = "0x1234567890abcdef1234567890abcdef12345678"
COINBASE_HOT = "0x71660c4005ba85c37ccec55d0c4493e66fe775d3"


def _event(from_address=SENDER, to_address=COINBASE_HOT) -> AlertEvent:
    return AlertEvent.from_dict(
        {
            "rule_name": "whale-transfer",
            "tx": {"from": from_address, "to": to_address, "value_eth": 120.0},
            "block_number": 1,
        }
    )


def _state(address: str, nonce: int = 10, eth: int = 2) -> AccountState:
    return AccountState(
        address=address,
        transaction_count=nonce,
        balance_wei=Decimal(eth) * Decimal(10**18),
    )


@pytest.fixture
def chain() -> MagicMock:
    """Create a chain client that answers for any address."""
    chain = MagicMock()
    chain.get_account_state = AsyncMock(side_effect=lambda address: _state(address))
    return chain


@pytest.fixture
def names() -> MagicMock:
    """Create a resolver that names the sender only."""
    names = MagicMock()
    names.resolve = AsyncMock(
        side_effect=lambda address: "whale.eth" if address == SENDER else None
    )
    return names


class TestEnrichmentEngine:
    """Tests for the EnrichmentEngine class."""

    @pytest.mark.asyncio
    async def test_enrich_all_sources(self, chain: MagicMock, names: MagicMock) -> None:
        """Every source contributes when all lookups succeed."""
        engine = EnrichmentEngine(KnownEntityTable(), chain, names)

        result = await engine.enrich(_event())

        assert result.failures == ()
        assert result.origin is not None
        assert result.origin.resolved_name == "whale.eth"
        assert result.origin.display_name == "whale.eth"
        assert result.origin.transaction_count == 10
        assert result.origin.balance_eth == Decimal(2)
        assert result.origin.is_known is False

        assert result.destination is not None
        assert result.destination.label == "Coinbase Hot Wallet"
        assert result.destination.is_known is True
        assert result.destination.display_name == "Coinbase Hot Wallet"

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self) -> None:
        """All four lookups are in flight at the same time."""
        started = 0
        all_started = asyncio.Event()

        async def lookup(_address):
            nonlocal started
            started += 1
            if started == 4:
                all_started.set()
            await asyncio.wait_for(all_started.wait(), timeout=1.0)
            return None

        chain = MagicMock()
        chain.get_account_state = AsyncMock(side_effect=lookup)
        names = MagicMock()
        names.resolve = AsyncMock(side_effect=lookup)
        engine = EnrichmentEngine(KnownEntityTable(), chain, names)

        result = await engine.enrich(_event())

        assert result.failures == ()
        assert started == 4

    @pytest.mark.asyncio
    async def test_single_failure_degrades_one_field(
        self, chain: MagicMock, names: MagicMock
    ) -> None:
        """A failed lookup leaves only its own fields empty."""

        def account(address):
            if address == SENDER:
                raise RPCError("node down")
            return _state(address)

        chain.get_account_state.side_effect = account
        engine = EnrichmentEngine(KnownEntityTable(), chain, names)

        result = await engine.enrich(_event())

        assert result.failures == ("from.account_state",)
        assert result.origin is not None
        assert result.origin.transaction_count is None
        assert result.origin.resolved_name == "whale.eth"
        assert result.destination is not None
        assert result.destination.transaction_count == 10

    @pytest.mark.asyncio
    async def test_all_failures_still_complete(self) -> None:
        """When every lookup fails, the result keeps addresses and labels."""
        chain = MagicMock()
        chain.get_account_state = AsyncMock(side_effect=RPCError("node down"))
        names = MagicMock()
        names.resolve = AsyncMock(side_effect=NameResolutionError("timeout"))
        engine = EnrichmentEngine(KnownEntityTable(), chain, names)

        result = await engine.enrich(_event())

        assert result.fully_degraded
        assert len(result.failures) == 4
        assert result.origin is not None
        assert result.origin.address == SENDER
        assert result.origin.display_name == SENDER
        assert result.destination is not None
        assert result.destination.label == "Coinbase Hot Wallet"

    @pytest.mark.asyncio
    async def test_unexpected_exception_degrades(self, names: MagicMock) -> None:
        """Any exception, not only client errors, degrades to None."""
        chain = MagicMock()
        chain.get_account_state = AsyncMock(side_effect=KeyError("surprise"))
        engine = EnrichmentEngine(KnownEntityTable(), chain, names)

        result = await engine.enrich(_event())

        assert set(result.failures) == {"from.account_state", "to.account_state"}

    @pytest.mark.asyncio
    async def test_lookup_timeout_bounds_sources(self, names: MagicMock) -> None:
        """The outer lookup timeout cuts off slow sources."""

        async def hang(_address):
            await asyncio.sleep(5)

        chain = MagicMock()
        chain.get_account_state = AsyncMock(side_effect=hang)
        engine = EnrichmentEngine(KnownEntityTable(), chain, names, lookup_timeout=0.05)

        result = await asyncio.wait_for(engine.enrich(_event()), timeout=1.0)

        assert "from.account_state" in result.failures
        assert result.origin is not None
        assert result.origin.resolved_name == "whale.eth"

    @pytest.mark.asyncio
    async def test_missing_sources_skip_lookups(self) -> None:
        """Without clients only the entity table is used."""
        engine = EnrichmentEngine(KnownEntityTable())

        result = await engine.enrich(_event())

        assert result.failures == ()
        assert result.destination is not None
        assert result.destination.label == "Coinbase Hot Wallet"
        assert result.destination.transaction_count is None

    @pytest.mark.asyncio
    async def test_missing_address_gives_none_side(
        self, chain: MagicMock, names: MagicMock
    ) -> None:
        """An alert without a recipient has no destination."""
        engine = EnrichmentEngine(KnownEntityTable(), chain, names)

        result = await engine.enrich(_event(to_address=None))

        assert result.destination is None
        assert result.origin is not None
        assert chain.get_account_state.await_count == 1
