"""Tests for narrative context construction."""

from decimal import Decimal

import pytest

from flashwatch_relay.enrichment.models import EnrichedAddress, EnrichmentResult
from flashwatch_relay.ingress.models import AlertEvent
from flashwatch_relay.narrative.prompt import (
    FOOTER_LINK,
    SYSTEM_PROMPT,
    build_context,
    build_user_message,
)

SENDER = "0x1234567890abcdef1234567890abcdef12345678"
COINBASE_HOT = "0x71660c4005ba85c37ccec55d0c4493e66fe775d3"


@pytest.fixture
def event() -> AlertEvent:
    """Create a material alert."""
    return AlertEvent.from_dict(
        {
            "rule_name": "whale-transfer",
            "tx": {
                "hash": "0xabc",
                "from": SENDER,
                "to": COINBASE_HOT,
                "value_eth": 120.0,
                "action": "Transfer",
            },
            "block_number": 100,
            "flashblock_index": 3,
        }
    )


@pytest.fixture
def enrichment() -> EnrichmentResult:
    """Create enrichment with an unknown sender and a known recipient."""
    return EnrichmentResult(
        origin=EnrichedAddress(
            address=SENDER,
            resolved_name="whale.eth",
            transaction_count=1234,
            balance_eth=Decimal("56.789"),
        ),
        destination=EnrichedAddress(
            address=COINBASE_HOT,
            label="Coinbase Hot Wallet",
            is_known=True,
        ),
    )


class TestSystemPrompt:
    """Tests for the persona instruction."""

    def test_forbids_inventing_names(self) -> None:
        """Unknown addresses must not be given invented names."""
        assert "never invent a name" in SYSTEM_PROMPT

    def test_includes_footer(self) -> None:
        """The footer link is part of the instruction."""
        assert FOOTER_LINK in SYSTEM_PROMPT


class TestBuildContext:
    """Tests for build_context."""

    def test_alert_fields(self, event: AlertEvent, enrichment: EnrichmentResult) -> None:
        """The alert's own fields are always present."""
        context = build_context(event, enrichment)

        assert "Alert type: whale-transfer" in context
        assert "Amount: 120.0000 ETH" in context
        assert "Action: Transfer" in context
        assert "Block: 100 fb3 (pre-confirmation flashblock)" in context
        assert "Tx: https://basescan.org/tx/0xabc" in context

    def test_identity_prefers_label_then_name(
        self, event: AlertEvent, enrichment: EnrichmentResult
    ) -> None:
        """Display names follow label, then resolved name."""
        context = build_context(event, enrichment)

        assert "From: whale.eth" in context
        assert "To: Coinbase Hot Wallet" in context

    def test_activity_metrics(self, event: AlertEvent, enrichment: EnrichmentResult) -> None:
        """Activity metrics appear only where they were looked up."""
        context = build_context(event, enrichment)

        assert "1,234 lifetime txs, 56.79 ETH balance" in context
        assert context.count("lifetime txs") == 1

    def test_known_entity_statements(
        self, event: AlertEvent, enrichment: EnrichmentResult
    ) -> None:
        """Each side states explicitly whether it is a known entity."""
        context = build_context(event, enrichment)

        assert "From address is NOT a known entity." in context
        assert "To is a known entity (Coinbase Hot Wallet)." in context

    def test_fully_degraded_enrichment(self, event: AlertEvent) -> None:
        """Raw addresses are shown when nothing could be looked up."""
        degraded = EnrichmentResult(
            origin=EnrichedAddress(address=SENDER),
            destination=EnrichedAddress(address=COINBASE_HOT),
            failures=("from.name", "to.name"),
        )

        context = build_context(event, degraded)

        assert f"From: {SENDER}" in context
        assert "lifetime txs" not in context
        assert "To address is NOT a known entity." in context

    def test_missing_block_and_hash(self, enrichment: EnrichmentResult) -> None:
        """Unknown block and absent hash are handled."""
        event = AlertEvent.from_dict({"rule_name": "r", "tx": {"value_eth": 60}})

        context = build_context(event, enrichment)

        assert "Block: unknown" in context
        assert "basescan" not in context

    def test_user_message_wraps_context(
        self, event: AlertEvent, enrichment: EnrichmentResult
    ) -> None:
        """The user turn carries the full context."""
        message = build_user_message(event, enrichment)

        assert message.startswith("Write a Moltbook post")
        assert build_context(event, enrichment) in message
