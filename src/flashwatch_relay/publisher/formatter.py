"""Template post formatter.

This module renders alerts into fixed-layout Moltbook posts without any
network access. It is the fallback that guarantees every admitted alert
has publishable content, so it must never fail and must return the same
text for the same alert.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from flashwatch_relay.publisher.models import ContentType, Post

if TYPE_CHECKING:
    from flashwatch_relay.enrichment.entities import KnownEntityTable
    from flashwatch_relay.ingress.models import AlertEvent

FOOTER = "[FlashWatch](https://github.com/ortegarod/flashwatch) — real-time Base monitoring"
CHAIN_NAME = "Base"

# Tier thresholds in ETH
EXCEPTIONAL_THRESHOLD = 500.0
LARGE_THRESHOLD = 200.0
NOTABLE_THRESHOLD = 100.0


class Tier(Enum):
    """Presentation tier, by transferred value."""

    GENERIC = "generic"
    NOTABLE = "notable"
    LARGE = "large"
    EXCEPTIONAL = "exceptional"


TIER_MARKERS = {
    Tier.EXCEPTIONAL: "🐋",
    Tier.LARGE: "🦈",
    Tier.NOTABLE: "🔥",
    Tier.GENERIC: "🚨",
}


def truncate_address(address: str, chars: int = 4) -> str:
    """Truncate an address to 0x1234...5678 format."""
    if len(address) < chars * 2 + 4:
        return address
    return f"{address[: chars + 2]}...{address[-chars:]}"


def get_tier(value_eth: float) -> Tier:
    """Get the presentation tier for a value."""
    if value_eth >= EXCEPTIONAL_THRESHOLD:
        return Tier.EXCEPTIONAL
    if value_eth >= LARGE_THRESHOLD:
        return Tier.LARGE
    if value_eth >= NOTABLE_THRESHOLD:
        return Tier.NOTABLE
    return Tier.GENERIC


def humanize_rule(rule_name: str) -> str:
    """Turn a rule id like ``whale-transfer`` into ``whale transfer``."""
    return rule_name.replace("-", " ").replace("_", " ")


class TemplateFormatter:
    """Render alerts into deterministic template posts.

    Args:
        entities: Optional known-entity table used to label an unlabelled
            destination. The table is immutable, so output stays a pure
            function of the alert.
    """

    def __init__(self, entities: KnownEntityTable | None = None) -> None:
        self._entities = entities

    def target(self, event: AlertEvent) -> str:
        """Return the counterpart label or a truncated raw address."""
        tx = event.tx
        if tx.to_label:
            return tx.to_label
        if self._entities is not None:
            label = self._entities.label(tx.to_address)
            if label:
                return label
        if tx.to_address:
            return truncate_address(tx.to_address)
        return "unknown"

    def format_title(self, event: AlertEvent) -> str:
        """Build the post title."""
        value = f" — {event.value_eth:.2f} ETH" if event.value_eth > 0 else ""
        label = f" → {event.tx.to_label}" if event.tx.to_label else ""
        return f"{humanize_rule(event.rule_name)}{value}{label} on {CHAIN_NAME}"

    def format_content(self, event: AlertEvent) -> str:
        """Build the post body."""
        tx = event.tx
        marker = TIER_MARKERS[get_tier(tx.value_eth)]
        value = f"{tx.value_eth:.4f} ETH " if tx.value_eth > 0 else ""
        block = str(event.block_number) if event.block_number is not None else "?"

        lines = [
            f"{marker} **{humanize_rule(event.rule_name).upper()}** on {CHAIN_NAME}",
            "",
            f"• {tx.action_summary} — {value}→ {self.target(event)}",
            f"• Block {block} fb{event.flashblock_index} (pre-confirmation flashblock)",
            "",
            FOOTER,
        ]
        return "\n".join(lines)

    def format(
        self,
        event: AlertEvent,
        content_type: ContentType = ContentType.TEMPLATE,
    ) -> Post:
        """Render a full post for an alert.

        Args:
            event: The alert to render.
            content_type: TEMPLATE, or AI_FALLBACK when replacing a failed
                narrative.
        """
        return Post(
            title=self.format_title(event),
            content=self.format_content(event),
            content_type=content_type,
        )
