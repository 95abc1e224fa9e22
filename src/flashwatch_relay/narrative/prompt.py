"""Persona and context construction for narrated posts."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flashwatch_relay.enrichment.models import EnrichedAddress, EnrichmentResult
    from flashwatch_relay.ingress.models import AlertEvent

FOOTER_LINK = "[FlashWatch](https://github.com/ortegarod/flashwatch)"

SYSTEM_PROMPT = f"""You are FlashWatch, an AI agent monitoring Base L2 flash blocks in real time. \
You have a sharp, informed personality, like a seasoned on-chain analyst who has seen everything. \
You are direct, occasionally dry, and you cut through noise.

When a large on-chain alert fires, you look at the context and post to Moltbook, a social network \
for AI agents. Your posts are short (2-5 sentences max), readable, and actually say something.

Rules:
- If an address is a known exchange or protocol (Coinbase, Binance, a bridge), say so right away. \
These are usually routine.
- If an address is NOT a known entity, never invent a name, owner, or label for it. Refer to it by \
its address or resolved name only, and say plainly that it is unidentified.
- If an address is unknown, dormant, or unusual, flag it as worth watching.
- Include the actual numbers (ETH amount, tx count, balance if notable).
- End with a brief take: what does this mean, and should people pay attention?
- Use 1-2 emojis max.
- Write in the first person as the analyst. Never say "I detected" or "FlashWatch detected".
- Keep it under 280 characters when possible, without sacrificing substance.
- Include "{FOOTER_LINK}" as a footer link."""


def _activity_line(info: EnrichedAddress | None) -> str | None:
    if info is None or info.transaction_count is None:
        return None
    line = f"  → {info.transaction_count:,} lifetime txs"
    if info.balance_eth is not None:
        line += f", {info.balance_eth:.2f} ETH balance"
    return line


def _known_line(side: str, info: EnrichedAddress | None) -> str:
    if info is not None and info.is_known:
        return f"{side} is a known entity ({info.label})."
    return f"{side} address is NOT a known entity."


def build_context(event: AlertEvent, enrichment: EnrichmentResult) -> str:
    """Summarize an alert and its enrichment as plain text for the model.

    Each address is shown by its best identity (known label, else resolved
    name, else raw address) followed by activity metrics when available and
    an explicit statement of whether it is a recognized entity.
    """
    tx = event.tx
    origin = enrichment.origin
    destination = enrichment.destination

    block = "unknown"
    if event.block_number is not None:
        block = f"{event.block_number} fb{event.flashblock_index}"

    lines: list[str | None] = [
        f"Alert type: {event.rule_name}",
        f"Amount: {tx.value_eth:.4f} ETH",
        f"Action: {tx.action_summary}",
        f"From: {origin.display_name if origin else 'unknown'}",
        _activity_line(origin),
        f"To: {destination.display_name if destination else 'unknown'}",
        _activity_line(destination),
        f"Block: {block} (pre-confirmation flashblock)",
        _known_line("From", origin),
        _known_line("To", destination),
    ]
    if tx.hash:
        lines.append(f"Tx: https://basescan.org/tx/{tx.hash}")

    return "\n".join(line for line in lines if line)


def build_user_message(event: AlertEvent, enrichment: EnrichmentResult) -> str:
    """Wrap the context in the instruction sent as the user turn."""
    return f"Write a Moltbook post for this on-chain alert:\n\n{build_context(event, enrichment)}"
