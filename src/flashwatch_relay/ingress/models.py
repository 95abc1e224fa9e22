"""Data models for inbound alert events."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from flashwatch_relay.exceptions import AlertParseError


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise AlertParseError(f"'{key}' must be a string")
    return value or None


def _optional_int(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass; a block number of True is malformed
    if isinstance(value, bool) or not isinstance(value, int):
        raise AlertParseError(f"'{key}' must be an integer")
    return value


@dataclass(frozen=True)
class AlertTx:
    """Transaction descriptor carried by an alert."""

    hash: str | None
    from_address: str | None
    to_address: str | None
    to_label: str | None = None
    value_eth: float = 0.0
    action: str | None = None
    category: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AlertTx:
        """Create an AlertTx from the detector's JSON object.

        A missing or null value is treated as 0 ETH.
        """
        if not isinstance(data, dict):
            raise AlertParseError("'tx' must be an object")

        raw_value = data.get("value_eth")
        if raw_value is None:
            value = 0.0
        elif isinstance(raw_value, bool) or not isinstance(raw_value, int | float):
            raise AlertParseError("'value_eth' must be a number")
        else:
            try:
                value = float(raw_value)
            except OverflowError as e:
                raise AlertParseError("'value_eth' is out of range") from e
            if not math.isfinite(value):
                raise AlertParseError("'value_eth' must be finite")

        return cls(
            hash=_optional_str(data, "hash"),
            from_address=_optional_str(data, "from"),
            to_address=_optional_str(data, "to"),
            to_label=_optional_str(data, "to_label"),
            value_eth=value,
            action=_optional_str(data, "action"),
            category=_optional_str(data, "category"),
        )

    @property
    def action_summary(self) -> str:
        """Return the human-readable action, falling back to the category."""
        return self.action or self.category or "transfer"


@dataclass(frozen=True)
class AlertEvent:
    """An alert emitted by the upstream flashblock detector.

    Attributes:
        rule_name: Name of the detector rule that fired.
        tx: The transaction that triggered the rule.
        block_number: Block the transaction was seen in, if known.
        flashblock_index: Sub-block (flashblock) index within the block.
        timestamp: Producer-side unix timestamp, informational only.
    """

    rule_name: str
    tx: AlertTx
    block_number: int | None = None
    flashblock_index: int = 0
    timestamp: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> AlertEvent:
        """Create an AlertEvent from a decoded webhook body.

        Raises:
            AlertParseError: If the body does not describe an alert.
        """
        if not isinstance(data, dict):
            raise AlertParseError("alert body must be a JSON object")

        rule_name = data.get("rule_name")
        if not isinstance(rule_name, str) or not rule_name.strip():
            raise AlertParseError("'rule_name' is required")

        if "tx" not in data:
            raise AlertParseError("'tx' is required")

        return cls(
            rule_name=rule_name,
            tx=AlertTx.from_dict(data["tx"]),
            block_number=_optional_int(data, "block_number"),
            flashblock_index=_optional_int(data, "flashblock_index") or 0,
            timestamp=_optional_int(data, "timestamp"),
        )

    @property
    def value_eth(self) -> float:
        """Return the transferred value in ETH."""
        return self.tx.value_eth
