"""Data models for the enrichment module."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

WEI_PER_ETH = Decimal("1000000000000000000")


@dataclass(frozen=True)
class AccountState:
    """On-chain activity for one address."""

    address: str
    transaction_count: int
    balance_wei: Decimal

    @property
    def balance_eth(self) -> Decimal:
        """Return balance in ETH."""
        return self.balance_wei / WEI_PER_ETH


@dataclass(frozen=True)
class EnrichedAddress:
    """Best-effort identity and activity for one address.

    The known-entity label is authoritative and always filled in when the
    table has one. Every network-sourced field may be None.

    Attributes:
        address: The address as given by the alert.
        label: Known-entity label, if any.
        resolved_name: Reverse-resolved name (e.g. ENS), if any.
        transaction_count: Lifetime outgoing transaction count, if looked up.
        balance_eth: Current balance in ETH, if looked up.
        is_known: True if the known-entity table recognizes the address.
    """

    address: str
    label: str | None = None
    resolved_name: str | None = None
    transaction_count: int | None = None
    balance_eth: Decimal | None = None
    is_known: bool = False

    @property
    def display_name(self) -> str:
        """Return the best available identity for the address."""
        return self.label or self.resolved_name or self.address

    @property
    def has_activity(self) -> bool:
        """Return True if account state was retrieved."""
        return self.transaction_count is not None


@dataclass(frozen=True)
class EnrichmentResult:
    """Enrichment for the two sides of an alert.

    Attributes:
        origin: Sending address, or None if the alert has no sender.
        destination: Receiving address, or None if the alert has no recipient.
        failures: Names of the lookups that degraded to None.
    """

    origin: EnrichedAddress | None
    destination: EnrichedAddress | None
    failures: tuple[str, ...] = ()

    @property
    def fully_degraded(self) -> bool:
        """Return True if no network lookup produced data."""
        sides = [s for s in (self.origin, self.destination) if s is not None]
        return all(
            s.resolved_name is None and s.transaction_count is None for s in sides
        )
