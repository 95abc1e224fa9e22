"""Concurrent, failure-tolerant address enrichment.

For each side of an alert the engine combines three sources:

- the known-entity table (local, always answers),
- on-chain account state (transaction count and balance),
- reverse name resolution.

All network lookups for both addresses run at once and are joined with
``asyncio.gather(..., return_exceptions=True)``. A lookup that fails for
any reason leaves its fields as None; the engine itself never raises for
a lookup failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, TypeVar

from flashwatch_relay.enrichment.models import AccountState, EnrichedAddress, EnrichmentResult
from flashwatch_relay.metrics import ENRICHMENT_FAILURES

if TYPE_CHECKING:
    from flashwatch_relay.enrichment.chain import ChainClient
    from flashwatch_relay.enrichment.entities import KnownEntityTable
    from flashwatch_relay.enrichment.naming import NameResolver
    from flashwatch_relay.ingress.models import AlertEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOURCE_ACCOUNT = "account_state"
SOURCE_NAME = "name"


async def _none() -> None:
    return None


class EnrichmentEngine:
    """Gather identity and activity context for an alert's addresses.

    Example:
        ```python
        engine = EnrichmentEngine(KnownEntityTable(), chain_client, name_resolver)
        result = await engine.enrich(event)
        result.destination.display_name
        ```
    """

    def __init__(
        self,
        entities: KnownEntityTable,
        chain: ChainClient | None = None,
        names: NameResolver | None = None,
        *,
        lookup_timeout: float | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            entities: Known-entity table used for authoritative labels.
            chain: Account-state client; None disables that source.
            names: Reverse name resolver; None disables that source.
            lookup_timeout: Optional outer bound applied to every lookup, on
                top of each client's own timeout.
        """
        self._entities = entities
        self._chain = chain
        self._names = names
        self._lookup_timeout = lookup_timeout

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        if self._lookup_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, self._lookup_timeout)

    def _account_lookup(self, address: str | None) -> Awaitable[AccountState | None]:
        if not address or self._chain is None:
            return _none()
        return self._bounded(self._chain.get_account_state(address))

    def _name_lookup(self, address: str | None) -> Awaitable[str | None]:
        if not address or self._names is None:
            return _none()
        return self._bounded(self._names.resolve(address))

    def _settle(
        self,
        result: Any,
        *,
        side: str,
        source: str,
        address: str | None,
        failures: list[str],
    ) -> Any:
        """Map a gathered result to a value, turning exceptions into None."""
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.warning(
                "Enrichment %s lookup failed for %s %s: %s",
                source,
                side,
                address,
                str(result) or type(result).__name__,
            )
            ENRICHMENT_FAILURES.labels(source=source).inc()
            failures.append(f"{side}.{source}")
            return None
        return result

    def _merge(
        self,
        address: str | None,
        state: AccountState | None,
        name: str | None,
    ) -> EnrichedAddress | None:
        if not address:
            return None
        label = self._entities.label(address)
        return EnrichedAddress(
            address=address,
            label=label,
            resolved_name=name,
            transaction_count=state.transaction_count if state else None,
            balance_eth=state.balance_eth if state else None,
            is_known=label is not None,
        )

    async def enrich(self, event: AlertEvent) -> EnrichmentResult:
        """Enrich both addresses of an alert.

        Args:
            event: The alert to enrich.

        Returns:
            EnrichmentResult that is always structurally complete.
        """
        origin = event.tx.from_address
        destination = event.tx.to_address

        results = await asyncio.gather(
            self._account_lookup(origin),
            self._account_lookup(destination),
            self._name_lookup(origin),
            self._name_lookup(destination),
            return_exceptions=True,
        )

        failures: list[str] = []
        origin_state = self._settle(
            results[0], side="from", source=SOURCE_ACCOUNT, address=origin, failures=failures
        )
        destination_state = self._settle(
            results[1], side="to", source=SOURCE_ACCOUNT, address=destination, failures=failures
        )
        origin_name = self._settle(
            results[2], side="from", source=SOURCE_NAME, address=origin, failures=failures
        )
        destination_name = self._settle(
            results[3], side="to", source=SOURCE_NAME, address=destination, failures=failures
        )

        result = EnrichmentResult(
            origin=self._merge(origin, origin_state, origin_name),
            destination=self._merge(destination, destination_state, destination_name),
            failures=tuple(failures),
        )

        logger.info(
            "Enriched %s: from=%s, to=%s (%d lookups degraded)",
            event.rule_name,
            result.origin.display_name if result.origin else "unknown",
            result.destination.display_name if result.destination else "unknown",
            len(failures),
        )
        return result
