"""Enrichment layer - best-effort identity and activity lookups."""

from flashwatch_relay.enrichment.chain import ChainClient, ChainClientError, RPCError
from flashwatch_relay.enrichment.engine import EnrichmentEngine
from flashwatch_relay.enrichment.entities import KnownEntityTable
from flashwatch_relay.enrichment.models import AccountState, EnrichedAddress, EnrichmentResult
from flashwatch_relay.enrichment.naming import NameResolutionError, NameResolver

__all__ = [
    "AccountState",
    "ChainClient",
    "ChainClientError",
    "EnrichedAddress",
    "EnrichmentEngine",
    "EnrichmentResult",
    "KnownEntityTable",
    "NameResolutionError",
    "NameResolver",
    "RPCError",
]
