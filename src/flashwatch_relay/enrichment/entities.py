"""Known-entity table for address labelling.

The table is loaded once at startup and never changes afterwards. It is
handed to the enrichment engine and the template formatter as an explicit
dependency rather than read from a module global.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from flashwatch_relay.enrichment.entity_data import get_default_entities

logger = logging.getLogger(__name__)


class KnownEntityTable:
    """Immutable, case-insensitive address to label lookup.

    Example:
        ```python
        table = KnownEntityTable()
        table.label("0x71660C4005BA85C37CCEC55D0C4493E66FE775D3")
        # 'Coinbase Hot Wallet'
        ```
    """

    def __init__(
        self,
        custom_entities: Mapping[str, str] | None = None,
        *,
        include_defaults: bool = True,
    ) -> None:
        """Initialize the table.

        Args:
            custom_entities: Additional address labels; these win over defaults.
            include_defaults: Whether to include the built-in labels.
        """
        entities: dict[str, str] = {}
        if include_defaults:
            entities.update(get_default_entities())
        if custom_entities:
            for address, label in custom_entities.items():
                entities[address.lower()] = label

        self._entities: Mapping[str, str] = MappingProxyType(entities)
        logger.info("KnownEntityTable initialized with %d labels", len(entities))

    def label(self, address: str | None) -> str | None:
        """Return the label for an address, or None if it is not known."""
        if not address:
            return None
        return self._entities.get(address.lower())

    def is_known(self, address: str | None) -> bool:
        """Check if an address has a label."""
        return self.label(address) is not None

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.is_known(address)
