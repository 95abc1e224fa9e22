"""Tests for the known-entity table."""

import pytest

from flashwatch_relay.enrichment.entities import KnownEntityTable
from flashwatch_relay.enrichment.entity_data import (
    BRIDGE_ADDRESSES,
    CEX_ADDRESSES,
    DEX_ADDRESSES,
    TOKEN_ADDRESSES,
    get_default_entities,
)

COINBASE_HOT = "0x71660c4005ba85c37ccec55d0c4493e66fe775d3"
UNKNOWN = "0x1234567890abcdef1234567890abcdef12345678"


class TestEntityData:
    """Tests for the built-in address labels."""

    def test_groups_populated(self) -> None:
        """Every group carries at least one label."""
        assert len(CEX_ADDRESSES) == 6
        assert len(BRIDGE_ADDRESSES) == 2
        assert len(DEX_ADDRESSES) == 2
        assert len(TOKEN_ADDRESSES) == 1

    def test_addresses_are_lowercase(self) -> None:
        """Stored addresses are lower-case hex."""
        for address in get_default_entities():
            assert address == address.lower()
            assert address.startswith("0x")
            assert len(address) == 42

    def test_defaults_are_read_only(self) -> None:
        """The default mapping cannot be modified."""
        entities = get_default_entities()
        with pytest.raises(TypeError):
            entities["0xdead"] = "Mallory"  # type: ignore[index]


class TestKnownEntityTable:
    """Tests for KnownEntityTable."""

    @pytest.fixture
    def table(self) -> KnownEntityTable:
        """Create a table with the built-in labels."""
        return KnownEntityTable()

    def test_label_known(self, table: KnownEntityTable) -> None:
        """Known addresses return their label."""
        assert table.label(COINBASE_HOT) == "Coinbase Hot Wallet"

    def test_label_case_insensitive(self, table: KnownEntityTable) -> None:
        """Lookups ignore address case."""
        assert table.label(COINBASE_HOT.upper().replace("0X", "0x")) == "Coinbase Hot Wallet"

    def test_label_unknown(self, table: KnownEntityTable) -> None:
        """Unknown addresses have no label."""
        assert table.label(UNKNOWN) is None
        assert not table.is_known(UNKNOWN)

    @pytest.mark.parametrize("address", [None, ""])
    def test_label_empty(self, table: KnownEntityTable, address) -> None:
        """Absent addresses have no label."""
        assert table.label(address) is None

    def test_contains(self, table: KnownEntityTable) -> None:
        """Membership works on address strings only."""
        assert COINBASE_HOT in table
        assert UNKNOWN not in table
        assert 42 not in table

    def test_len_matches_defaults(self, table: KnownEntityTable) -> None:
        """The default table holds every built-in label."""
        assert len(table) == len(get_default_entities())

    def test_custom_entities_override(self) -> None:
        """Custom labels win over defaults and are case-normalized."""
        table = KnownEntityTable({COINBASE_HOT.upper().replace("0X", "0x"): "CB Hot"})
        assert table.label(COINBASE_HOT) == "CB Hot"

    def test_without_defaults(self) -> None:
        """Defaults can be excluded."""
        table = KnownEntityTable({UNKNOWN: "Test Wallet"}, include_defaults=False)
        assert len(table) == 1
        assert table.label(COINBASE_HOT) is None
        assert table.label(UNKNOWN) == "Test Wallet"
