"""Known Base and Ethereum entity addresses.

Addresses are stored lower-case. Labels are shown verbatim in posts, so
keep them short and recognizable.

Sources:
- Basescan / Etherscan labels
- Official protocol documentation
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

# Centralized exchange wallets
CEX_ADDRESSES: dict[str, str] = {
    "0x71660c4005ba85c37ccec55d0c4493e66fe775d3": "Coinbase Hot Wallet",
    "0xa9d1e08c7793af67e9d92fe308d5697fb81d3e43": "Coinbase Cold Storage",
    "0x503828976d22510aad0201ac7ec88293211d23da": "Coinbase 2",
    "0xddfabcdc4d8ffc6d5beaf154f18b778f892a0740": "Coinbase 3",
    "0x28c6c06298d514db089934071355e5743bf21d60": "Binance Hot Wallet",
    "0x21a31ee1afc51d94c2efccaa2092ad1028285549": "Binance Cold Wallet",
}

# Canonical bridges
BRIDGE_ADDRESSES: dict[str, str] = {
    "0x3154cf16ccdb4c6d922629664174b904d80f2c35": "Base Bridge (L1)",
    "0x4200000000000000000000000000000000000010": "Base L2 Bridge",
}

# DEX routers
DEX_ADDRESSES: dict[str, str] = {
    "0x2626664c2603336e57b271c5c0b26f421741e481": "Uniswap V3 Router (Base)",
    "0x198ef1ec325a96cc354c7266a038be8b5c558f67": "Uniswap Universal Router (Base)",
}

# Token contracts
TOKEN_ADDRESSES: dict[str, str] = {
    "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913": "USDC (Base)",
}


def get_default_entities() -> Mapping[str, str]:
    """Return every built-in address label as a read-only mapping."""
    merged: dict[str, str] = {}
    for group in (CEX_ADDRESSES, BRIDGE_ADDRESSES, DEX_ADDRESSES, TOKEN_ADDRESSES):
        merged.update(group)
    return MappingProxyType(merged)
