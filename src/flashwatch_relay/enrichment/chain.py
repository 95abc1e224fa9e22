"""Base chain JSON-RPC client for account state lookups.

This module provides a thin client over web3's async HTTP provider that
fetches the transaction count and balance of an address. Every call is
bounded by a hard timeout and there are no retries: the relay prefers a
missing metric over a late post.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal

import aiohttp
from web3 import AsyncWeb3
from web3.exceptions import Web3Exception
from web3.providers import AsyncHTTPProvider

from flashwatch_relay.enrichment.models import AccountState
from flashwatch_relay.exceptions import RelayError

logger = logging.getLogger(__name__)

DEFAULT_RPC_TIMEOUT_SECONDS = 5.0


class ChainClientError(RelayError):
    """Base exception for chain client errors."""


class RPCError(ChainClientError):
    """Raised when an RPC call fails, times out, or returns garbage."""


class ChainClient:
    """Async account-state client for an EVM JSON-RPC endpoint.

    Example:
        ```python
        client = ChainClient("https://mainnet.base.org", timeout=5.0)
        state = await client.get_account_state("0x...")
        print(state.transaction_count, state.balance_eth)
        ```
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = DEFAULT_RPC_TIMEOUT_SECONDS,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        """Initialize the chain client.

        Args:
            rpc_url: JSON-RPC endpoint URL.
            timeout: Per-call timeout in seconds.
            w3: Optional preconfigured web3 instance (tests inject a mock).
        """
        self._rpc_url = rpc_url
        self._timeout = timeout
        self._w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
            )
        )

    @property
    def timeout(self) -> float:
        """Per-call timeout in seconds."""
        return self._timeout

    async def _call(self, func_name: str, address: str) -> int:
        """Run one web3.eth call against an address with the timeout applied."""
        try:
            checksum = AsyncWeb3.to_checksum_address(address)
        except ValueError as e:
            raise RPCError(f"Invalid address {address!r}: {e}") from e

        method = getattr(self._w3.eth, func_name)
        try:
            result = await asyncio.wait_for(method(checksum, "latest"), self._timeout)
        except TimeoutError as e:
            raise RPCError(f"RPC {func_name} timed out after {self._timeout}s") from e
        except (Web3Exception, aiohttp.ClientError, ValueError, OSError) as e:
            raise RPCError(f"RPC {func_name} failed: {e}") from e

        if isinstance(result, bool) or not isinstance(result, int):
            raise RPCError(f"RPC {func_name} returned malformed result: {result!r}")
        return result

    async def get_transaction_count(self, address: str) -> int:
        """Get the lifetime transaction count (nonce) of an address."""
        return await self._call("get_transaction_count", address)

    async def get_balance(self, address: str) -> Decimal:
        """Get the balance of an address in wei."""
        return Decimal(await self._call("get_balance", address))

    async def get_account_state(self, address: str) -> AccountState:
        """Fetch transaction count and balance concurrently.

        Raises:
            RPCError: If either call fails.
        """
        nonce, balance = await asyncio.gather(
            self.get_transaction_count(address),
            self.get_balance(address),
        )
        return AccountState(
            address=address.lower(),
            transaction_count=nonce,
            balance_wei=balance,
        )
