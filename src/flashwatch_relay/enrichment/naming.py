"""Reverse name resolution over HTTP."""

from __future__ import annotations

import asyncio
import logging

import httpx

from flashwatch_relay.exceptions import RelayError

logger = logging.getLogger(__name__)

DEFAULT_NAMING_URL = "https://api.ensideas.com/ens/resolve"
DEFAULT_NAMING_TIMEOUT_SECONDS = 4.0


class NameResolutionError(RelayError):
    """Raised when the naming service cannot be reached or answers garbage."""


class NameResolver:
    """Resolve an address to a human-readable name (ENS style).

    The service is called as ``GET {base_url}/{address}`` and must answer a
    JSON object whose ``name`` field is the primary name or null.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_NAMING_URL,
        *,
        timeout: float = DEFAULT_NAMING_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the resolver.

        Args:
            base_url: Resolution endpoint; the address is appended as a path segment.
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def resolve(self, address: str) -> str | None:
        """Return the name for an address, or None if it has none.

        Raises:
            NameResolutionError: On timeout, transport error, non-2xx status,
                or a body that is not the expected JSON object.
        """
        url = f"{self.base_url}/{address}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await asyncio.wait_for(
                    client.get(url, headers={"Accept": "application/json"}),
                    self.timeout,
                )
        except (httpx.TimeoutException, TimeoutError) as e:
            raise NameResolutionError(f"Name lookup timed out for {address}") from e
        except httpx.HTTPError as e:
            raise NameResolutionError(f"Name lookup failed for {address}: {e}") from e

        if response.status_code == 404:
            return None
        if not 200 <= response.status_code < 300:
            raise NameResolutionError(
                f"Name lookup for {address} returned {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise NameResolutionError(f"Malformed name lookup body for {address}") from e
        if not isinstance(data, dict):
            raise NameResolutionError(f"Malformed name lookup body for {address}")

        name = data.get("name")
        if name is None:
            return None
        if not isinstance(name, str):
            raise NameResolutionError(f"Malformed name for {address}: {name!r}")
        return name.strip() or None
