"""Signal handling for the relay process.

SIGTERM or SIGINT asks the relay to stop: the webhook server closes,
in-flight alerts are abandoned (delivery is at most once) and registered
cleanups run in reverse registration order, each bounded by the
shutdown timeout. A second signal exits immediately.

Usage:
    ```python
    async with GracefulShutdown() as shutdown:
        await server.start()
        shutdown.register_cleanup(server.stop)
        await shutdown.wait()
    ```
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Callable
from contextlib import suppress
from types import FrameType
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_TIMEOUT = 10.0

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class GracefulShutdown:
    """Coordinate a clean stop of the relay.

    Example:
        ```python
        shutdown = GracefulShutdown(timeout=5.0)
        shutdown.register_cleanup(pipeline.stop)
        shutdown.register_cleanup(audit.close)

        async with shutdown:
            await shutdown.wait()
        ```
    """

    def __init__(self, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        """Initialize the handler.

        Args:
            timeout: Seconds each cleanup callback may take.
        """
        self._timeout = timeout
        self._event: asyncio.Event | None = None
        self._requested = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._original_handlers: dict[signal.Signals, Any] = {}
        self._cleanups: list[Callable[[], Any]] = []

    @property
    def timeout(self) -> float:
        """Per-callback cleanup timeout in seconds."""
        return self._timeout

    @property
    def is_shutdown_requested(self) -> bool:
        """Return True once a stop has been requested."""
        return self._requested

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
        return self._event

    def register_cleanup(self, callback: Callable[[], Any]) -> None:
        """Register a sync or async callable to run on exit."""
        self._cleanups.append(callback)

    def request_shutdown(self) -> None:
        """Ask the relay to stop without a signal."""
        if self._requested:
            return
        self._requested = True
        logger.info("Shutdown requested")
        self._get_event().set()

    async def wait(self) -> None:
        """Block until a stop is requested."""
        await self._get_event().wait()

    def install_signal_handlers(self) -> None:
        """Trap SIGTERM and SIGINT.

        Uses the event loop's handlers on Unix and ``signal.signal`` on
        Windows, where the loop does not support them.
        """
        self._loop = asyncio.get_running_loop()
        self._get_event()

        for sig in SHUTDOWN_SIGNALS:
            try:
                if sys.platform == "win32":
                    self._original_handlers[sig] = signal.signal(sig, self._handle_signal_sync)
                else:
                    self._loop.add_signal_handler(sig, self._handle_signal, sig)
            except (ValueError, OSError, NotImplementedError) as e:
                logger.warning("Could not install handler for %s: %s", sig.name, e)

    def remove_signal_handlers(self) -> None:
        """Restore the previous signal handlers."""
        if sys.platform == "win32":
            for sig, original in self._original_handlers.items():
                with suppress(ValueError, OSError):
                    signal.signal(sig, original)
            self._original_handlers.clear()
        elif self._loop is not None:
            for sig in SHUTDOWN_SIGNALS:
                with suppress(ValueError, OSError):
                    self._loop.remove_signal_handler(sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        if self._requested:
            logger.warning("Received %s again, exiting now", sig.name)
            sys.exit(128 + sig.value)
        logger.info("Received %s, stopping relay...", sig.name)
        self.request_shutdown()

    def _handle_signal_sync(self, sig: int, _frame: FrameType | None) -> None:
        self._handle_signal(signal.Signals(sig))

    async def run_cleanup_callbacks(self) -> None:
        """Run cleanups newest first. Failures are logged, not raised."""
        while self._cleanups:
            callback = self._cleanups.pop()
            name = getattr(callback, "__qualname__", repr(callback))
            try:
                result = callback()
                if asyncio.iscoroutine(result):
                    await asyncio.wait_for(result, timeout=self._timeout)
            except TimeoutError:
                logger.error("Cleanup %s timed out after %.1fs", name, self._timeout)
            except Exception as e:
                logger.error("Cleanup %s failed: %s", name, e)

    async def __aenter__(self) -> GracefulShutdown:
        self.install_signal_handlers()
        return self

    async def __aexit__(self, *_args: Any) -> None:
        self.remove_signal_handlers()
        await self.run_cleanup_callbacks()
