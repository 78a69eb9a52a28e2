"""Generic async polling service abstraction.

Provides a reusable base class for services that consume readings one at a
time, following the poll -> handle pattern, with graceful shutdown and a
SIGHUP-triggered configuration reload between cycles.
"""

import asyncio
import signal
from abc import ABC, abstractmethod
from types import FrameType

from plantmon.lib.config import get_settings
from plantmon.logging import get_logger


class PollingService[T](ABC):
    """Abstract base class for async reading-consumer services.

    Implements the common polling loop pattern with:
    - Optional minimum interval between cycles
    - Graceful shutdown handling
    - Configuration reload requested by SIGHUP
    - Error recovery
    """

    def __init__(
        self,
        name: str,
        frequency_sec: float | None = None,
    ) -> None:
        """Initialize the polling service.

        Args:
            name: Service name for logging.
            frequency_sec: Minimum seconds per cycle, 0 for no throttling.
        """
        self.name = name
        polling_cfg = get_settings().polling
        self.frequency_sec = (
            frequency_sec
            if frequency_sec is not None
            else polling_cfg.frequency_sec
        )
        self._shutdown_requested = False
        self._reload_requested = False
        self._logger = get_logger(f"polling.{name.lower()}")

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize any resources needed before polling starts.

        Called once at the start of run(). Should open the reading source,
        connect publishers, start background workers, etc.
        """

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources before exit.

        Called once when the polling loop exits. Should stop timers and
        close connections.
        """

    @abstractmethod
    async def poll(self) -> T | None:
        """Wait for the next reading.

        Returns:
            A reading object, or None if nothing usable arrived.
        """

    @abstractmethod
    async def handle(self, reading: T) -> None:
        """Process a reading to completion before the next poll."""

    async def reload(self) -> None:
        """Apply a configuration reload. Override to support SIGHUP."""

    def on_poll_error(self, error: Exception) -> None:
        """Handle an error that occurred during polling.

        Override to customize error handling. Default logs the error.
        """
        self._logger.exception("%s poll error: %s", self.name, error)

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    def request_reload(self) -> None:
        self._reload_requested = True

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        """Handle shutdown signals gracefully."""
        signal_name = signal.Signals(signum).name
        self._logger.info(
            "Received %s, initiating graceful shutdown...", signal_name
        )
        self.request_shutdown()

    def _handle_reload(self, signum: int, frame: FrameType | None) -> None:
        """Handle SIGHUP by scheduling a reload before the next cycle."""
        self._logger.info("Received SIGHUP, reloading configuration...")
        self.request_reload()

    def _setup_signal_handlers(self) -> None:
        """Register signal handlers for graceful shutdown and reload."""
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)
        signal.signal(signal.SIGHUP, self._handle_reload)

    async def _poll_cycle(self) -> None:
        """Execute a single reload -> poll -> handle cycle."""
        if self._reload_requested:
            self._reload_requested = False
            await self.reload()

        reading = await self.poll()
        if reading is not None:
            await self.handle(reading)

    async def _run_loop(self) -> None:
        """Run the async polling loop with precise timing."""
        await self.initialize()
        self._logger.info("%s polling service started", self.name)

        loop = asyncio.get_running_loop()

        try:
            while not self._shutdown_requested:
                cycle_start = loop.time()

                try:
                    await self._poll_cycle()
                except Exception as e:
                    self.on_poll_error(e)

                # Sleep only the remaining time to maintain consistent intervals
                elapsed = loop.time() - cycle_start
                sleep_time = max(0, self.frequency_sec - elapsed)
                if sleep_time > 0:
                    await asyncio.sleep(sleep_time)
        finally:
            self._logger.info("Cleaning up resources...")
            await self.cleanup()
            self._logger.info("%s shutdown complete", self.name)

    def run(self) -> None:
        """Run the polling loop.

        This is the main entry point. It:
        1. Sets up signal handlers for shutdown and reload
        2. Calls initialize()
        3. Enters the polling loop (poll -> handle)
        4. Calls cleanup() on exit
        """
        self._setup_signal_handlers()
        asyncio.run(self._run_loop())
