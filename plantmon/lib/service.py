"""Runner for event-driven services such as the notification service."""

import asyncio
import signal
from collections.abc import Callable, Coroutine
from logging import Logger
from typing import Any

from plantmon.logging import configure, get_logger

type ServiceMain = Callable[[], Coroutine[Any, Any, None]]


async def _serve(main: ServiceMain, logger: Logger) -> None:
    loop = asyncio.get_running_loop()
    task = asyncio.create_task(main())

    # Cancelling unwinds the service's ``async with`` blocks
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, task.cancel)

    try:
        await task
    except asyncio.CancelledError:
        logger.info("Shutdown signal received")


def run_service(
    main: ServiceMain,
    *,
    name: str = "service",
) -> None:
    """Configure logging and run ``main`` until it returns or is signalled.

    Args:
        main: Async function to run (typically named ``run``).
        name: Service name for logging.
    """
    logger = get_logger(f"{name}.service")
    configure()
    logger.info("Starting %s service", name)
    asyncio.run(_serve(main, logger))
    logger.info("%s service exited", name.capitalize())
