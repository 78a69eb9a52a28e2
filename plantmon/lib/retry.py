"""Retry with exponential backoff for notification transports."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterator
from logging import Logger

type SendFn = Callable[[], None] | Callable[[], Awaitable[None]]


def _backoff_delays(initial_sec: float, attempts: int) -> Iterator[float]:
    """Delays to wait after each failed attempt but the last."""
    for attempt in range(attempts - 1):
        yield initial_sec * 2**attempt


async def _call(fn: SendFn, run_in_thread: bool) -> None:
    if run_in_thread:
        await asyncio.to_thread(fn)
    elif inspect.iscoroutinefunction(fn):
        await fn()
    else:
        fn()


async def with_retry(
    fn: SendFn,
    *,
    name: str,
    logger: Logger,
    max_retries: int = 3,
    initial_backoff_sec: float = 2.0,
    retryable_exceptions: tuple[type[Exception], ...] = (OSError,),
    run_in_thread: bool = False,
) -> bool:
    """Call fn until it succeeds, sleeping longer after each failure.

    Only ``retryable_exceptions`` are retried, any other exception gives up
    immediately. Failures are logged, never raised, so one broken backend
    does not take the notification service down.

    Args:
        fn: The function to execute. Can be sync or async.
        name: Transport name for log messages.
        logger: Logger of the calling module.
        max_retries: Total number of attempts.
        initial_backoff_sec: Delay after the first failure, doubled after
            each further one.
        retryable_exceptions: Exception types that trigger another attempt.
        run_in_thread: Run a blocking sync fn in the default thread pool.

    Returns:
        Whether fn eventually succeeded.
    """
    delays = _backoff_delays(initial_backoff_sec, max_retries)

    for attempt in range(1, max_retries + 1):
        try:
            await _call(fn, run_in_thread)
            return True
        except retryable_exceptions as e:
            delay = next(delays, None)
            if delay is None:
                logger.error(
                    "%s failed after %d attempts. Last error: %s",
                    name,
                    max_retries,
                    e,
                )
                return False
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.0fs...",
                name,
                attempt,
                max_retries,
                e,
                delay,
            )
            await asyncio.sleep(delay)
        except Exception as e:
            logger.error("%s failed (non-retryable): %s", name, e)
            return False

    return False
