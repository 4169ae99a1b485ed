"""Retry utilities with exponential backoff.

Provides a coroutine helper for retrying async operations with
configurable backoff strategies.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


def compute_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = False,
    rng: random.Random | None = None
) -> float:
    """
    Delay to wait after a failed attempt.

    Args:
        attempt: Zero-based index of the attempt that just failed
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential calculation
        jitter: Scale the delay by a random factor in [0.5, 1.5)
        rng: Random source for jitter

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        delay = delay * (0.5 + (rng or random).random())
    return delay


async def call_with_retry(
    func: Callable[[], Awaitable[Any]],
    max_retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = False,
    rng: random.Random | None = None,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    on_retry: Callable[[BaseException, int, float], Any] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    name: str | None = None
) -> Any:
    """
    Await ``func()`` until it succeeds or ``max_retries`` retries are spent.

    ``func`` is called with no arguments and must build a fresh request on
    every call; no state is carried between attempts. The exception of the
    final attempt is re-raised unchanged.

    Args:
        func: Zero-argument coroutine factory
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential calculation
        jitter: Add random jitter to delays
        rng: Random source for jitter (module random if None)
        exceptions: Tuple of exception types to retry on
        on_retry: Callback called on each retry (exception, attempt, delay),
            may be sync or async
        sleep: Awaitable sleep used between attempts
        name: Operation name for log messages

    Returns:
        Result of the first successful attempt
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    label = name or getattr(func, "__name__", "operation")

    for attempt in range(max_retries + 1):
        try:
            return await func()
        except exceptions as e:
            if attempt == max_retries:
                logger.error(
                    f"All {max_retries + 1} attempts failed for {label}"
                )
                raise

            delay = compute_delay(
                attempt,
                base_delay=base_delay,
                max_delay=max_delay,
                exponential_base=exponential_base,
                jitter=jitter,
                rng=rng,
            )

            logger.warning(
                f"Retry {attempt + 1}/{max_retries} for {label} "
                f"after {delay:.2f}s due to: {e}"
            )

            if on_retry:
                result = on_retry(e, attempt + 1, delay)
                if asyncio.iscoroutine(result):
                    await result

            await sleep(delay)
