"""Rate limiting for provider API calls."""

import asyncio
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter.

    Limits the number of calls within a time period. Generation requests
    for different platforms share one limiter so a large platform batch
    cannot burst past the provider quota.

    Example:
        limiter = RateLimiter(max_calls=60, period_seconds=60)
        await limiter.acquire()
        response = await client.chat.completions.create(...)
    """

    def __init__(
        self,
        max_calls: int,
        period_seconds: float,
        name: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize rate limiter.

        Args:
            max_calls: Maximum number of calls allowed in the period
            period_seconds: Time period in seconds
            name: Optional name for logging (e.g., "OpenAI.gpt-4o-mini")
            clock: Monotonic time source
        """
        if max_calls <= 0:
            raise ValueError("max_calls must be positive")
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive")

        self.max_calls = max_calls
        self.period_seconds = period_seconds
        self.name = name or "RateLimiter"
        self._clock = clock

        self._call_timestamps: deque[float] = deque()
        self._lock = threading.Lock()

        logger.debug(
            f"{self.name} initialized: {max_calls} calls per {period_seconds} seconds"
        )

    def _evict(self, now: float) -> None:
        while self._call_timestamps:
            if now - self._call_timestamps[0] >= self.period_seconds:
                self._call_timestamps.popleft()
            else:
                break

    def allow_call(self) -> bool:
        """
        Record a call if one is allowed under the rate limit.

        Returns:
            True if call is allowed, False otherwise
        """
        with self._lock:
            now = self._clock()
            self._evict(now)

            if len(self._call_timestamps) < self.max_calls:
                self._call_timestamps.append(now)
                return True

            logger.warning(
                f"{self.name}: Rate limit exceeded ({len(self._call_timestamps)}/{self.max_calls})"
            )
            return False

    def wait_time(self) -> float:
        """
        Calculate time to wait before next allowed call.

        Returns:
            Time in seconds to wait, or 0 if call is allowed now
        """
        with self._lock:
            now = self._clock()
            self._evict(now)

            if len(self._call_timestamps) < self.max_calls:
                return 0.0

            oldest_call = self._call_timestamps[0]
            return max(0.0, self.period_seconds - (now - oldest_call))

    async def acquire(self) -> None:
        """Wait until a call is allowed, then record it."""
        while not self.allow_call():
            await asyncio.sleep(max(self.wait_time(), 0.01))

    def reset(self) -> None:
        """Reset the rate limiter (clear all call history)."""
        with self._lock:
            self._call_timestamps.clear()

    def get_stats(self) -> dict:
        """
        Get rate limiter statistics.

        Returns:
            Dictionary with current usage statistics
        """
        wait = self.wait_time()
        with self._lock:
            current = len(self._call_timestamps)
        return {
            "name": self.name,
            "max_calls": self.max_calls,
            "period_seconds": self.period_seconds,
            "current_calls": current,
            "remaining_calls": max(0, self.max_calls - current),
            "wait_time": wait,
        }
