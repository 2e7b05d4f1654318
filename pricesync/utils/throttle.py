"""
MTG Price Sync: Request Throttle

Single-slot leaky bucket. No two calls to wait() return closer together
than the minimum interval, however many coroutines share the throttle.
Spacing is per instance; separate clients do not coordinate.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)


class RequestThrottle:
    """
    Enforce a minimum interval between successive outbound requests.

    Usage:
        throttle = RequestThrottle(0.1)
        await throttle.wait()
        response = await client.get(...)
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if min_interval < 0:
            raise ValueError(f"min_interval must be non-negative, got {min_interval}")
        self._min_interval = min_interval
        self._clock = clock
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    async def wait(self) -> None:
        """Suspend until the next request slot is available, then claim it."""
        async with self._lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                remaining = self._min_interval - elapsed
                if remaining > 0:
                    logger.debug("throttle_wait", wait_seconds=round(remaining, 4))
                    await asyncio.sleep(remaining)
            self._last_request = self._clock()
