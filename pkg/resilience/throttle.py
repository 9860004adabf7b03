"""
Call throttling.

Keeps a minimum spacing between consecutive calls to an upstream API.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional

from pkg.logger.logger import get_logger


logger = get_logger(__name__)


class Throttle:
    """
    Fixed-interval throttle.

    ``wait()`` returns immediately for the first call and afterwards sleeps
    until at least ``min_interval`` seconds have passed since the previous
    call was released. Waiters are served one at a time.

    Attributes:
        min_interval: Minimum seconds between two released calls.
    """

    def __init__(
        self,
        min_interval: float = 0.5,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        name: str = "default",
    ) -> None:
        """
        Initialize the throttle.

        Args:
            min_interval: Minimum seconds between calls. Zero disables waiting.
            clock: Monotonic clock, injectable for tests.
            sleep: Async sleep function, injectable for tests.
            name: Throttle name for logging.
        """
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self._min_interval = min_interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._name = name
        self._last_release: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        """Get the configured interval."""
        return self._min_interval

    async def wait(self) -> float:
        """
        Wait for the next slot.

        Returns:
            Seconds actually slept.
        """
        async with self._lock:
            slept = 0.0
            if self._last_release is not None and self._min_interval > 0:
                elapsed = self._clock() - self._last_release
                remaining = self._min_interval - elapsed
                if remaining > 0:
                    logger.debug(
                        "Throttling call",
                        throttle=self._name,
                        delay=round(remaining, 3),
                    )
                    await self._sleep(remaining)
                    slept = remaining
            self._last_release = self._clock()
            return slept

    def reset(self) -> None:
        """Forget the previous call so the next one is released at once."""
        self._last_release = None
