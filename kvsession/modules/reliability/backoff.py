"""
Bounded backoff for lock acquisition and table polling.

Delay schedule: initial_delay × multiplier^n, capped at max_delay.
Bounded by max_attempts and by max_wait (total time spent waiting).
Time is read and slept through an injected Clock so tests never sleep.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Protocol


class Clock(Protocol):
    """Time source and scheduler."""

    def time(self) -> float:
        """Wall-clock seconds since the epoch (shared between machines)."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds for measuring elapsed time."""
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class SystemClock:
    """Clock backed by the time module and asyncio.sleep."""

    def time(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


@dataclass
class BackoffPolicy:
    """Retry schedule configuration."""

    max_attempts: int = 5
    initial_delay: float = 0.5
    multiplier: float = 1.0
    max_delay: float = 5.0
    max_wait: Optional[float] = 1.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be at least 1.0")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        return min(self.initial_delay * (self.multiplier ** (attempt - 1)), self.max_delay)

    def next_delay(self, attempt: int, waited: float) -> Optional[float]:
        """
        Decide whether to retry after a failed attempt.

        Args:
            attempt: Number of attempts made so far (1-based)
            waited: Seconds elapsed since the first attempt

        Returns:
            Seconds to sleep before the next attempt, or None when the budget is spent
        """
        if attempt >= self.max_attempts:
            return None
        delay = self.delay_for(attempt)
        if self.max_wait is not None and waited + delay > self.max_wait:
            return None
        return delay

    @classmethod
    def fixed(cls, delay: float, max_wait: Optional[float], max_attempts: int) -> "BackoffPolicy":
        """Constant delay between attempts."""
        return cls(
            max_attempts=max_attempts,
            initial_delay=delay,
            multiplier=1.0,
            max_delay=delay,
            max_wait=max_wait,
        )
