"""Time sources for the arena.

Every component that needs "now" (ledgers, contestants, log entries) reads it
from a Clock instead of the host clock, so a race replays history at whatever
pace the controller chooses.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from .exceptions import ClockError


class Clock(ABC):
    """Source of the current time in Unix milliseconds."""

    @abstractmethod
    def now(self) -> int:
        pass

    def as_datetime(self) -> datetime:
        """Current time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.now() / 1000, tz=timezone.utc)


class SystemClock(Clock):
    """Wall-clock time. Used only outside of simulations."""

    def now(self) -> int:
        return int(time.time() * 1000)


class VirtualClock(Clock):
    """Settable clock driven by the race controller.

    Time is monotonic non-decreasing: moving the clock backwards raises
    ClockError.

    Example:
        >>> clock = VirtualClock(1704067200000)
        >>> clock.advance(60_000)
        >>> clock.now()
        1704067260000
    """

    def __init__(self, initial_timestamp: int = 0):
        self._current = int(initial_timestamp)

    def now(self) -> int:
        return self._current

    def set(self, timestamp: int) -> None:
        """Move the clock to an absolute time.

        Raises:
            ClockError: If timestamp is earlier than the current time
        """
        timestamp = int(timestamp)
        if timestamp < self._current:
            raise ClockError(
                f"Virtual clock cannot move backwards ({self._current} -> {timestamp})"
            )
        self._current = timestamp

    def advance(self, delta_ms: int) -> None:
        """Move the clock forward by delta_ms milliseconds."""
        if delta_ms < 0:
            raise ClockError(f"Cannot advance by a negative delta: {delta_ms}")
        self._current += int(delta_ms)

    def __repr__(self) -> str:
        return f"VirtualClock(now={self._current})"
