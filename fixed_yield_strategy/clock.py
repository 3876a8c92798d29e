"""
Fixed Yield Strategy - Clock.

============================================================
RESPONSIBILITY
============================================================
Testable time source for expiry, cooldown and profit-unlock
checks.

- Strategy time is integer unix seconds (host "block time")
- All expiry and cooldown comparisons use this clock
- MockClock enables deterministic tests

============================================================
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional
import threading
import time


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for the strategy clock."""

    @abstractmethod
    def now(self) -> int:
        """Get current unix timestamp in whole seconds."""
        pass


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """Production clock using actual system time."""

    def now(self) -> int:
        return int(time.time())


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests.
    """

    def __init__(self, initial_timestamp: Optional[int] = None):
        """
        Initialize mock clock.

        Args:
            initial_timestamp: Starting unix time (defaults to now)
        """
        self._time = int(time.time()) if initial_timestamp is None else int(initial_timestamp)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._time

    def set_time(self, timestamp: int) -> None:
        """Set the current time."""
        with self._lock:
            self._time = int(timestamp)

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (hours, minutes, days, etc.)
        """
        with self._lock:
            delta = timedelta(seconds=seconds, **kwargs)
            self._time += int(delta.total_seconds())
