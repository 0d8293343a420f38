"""Time source used by the lock manager.

Age and elapsed-time calculations go through a Clock so tests can drive
them without sleeping.
"""

import threading
import time
from typing import Protocol


class Clock(Protocol):
    """Wall-clock, monotonic clock, and interruptible sleep."""

    def time(self) -> float:
        """Seconds since the epoch, comparable with file mtimes."""

    def monotonic(self) -> float:
        """Monotonic seconds for measuring elapsed time."""

    def sleep(self, seconds: float, cancel: threading.Event | None = None) -> bool:
        """Sleep for ``seconds``. Returns True if ``cancel`` was set."""


class SystemClock:
    """Clock backed by the real system time."""

    def time(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel: threading.Event | None = None) -> bool:
        if cancel is not None:
            return cancel.wait(max(0.0, seconds))
        time.sleep(max(0.0, seconds))
        return False
