"""
Leading-edge throttling.

The first call in a window goes through and opens a cooldown; calls arriving
during the cooldown are dropped, not queued. Once the window has elapsed the
next call goes through again.
"""

import threading
import time
from enum import Enum
from typing import Callable


class ThrottleState(Enum):
    """Throttle channel state."""

    IDLE = "idle"
    COOLING_DOWN = "cooling_down"


class Throttle:
    """State machine for one throttled channel."""

    def __init__(self, interval_seconds: float, clock: Callable[[], float] = time.monotonic):
        """
        Initialize Throttle.

        Args:
            interval_seconds: Length of the cooldown window
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._state = ThrottleState.IDLE
        self._window_started = 0.0
        self._lock = threading.Lock()

    @property
    def state(self) -> ThrottleState:
        """Current state, after applying any elapsed cooldown."""
        with self._lock:
            self._expire(self._clock())
            return self._state

    def _expire(self, now: float) -> None:
        if (
            self._state == ThrottleState.COOLING_DOWN
            and now - self._window_started >= self.interval_seconds
        ):
            self._state = ThrottleState.IDLE

    def try_acquire(self) -> bool:
        """
        Attempt to pass through the throttle.

        Returns:
            True if the caller may proceed (and a new window starts),
            False if the call falls inside the current window and must be dropped
        """
        with self._lock:
            now = self._clock()
            self._expire(now)
            if self._state == ThrottleState.COOLING_DOWN:
                return False
            self._state = ThrottleState.COOLING_DOWN
            self._window_started = now
            return True

    def reset(self) -> None:
        """Return to IDLE immediately."""
        with self._lock:
            self._state = ThrottleState.IDLE
