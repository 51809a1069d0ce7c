"""
Ticker - Fixed-schedule wake-ups that can be interrupted by cancellation.
"""

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class Ticker:
    """
    Wakes a single caller once per interval on a fixed schedule.

    Deadlines are ``start + k * interval``. The first one falls a full
    interval after construction. If the caller overruns one or more deadlines,
    those ticks are dropped rather than delivered back to back, so two ticks
    are never closer together than one interval.
    """

    def __init__(
        self, interval: float, clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the ticker.

        Args:
            interval: Seconds between ticks, must be positive
            clock: Monotonic clock returning seconds
        """
        if interval <= 0:
            raise ValueError(f"Ticker interval must be positive, got {interval}")
        self.interval = interval
        self.clock = clock
        self.deadline = clock() + interval
        self.dropped = 0

    def wait(self, cancel: threading.Event) -> bool:
        """
        Block until the next tick or until ``cancel`` is set.

        Args:
            cancel: Event signalling shutdown

        Returns:
            True when a tick is due, False when cancelled
        """
        now = self.clock()
        while self.deadline < now:
            self.deadline += self.interval
            self.dropped += 1
            logger.debug("Previous check overran its interval, dropping a tick")

        while True:
            if cancel.is_set():
                return False
            remaining = self.deadline - self.clock()
            if remaining <= 0:
                break
            if cancel.wait(min(remaining, threading.TIMEOUT_MAX)):
                return False

        self.deadline += self.interval
        return True
