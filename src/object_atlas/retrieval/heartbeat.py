"""Heartbeat — a periodic-wake primitive shared by polling consumers.

Ticks fall on a fixed grid measured from the moment the heartbeat was
created, so every consumer that waits on the same heartbeat wakes on the
same boundaries regardless of when it started waiting. No background
thread is involved; :meth:`Heartbeat.wait` sleeps until the next boundary.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from object_atlas.index.naming import InvalidArgumentError

DEFAULT_TICK_INTERVAL = 1.0 / 60.0

_WAKE_SLICE = 0.05


class Heartbeat:
    """Shared tick source.

    Parameters
    ----------
    interval:
        Seconds between ticks. Defaults to one sixtieth of a second.
    clock:
        Monotonic clock used to place ticks. Injected by tests.
    """

    def __init__(
        self,
        interval: float = DEFAULT_TICK_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval <= 0:
            raise InvalidArgumentError("interval", "must be a positive number of seconds")
        self._interval = interval
        self._clock = clock
        self._origin = clock()
        self._stopped = threading.Event()

    @property
    def interval(self) -> float:
        """Seconds between ticks."""
        return self._interval

    @property
    def stopped(self) -> bool:
        """True once :meth:`stop` has been called."""
        return self._stopped.is_set()

    def ticks(self) -> int:
        """Return the number of ticks elapsed since creation."""
        return int((self._clock() - self._origin) // self._interval)

    def next_tick_in(self) -> float:
        """Return the seconds remaining until the next tick boundary."""
        elapsed = self._clock() - self._origin
        return self._interval - (elapsed % self._interval)

    def wait(
        self,
        interval: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> bool:
        """Block until the next tick.

        Parameters
        ----------
        interval:
            Wait this many seconds instead of aligning to the shared grid.
        cancel:
            Optional event that ends the wait early when set.

        Returns
        -------
        bool
            False when the wait was cut short by :meth:`stop` or *cancel*,
            True otherwise.
        """
        if self.stopped or (cancel is not None and cancel.is_set()):
            return False
        delay = self.next_tick_in() if interval is None else interval
        if cancel is None:
            self._stopped.wait(delay)
            return not self.stopped
        # Watch cancel in short slices so stop() also ends the wait.
        deadline = time.monotonic() + delay
        remaining = delay
        while remaining > 0:
            if cancel.wait(min(remaining, _WAKE_SLICE)) or self.stopped:
                return False
            remaining = deadline - time.monotonic()
        return not (self.stopped or cancel.is_set())

    def stop(self) -> None:
        """Wake every waiter and make later waits return immediately."""
        self._stopped.set()
