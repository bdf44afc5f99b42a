"""Debounced callbacks with exactly one pending timer.

A :class:`Debouncer` owns a single timer handle.  Every :meth:`Debouncer.call`
cancels the previous handle and schedules a new one, so after a burst of
calls only the last value is ever delivered, once the quiet period elapses.

The timer primitive is pluggable.  Anything with the signature
``scheduler(delay_seconds, callback) -> handle`` where ``handle.cancel()``
exists will do:

- :func:`thread_timer_scheduler` (default) uses :class:`threading.Timer`
- ``asyncio.get_running_loop().call_later`` works unchanged for event-loop code
- tests pass a manual scheduler and advance time explicitly

Because a :class:`threading.Timer` that has already started cannot be stopped
by ``cancel()``, each scheduled callback also carries a generation number and
is dropped if a newer call has been made since.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def thread_timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class Debouncer(Generic[T]):
    """Deliver only the most recent value after ``delay`` seconds of quiet.

    Args:
        callback: Called with the last value passed to :meth:`call`
        delay: Quiet period in seconds
        scheduler: Delayed-task primitive (see module docstring)
    """

    def __init__(
        self,
        callback: Callable[[T], Any],
        delay: float = 0.5,
        scheduler: Scheduler | None = None,
    ):
        self.callback = callback
        self.delay = delay
        self._scheduler = scheduler or thread_timer_scheduler
        self._lock = threading.Lock()
        self._handle: TimerHandle | None = None
        self._generation = 0
        self._pending_value: T | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, value: T) -> None:
        """Cancel any pending evaluation and schedule one for ``value``."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            generation = self._generation
            self._pending_value = value
            self._handle = self._scheduler(self.delay, lambda: self._fire(generation))

    def cancel(self) -> None:
        """Drop the pending evaluation, if any."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1

    def flush(self) -> bool:
        """Run the pending evaluation immediately.

        Returns:
            True if an evaluation was pending and has run
        """
        with self._lock:
            if self._handle is None:
                return False
            generation = self._generation
        return self._fire(generation)

    def _cancel_locked(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, generation: int) -> bool:
        with self._lock:
            if generation != self._generation or self._handle is None:
                logger.debug(f"Dropping superseded debounce generation {generation}")
                return False
            self._cancel_locked()
            value = self._pending_value
            self._pending_value = None

        self.callback(value)
        return True
