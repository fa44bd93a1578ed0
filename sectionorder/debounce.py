"""Quiet-period timer that collapses bursts of reorder gestures."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DebounceScheduler(Generic[T]):
    """Run a callback once no new value has been scheduled for ``delay`` seconds.

    Each :meth:`schedule` call replaces the pending value and restarts the
    timer, so only the most recent value is ever handed to the callback.
    Callbacks that already started are not affected by later calls.

    ``loop`` only needs ``call_later``; it defaults to the running asyncio
    loop at the time of the first :meth:`schedule`.
    """

    def __init__(self, delay: float, loop: Optional[Any] = None):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay
        self._loop = loop
        self._handle = None
        self._value: Optional[T] = None
        self._callback: Optional[Callable[[T], Any]] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, value: T, callback: Callable[[T], Any]) -> None:
        self.cancel()
        self._value = value
        self._callback = callback
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop a scheduled callback without running it."""
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("Debounce timer cancelled")
        self._handle = None
        self._value = None
        self._callback = None

    def fire_now(self) -> bool:
        """Run a pending callback immediately. Returns False if nothing was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        value, callback = self._value, self._callback
        self._handle = None
        self._value = None
        self._callback = None
        if callback is None:
            return
        logger.debug("Quiet period of %.2fs elapsed; firing", self.delay)
        callback(value)
