"""Injectable time source for the session controller.

All session timers are built from ``Clock.now()`` subtraction and
``Clock.call_later()`` one-shots, so tests drive time with a
manually advanced clock instead of sleeping.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

log = logging.getLogger(__name__)


class TimerHandle:
    """Cancelable one-shot timer returned by Clock.call_later()."""

    def __init__(self, cancel_fn: Optional[Callable[[], None]] = None):
        self._cancel_fn = cancel_fn
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        """Cancel the timer. Safe to call more than once."""
        if not self.active:
            return
        self.cancelled = True
        if self._cancel_fn:
            self._cancel_fn()


class Clock(ABC):
    """Time source contract.

    ``now()`` returns seconds (float); ``localtime()`` returns the wall-clock
    datetime used by schedule strings ("HH:MM").
    """

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""

    @abstractmethod
    def localtime(self) -> datetime:
        """Current local wall-clock time."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""


class SystemClock(Clock):
    """Real time. ``call_later`` needs a scheduler from the GUI adapter.

    The PySide6 window installs ``scheduler`` (QTimer.singleShot based) so
    timer callbacks run on the GUI thread with the tick and commands.
    """

    def __init__(self,
                 scheduler: Optional[Callable[[float, Callable[[], None]], TimerHandle]] = None):
        self.scheduler = scheduler

    def now(self) -> float:
        # Wall-clock steps (NTP sync on RTC-less boards) must not move session timers
        return time.monotonic()

    def localtime(self) -> datetime:
        return datetime.now()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if self.scheduler is None:
            raise RuntimeError("SystemClock has no scheduler installed")
        return self.scheduler(delay, callback)
