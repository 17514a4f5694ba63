"""Shared test doubles: a manual clock, in-memory surfaces and a settings builder."""
from __future__ import annotations

import heapq
import itertools
import os
import tempfile
from datetime import datetime, timedelta

from ubk_kiosk.conf import KioskSettings
from ubk_kiosk.core.clock import Clock, TimerHandle
from ubk_kiosk.core.controllers import SessionController
from ubk_kiosk.core.models import SiteConfig
from ubk_kiosk.services.registry import ViewSurface


class FakeClock(Clock):
    """Manually advanced clock.

    ``advance()`` moves time forward and fires due ``call_later`` timers in
    deadline order.
    """

    def __init__(self, start=None):
        self._start = start or datetime(2026, 1, 5, 9, 0, 0)  # a Monday
        self._elapsed = 0.0
        self._timers = []
        self._seq = itertools.count()

    def now(self):
        return self._start.timestamp() + self._elapsed

    def localtime(self):
        return self._start + timedelta(seconds=self._elapsed)

    def call_later(self, delay, callback):
        handle = TimerHandle()
        heapq.heappush(self._timers,
                       (self._elapsed + delay, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds):
        """Move time forward, firing due timers at their deadlines."""
        target = self._elapsed + seconds
        while self._timers and self._timers[0][0] <= target:
            deadline, _, handle, callback = heapq.heappop(self._timers)
            if not handle.active:
                continue
            self._elapsed = max(self._elapsed, deadline)
            handle.fired = True
            callback()
        self._elapsed = target

    @property
    def pending_timers(self):
        return sum(1 for t in self._timers if t[2].active)


class FakeSurface(ViewSurface):
    """Records signals and reloads; media polls answer on demand."""

    def __init__(self, site, site_index):
        super().__init__(site, site_index)
        self.sent = []
        self.reloads = 0
        self.pending_polls = []

    def send(self, channel, value):
        self.sent.append((channel, value))

    def poll_media(self, callback):
        self.pending_polls.append(callback)

    def reload(self):
        self.reloads += 1

    def answer_polls(self, playing):
        """Deliver ``playing`` to every outstanding poll callback."""
        polls, self.pending_polls = self.pending_polls, []
        for callback in polls:
            callback(playing)

    def last(self, channel):
        for name, value in reversed(self.sent):
            if name == channel:
                return value
        return None


def sites(*durations):
    return tuple(SiteConfig(url=f'https://site{i}.example', duration=d)
                 for i, d in enumerate(durations))


def make_settings(durations, **overrides):
    overrides.setdefault('sites', sites(*durations))
    return KioskSettings(**overrides)


class ControllerHarness:
    """SessionController wired to FakeClock, FakeSurface and temp flag files."""

    def __init__(self, settings, pin=None, boot_flag=False, wake_flag=False):
        self.tmp = tempfile.mkdtemp()
        self.pin_file = os.path.join(self.tmp, 'hidden_pin')
        self.wake_flag = os.path.join(self.tmp, 'display-wake')
        self.boot_flag = os.path.join(self.tmp, 'boot')
        if pin is not None:
            with open(self.pin_file, 'w') as f:
                f.write(pin + '\n')
        if boot_flag:
            open(self.boot_flag, 'w').close()
        if wake_flag:
            open(self.wake_flag, 'w').close()

        self.clock = FakeClock()
        self.surfaces = []
        self.attached = []
        self.detached = 0
        self.dialogs = []
        self.ctrl = SessionController(
            settings, self._factory, self.clock,
            pin_file=self.pin_file, wake_flag=self.wake_flag,
            boot_flag=self.boot_flag)
        self.ctrl.on_surface_attached = self.attached.append
        self.ctrl.on_surfaces_detached = self._on_detached
        self.ctrl.on_dialog_opened = lambda kind, data: self.dialogs.append(('open', kind))
        self.ctrl.on_dialog_closed = lambda kind: self.dialogs.append(('close', kind))

    def _factory(self, site, index):
        surface = FakeSurface(site, index)
        self.surfaces.append(surface)
        return surface

    def _on_detached(self):
        self.detached += 1

    @property
    def state(self):
        return self.ctrl.state

    def run(self, seconds, every=None, command=None):
        """Advance ``seconds`` one second at a time, ticking after each.

        With ``every``/``command``, dispatch ``command`` every ``every``
        seconds before that second's tick.
        """
        for second in range(1, int(seconds) + 1):
            self.clock.advance(1)
            if every and second % every == 0:
                self.ctrl.dispatch(command)
            self.ctrl.tick()

    def touch_wake_flag(self):
        open(self.wake_flag, 'w').close()

    def cleanup(self):
        for name in os.listdir(self.tmp):
            os.remove(os.path.join(self.tmp, name))
        os.rmdir(self.tmp)


def start_harness(settings, **kwargs) -> ControllerHarness:
    harness = ControllerHarness(settings, **kwargs)
    harness.ctrl.start()
    return harness
