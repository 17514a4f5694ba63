"""Inactivity & home-return monitor - manual and hidden sites only.

Pure Python, no Qt dependencies. Rotating sites (duration > 0) are timed by
the rotation scheduler and never prompt. The "are you still here" prompt
carries its own auto-resolve timer; answering the prompt cancels it.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from ..core.clock import Clock, TimerHandle
from ..core.models import SessionState
from .registry import ViewRegistry

log = logging.getLogger(__name__)


class InactivityService:
    """Decides when to prompt, owns the prompt's auto-resolve timer."""

    PROMPT_TIMEOUT = 15.0  # unanswered prompt → home-return

    def __init__(self, registry: ViewRegistry, home_view: Optional[int],
                 timeout: float) -> None:
        self.registry = registry
        self.home_view = home_view
        self.timeout = timeout
        self._prompt_timer: Optional[TimerHandle] = None

    # ── Eligibility ──────────────────────────────────────────────────

    def applies(self, state: SessionState) -> bool:
        """Prompting applies to manual/hidden sites when a home exists."""
        if self.home_view is None:
            return False
        if state.showing_hidden:
            return True
        if state.current_view_index == self.home_view:
            return False
        return self.registry.duration(state.current_view_index) <= 0

    def idle_time(self, state: SessionState, now: float) -> float:
        return now - state.last_user_interaction

    def due(self, state: SessionState, now: float) -> bool:
        """True when the prompt should open this tick."""
        if not self.applies(state):
            return False
        return self.idle_time(state, now) >= self.timeout

    # ── Prompt timer ─────────────────────────────────────────────────

    @property
    def prompt_pending(self) -> bool:
        return self._prompt_timer is not None and self._prompt_timer.active

    def start_prompt_timer(self, clock: Clock, on_timeout: Callable[[], None]) -> None:
        self.cancel_prompt_timer()

        def fire() -> None:
            self._prompt_timer = None
            log.info("[HOME] prompt unanswered after %.0fs", self.PROMPT_TIMEOUT)
            on_timeout()

        self._prompt_timer = clock.call_later(self.PROMPT_TIMEOUT, fire)

    def cancel_prompt_timer(self) -> None:
        """Cancel the auto-resolve timer. Safe when none is running."""
        if self._prompt_timer is not None:
            self._prompt_timer.cancel()
            self._prompt_timer = None

    # ── Outcomes ─────────────────────────────────────────────────────

    def still_here(self, state: SessionState, now: float) -> None:
        """Reset interaction and rotation timers; no extension, no lockout reset."""
        state.last_user_interaction = now
        state.site_start_time = now
        log.info("[HOME] user confirmed presence")
