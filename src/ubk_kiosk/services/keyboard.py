"""On-screen keyboard visibility and auto-close.

Key injection itself belongs to the external keyboard helper; this service
only owns the visible/hidden state the controller broadcasts.
"""
from __future__ import annotations

import logging

from ..core.models import SessionState

log = logging.getLogger(__name__)


class KeyboardService:
    """Toggle + auto-close after ``auto_close`` seconds without interaction."""

    def __init__(self, enabled: bool = True, auto_close: float = 60.0) -> None:
        self.enabled = enabled
        self.auto_close = auto_close
        self._opened_at = 0.0

    def toggle(self, state: SessionState, now: float) -> bool:
        """Flip visibility. Returns False when the keyboard is disabled."""
        if not self.enabled:
            log.debug("[KEYBOARD] disabled in config")
            return False
        state.keyboard_visible = not state.keyboard_visible
        if state.keyboard_visible:
            self._opened_at = now
        log.info("[KEYBOARD] %s", 'shown' if state.keyboard_visible else 'hidden')
        return True

    def close(self, state: SessionState) -> bool:
        if not state.keyboard_visible:
            return False
        state.keyboard_visible = False
        return True

    def auto_close_due(self, state: SessionState, now: float) -> bool:
        if not state.keyboard_visible or self.auto_close <= 0:
            return False
        since = max(self._opened_at, state.last_user_interaction)
        return now - since >= self.auto_close
