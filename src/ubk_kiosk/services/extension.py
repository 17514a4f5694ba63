"""Extension/pause controller - one deadline that suspends rotation and
inactivity checks.

Pure Python, no Qt dependencies. Both the inactivity prompt ("extend N
minutes") and the pause dialog converge on ``grant()``.
"""
from __future__ import annotations

import logging

from ..core.models import SessionState

log = logging.getLogger(__name__)


class ExtensionService:
    """Grants, clears and expires ``inactivity_extension_until``."""

    def __init__(self, max_minutes: int = 120, password_protected: bool = False) -> None:
        self.max_minutes = max_minutes
        self.password_protected = password_protected

    def active(self, state: SessionState, now: float) -> bool:
        return state.extension_active(now)

    def remaining(self, state: SessionState, now: float) -> float:
        return max(0.0, state.inactivity_extension_until - now)

    def grant(self, state: SessionState, now: float, minutes) -> bool:
        """Extend until now + minutes. 0/None/invalid means cancel: no change.

        Resets the rotation timer and, with password protection, the
        lockout clock.
        """
        try:
            minutes = int(minutes or 0)
        except (TypeError, ValueError):
            log.warning("[PAUSE] invalid extension %r ignored", minutes)
            return False
        if minutes <= 0:
            log.info("[PAUSE] no selection, extension unchanged")
            return False
        if minutes > self.max_minutes:
            log.warning("[PAUSE] %d min exceeds ceiling, clamped to %d",
                        minutes, self.max_minutes)
            minutes = self.max_minutes

        state.inactivity_extension_until = now + minutes * 60
        state.site_start_time = now
        if self.password_protected:
            state.lockout_activity_time = now
        log.info("[PAUSE] extended %d min%s", minutes,
                 " (lockout clock reset)" if self.password_protected else "")
        return True

    def clear(self, state: SessionState) -> bool:
        """Drop any extension. Returns True if one was active."""
        if not state.inactivity_extension_until:
            return False
        state.inactivity_extension_until = 0.0
        log.info("[PAUSE] extension cleared")
        return True

    def check_expiry(self, state: SessionState, now: float) -> bool:
        """On expiry, reset interaction and rotation timers in the same tick."""
        until = state.inactivity_extension_until
        if not until or now < until:
            return False
        state.inactivity_extension_until = 0.0
        state.last_user_interaction = now
        state.site_start_time = now
        log.info("[PAUSE] extension expired, timers reset")
        return True
