"""Lockout manager - password-gated lock with inactivity, schedule and flag
triggers.

Pure Python, no Qt dependencies. Generic user activity never resets the
lockout clock; only a successful unlock or an extension grant does.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from datetime import datetime
from datetime import time as dtime
from typing import Optional

from ..conf import KioskSettings
from ..core.models import LockReason, SessionState
from ..paths import BOOT_FLAG, DISPLAY_WAKE_FLAG, consume_flag

log = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """sha256 hex digest stored as lockoutPasswordHash."""
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def verify_password(password: str, stored_hash: str) -> bool:
    if not stored_hash:
        return False
    return hmac.compare_digest(hash_password(password or ''), stored_hash.lower())


def within_window(now: dtime, start: dtime, end: dtime) -> bool:
    """Is ``now`` inside [start, end)? start > end wraps midnight; start == end is all day."""
    if start == end:
        return True
    if start < end:
        return start <= now < end
    return now >= start or now < end


class LockoutService:
    """UNLOCKED → LOCKED → UNLOCKED."""

    def __init__(self, settings: KioskSettings,
                 wake_flag: str = DISPLAY_WAKE_FLAG,
                 boot_flag: str = BOOT_FLAG) -> None:
        self.settings = settings
        self.wake_flag = wake_flag
        self.boot_flag = boot_flag
        self._last_scheduled_key: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.settings.password_protected

    # ── Triggers ─────────────────────────────────────────────────────

    def in_active_hours(self, local: datetime) -> bool:
        if not self.settings.has_active_hours:
            return True
        return within_window(local.time().replace(second=0, microsecond=0),
                             self.settings.lockout_active_start,
                             self.settings.lockout_active_end)

    def scheduled_due(self, local: datetime) -> bool:
        """Daily lock time matches this minute (fires once per minute)."""
        at = self.settings.lockout_at_time
        if at is None or (local.hour, local.minute) != (at.hour, at.minute):
            return False
        key = local.strftime('%Y-%m-%d %H:%M')
        if key == self._last_scheduled_key:
            return False
        self._last_scheduled_key = key
        return True

    def inactivity_due(self, state: SessionState, now: float,
                       local: datetime, extension_active: bool) -> bool:
        timeout = self.settings.lockout_timeout
        if timeout <= 0 or extension_active:
            return False
        if not self.in_active_hours(local):
            return False
        return now - state.lockout_activity_time >= timeout

    def check(self, state: SessionState, now: float, local: datetime,
              extension_active: bool) -> Optional[LockReason]:
        """Clock-driven triggers (a) inactivity and (b) daily time."""
        if not self.enabled or state.is_locked_out:
            return None
        if self.scheduled_due(local):
            return LockReason.SCHEDULED
        if self.inactivity_due(state, now, local, extension_active):
            return LockReason.INACTIVITY
        return None

    def check_wake_flag(self) -> Optional[LockReason]:
        """Trigger (c): display-wake flag, consumed whether or not it locks."""
        if not consume_flag(self.wake_flag):
            return None
        if self.enabled and self.settings.lock_on_display_wake:
            return LockReason.DISPLAY_WAKE
        log.debug("[LOCKOUT] display-wake flag ignored (protection off)")
        return None

    def check_boot_flag(self) -> Optional[LockReason]:
        """Trigger (d): boot flag, checked once before any view is attached."""
        if not consume_flag(self.boot_flag):
            return None
        if self.enabled and self.settings.require_password_on_boot:
            return LockReason.BOOT
        log.debug("[LOCKOUT] boot flag ignored (password on boot off)")
        return None

    # ── Transitions ──────────────────────────────────────────────────

    def lock(self, state: SessionState, reason: LockReason) -> bool:
        if state.is_locked_out:
            return False
        state.is_locked_out = True
        state.lock_reason = reason
        log.warning("[LOCKOUT] locked (%s)", reason.value)
        return True

    def unlock(self, state: SessionState, password: str, now: float) -> bool:
        """Hash check; success resets the lockout clock."""
        if not state.is_locked_out:
            return False
        if not verify_password(password, self.settings.lockout_password_hash):
            state.failed_unlock_attempts += 1
            log.warning("[LOCKOUT] incorrect password (attempt %d)",
                        state.failed_unlock_attempts)
            return False
        log.info("[LOCKOUT] unlocked after %s lock", state.lock_reason.value
                 if state.lock_reason else 'unknown')
        state.is_locked_out = False
        state.lock_reason = None
        state.failed_unlock_attempts = 0
        state.lockout_activity_time = now
        return True
