"""Hidden-tab access gate - PIN-checked toggle into the hidden view set."""
from __future__ import annotations

import hmac
import logging

from ..core.models import SessionState
from ..paths import NO_PIN_SENTINEL, PIN_FILE, read_pin
from .registry import ViewRegistry

log = logging.getLogger(__name__)


class HiddenGateService:
    """Two-state gate over ``state.showing_hidden``."""

    def __init__(self, registry: ViewRegistry, pin_file: str = PIN_FILE) -> None:
        self.registry = registry
        self.pin_file = pin_file

    def check_pin(self, entered) -> bool:
        """Compare against the stored PIN; the 'no-pin' sentinel accepts anything."""
        stored = read_pin(self.pin_file)
        if stored is None:
            log.warning("[HIDDEN] no PIN file at %s, access denied", self.pin_file)
            return False
        if stored == NO_PIN_SENTINEL:
            return True
        entered = '' if entered is None else str(entered).strip()
        return hmac.compare_digest(entered.encode(), stored.encode())

    def enter(self, state: SessionState) -> bool:
        if not self.registry.has_hidden:
            log.info("[HIDDEN] no hidden views configured")
            return False
        state.showing_hidden = True
        state.current_hidden_index = 0
        log.info("[HIDDEN] entered hidden views")
        return True

    def advance(self, state: SessionState) -> bool:
        """Next hidden view; returns False once the cycle wraps back out."""
        nxt = state.current_hidden_index + 1
        if nxt >= len(self.registry.hidden_views):
            self.exit(state)
            return False
        state.current_hidden_index = nxt
        log.info("[HIDDEN] hidden view %d", nxt)
        return True

    def exit(self, state: SessionState) -> bool:
        if not state.showing_hidden:
            return False
        state.showing_hidden = False
        state.current_hidden_index = 0
        log.info("[HIDDEN] returned to normal views")
        return True
