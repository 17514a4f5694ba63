"""Rotation scheduler - advances through rotating views by per-site duration.

Pure Python, no Qt dependencies. The scheduler decides *whether* to advance;
the controller performs the attach so every view change goes through one
path.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..core.models import SessionState
from .registry import ViewRegistry

log = logging.getLogger(__name__)


class RotationService:
    """Per-tick rotation decision."""

    def __init__(self, registry: ViewRegistry) -> None:
        self.registry = registry

    def elapsed(self, state: SessionState, now: float) -> float:
        return now - state.site_start_time

    def due(self, state: SessionState, now: float) -> Optional[int]:
        """Return the view index to rotate to, or None.

        Caller has already ruled out lock, hidden mode, open dialogs,
        media and extensions. Only the current view's own duration and the
        availability of another rotating view are checked here.
        """
        index = state.current_view_index
        duration = self.registry.duration(index)
        if duration <= 0:
            return None  # manual site: never auto-rotates

        if self.elapsed(state, now) < duration:
            return None

        target = self.registry.next_rotating(index)
        if target is None:
            # Sole rotating site: restart its dwell instead of re-checking every tick
            state.site_start_time = now
            log.debug("[ROTATION] no other rotating view, staying on %d", index)
            return None
        return target

    def restart(self, state: SessionState, now: float) -> None:
        """Reset the dwell timer (attach, advance, extension expiry)."""
        state.site_start_time = now
