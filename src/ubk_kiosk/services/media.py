"""Media activity detector - polls the visible surface for playing audio/video.

Pure Python, no Qt dependencies. Polls are fire-and-forget: the surface
callback only records the result, which the controller applies on its next
tick. A poll that never answers is abandoned after POLL_TIMEOUT so the 1 Hz
cadence never waits on a slow page.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Optional, Tuple

from ..core.models import SessionState
from .registry import ViewSurface

log = logging.getLogger(__name__)


class MediaService:
    """Tracks media playback on the visible view and gates rotation."""

    POLL_INTERVAL = 2.0   # seconds between polls
    POLL_TIMEOUT = 5.0    # outstanding poll considered lost after this

    def __init__(self, grace_period: float = 10.0) -> None:
        self.grace_period = grace_period
        self._results: Deque[Tuple[int, bool]] = deque()
        self._poll_seq = 0
        self._outstanding: Optional[int] = None
        self._outstanding_since = 0.0
        self._last_poll = float('-inf')

    # ── Polling ──────────────────────────────────────────────────────

    def poll(self, surface: Optional[ViewSurface], now: float) -> bool:
        """Issue a poll of ``surface`` if one is due. Returns True if sent."""
        if surface is None:
            return False
        if self._outstanding is not None:
            if now - self._outstanding_since < self.POLL_TIMEOUT:
                return False
            log.debug("[MEDIA] poll %d timed out, abandoning", self._outstanding)
            self._outstanding = None
        if now - self._last_poll < self.POLL_INTERVAL:
            return False

        self._poll_seq += 1
        seq = self._poll_seq
        self._outstanding = seq
        self._outstanding_since = now
        self._last_poll = now

        def on_result(playing: bool, seq=seq) -> None:
            self._results.append((seq, bool(playing)))

        try:
            surface.poll_media(on_result)
        except Exception as e:
            log.warning("[MEDIA] poll failed: %s", e)
            self._outstanding = None
            return False
        return True

    def reset(self) -> None:
        """Forget outstanding polls (visible surface changed or detached)."""
        self._outstanding = None
        self._results.clear()
        self._last_poll = float('-inf')

    # ── Tick-side application ────────────────────────────────────────

    def apply_results(self, state: SessionState, now: float) -> bool:
        """Apply queued poll results to ``state``. Returns True on change."""
        changed = False
        while self._results:
            seq, playing = self._results.popleft()
            if seq != self._outstanding:
                continue  # stale answer from an abandoned or older poll
            self._outstanding = None
            if playing == state.media_is_playing:
                continue
            state.media_is_playing = playing
            state.last_media_state_change = now
            changed = True
            if playing:
                log.info("[MEDIA] playback started, rotation held")
            else:
                # Give the site a full dwell after the media ends
                state.site_start_time = now
                log.info("[MEDIA] playback stopped, rotation resumes after %ss grace",
                         self.grace_period)
        return changed

    def clear_state(self, state: SessionState, now: float) -> None:
        """Visible view changed: media state and grace belong to the old view."""
        self.reset()
        if state.media_is_playing:
            log.debug("[MEDIA] view changed while playing, state cleared")
        state.media_is_playing = False
        state.last_media_state_change = 0.0

    def blocks_rotation(self, state: SessionState, now: float) -> bool:
        """True while media plays or within the post-media grace period."""
        if state.media_is_playing:
            return True
        if state.last_media_state_change <= 0:
            return False
        return now - state.last_media_state_change < self.grace_period
