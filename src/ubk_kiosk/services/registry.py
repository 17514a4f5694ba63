"""View registry - rotating/manual views, hidden views, site→view mapping.

Pure Python, no Qt dependencies. The rendering surfaces themselves are
created through an injected factory so the PySide6 adapter can supply
QtWebEngine views while tests supply fakes.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

from ..core.models import KioskStartupError, SiteConfig

log = logging.getLogger(__name__)

# Signals pushed to a surface whenever it is attached or reloaded
SIGNAL_PAUSE_BUTTON = 'pause-button-visibility'
SIGNAL_KEYBOARD_BUTTON = 'keyboard-button-enabled'


class ViewSurface(ABC):
    """Opaque rendering surface bound 1:1 to a SiteConfig.

    Created once at startup, destroyed only at shutdown. The controller
    never blocks on a surface: media polls complete through a callback.
    """

    def __init__(self, site: SiteConfig, site_index: int):
        self.site = site
        self.site_index = site_index

    @abstractmethod
    def send(self, channel: str, value: object) -> None:
        """Deliver a signal (pause-button-visibility, ...) to the page."""

    @abstractmethod
    def poll_media(self, callback: Callable[[bool], None]) -> None:
        """Ask the page whether audio/video is playing; fire-and-forget."""

    @abstractmethod
    def reload(self) -> None:
        """Reload the page content."""


SurfaceFactory = Callable[[SiteConfig, int], ViewSurface]


class ViewRegistry:
    """Ordered normal views, hidden views, and configured-index → view map.

    Normal views are every site with duration >= 0 in config order; hidden
    views are the duration == -1 sites. A site whose surface cannot be
    built is skipped with an error; no surface at all is fatal.
    """

    def __init__(self, sites: Sequence[SiteConfig], factory: SurfaceFactory):
        self.views: List[ViewSurface] = []
        self.hidden_views: List[ViewSurface] = []
        self._site_to_view: Dict[int, int] = {}

        for index, site in enumerate(sites):
            try:
                surface = factory(site, index)
            except Exception as e:
                log.error("Failed to create surface for site %d (%s): %s",
                          index, site.url, e)
                continue
            if site.is_hidden:
                self.hidden_views.append(surface)
            else:
                self._site_to_view[index] = len(self.views)
                self.views.append(surface)

        if not self.views:
            raise KioskStartupError("No visible rendering surface could be created")
        log.info("Registry: %d view(s), %d hidden view(s)",
                 len(self.views), len(self.hidden_views))

    # ── Lookup ───────────────────────────────────────────────────────

    def view_for_site(self, site_index: Optional[int]) -> Optional[int]:
        """Configured-site index → normal view index (None for hidden/missing)."""
        if site_index is None:
            return None
        return self._site_to_view.get(site_index)

    def surface(self, index: int, hidden: bool = False) -> Optional[ViewSurface]:
        pool = self.hidden_views if hidden else self.views
        if 0 <= index < len(pool):
            return pool[index]
        return None

    def duration(self, index: int, hidden: bool = False) -> int:
        surface = self.surface(index, hidden)
        return surface.site.duration if surface else 0

    def is_rotating(self, index: int) -> bool:
        return self.duration(index) > 0

    @property
    def rotating_indices(self) -> List[int]:
        return [i for i, v in enumerate(self.views) if v.site.is_rotating]

    @property
    def has_hidden(self) -> bool:
        return bool(self.hidden_views)

    def all_surfaces(self) -> List[ViewSurface]:
        return self.views + self.hidden_views

    # ── Navigation helpers ───────────────────────────────────────────

    def next_rotating(self, current: int) -> Optional[int]:
        """Next view with duration > 0 after ``current``, circularly.

        Stops after one full loop; returns None when no other rotating
        view exists.
        """
        count = len(self.views)
        for step in range(1, count):
            candidate = (current + step) % count
            if self.views[candidate].site.is_rotating:
                return candidate
        return None

    def step(self, current: int, delta: int, hidden: bool = False) -> int:
        pool = self.hidden_views if hidden else self.views
        if not pool:
            return current
        return (current + delta) % len(pool)
