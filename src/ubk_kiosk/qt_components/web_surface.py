"""
QtWebEngine rendering surface for one configured site.

WebSurface is the ViewSurface the controller talks to; ``widget`` is the
QWebEngineView the window attaches and detaches. The surface is created
once at startup and lives until shutdown.
"""
from __future__ import annotations

import json
import logging
from typing import Callable, Dict, Optional

from PySide6.QtCore import QUrl
from PySide6.QtWebEngineWidgets import QWebEngineView

from ..core.models import SiteConfig
from ..services.registry import ViewSurface

log = logging.getLogger(__name__)

# True when any <video>/<audio> element is actually playing
MEDIA_PROBE_JS = """
(function() {
  var els = document.querySelectorAll('video, audio');
  for (var i = 0; i < els.length; i++) {
    var m = els[i];
    if (!m.paused && !m.ended && m.readyState > 2 && !m.muted) return true;
  }
  return false;
})();
"""


def signal_script(channel: str, value: object) -> str:
    """JS that stores a kiosk signal on window and fires a 'kiosk-signal' event."""
    c, v = json.dumps(channel), json.dumps(value)
    return (
        "window.__kioskSignals = window.__kioskSignals || {};"
        f"window.__kioskSignals[{c}] = {v};"
        "window.dispatchEvent(new CustomEvent('kiosk-signal',"
        f" {{detail: {{channel: {c}, value: {v}}}}}));"
    )


class WebSurface(ViewSurface):
    """ViewSurface backed by a QWebEngineView."""

    def __init__(self, site: SiteConfig, site_index: int):
        super().__init__(site, site_index)
        self.signals: Dict[str, object] = {}
        self.on_signal: Optional[Callable[['WebSurface', str, object], None]] = None

        self.widget = QWebEngineView()
        page = self.widget.page()
        page.authenticationRequired.connect(self._on_auth_required)
        # Re-send stored signals after navigation inside the page
        self.widget.loadFinished.connect(self._on_load_finished)
        self.widget.load(QUrl(site.url))
        log.debug("Surface %d loading %s", site_index, site.url)

    def send(self, channel: str, value: object) -> None:
        self.signals[channel] = value
        self.widget.page().runJavaScript(signal_script(channel, value))
        if self.on_signal:
            self.on_signal(self, channel, value)

    def poll_media(self, callback: Callable[[bool], None]) -> None:
        self.widget.page().runJavaScript(MEDIA_PROBE_JS, 0,
                                         lambda result: callback(bool(result)))

    def reload(self) -> None:
        log.info("Reloading surface %d (%s)", self.site_index, self.site.url)
        self.widget.reload()

    def _on_load_finished(self, ok: bool) -> None:
        if not ok:
            log.warning("Surface %d failed to load %s", self.site_index, self.site.url)
        page = self.widget.page()
        for channel, value in self.signals.items():
            page.runJavaScript(signal_script(channel, value))

    def _on_auth_required(self, url, authenticator) -> None:
        creds = self.site.credentials
        if creds is None:
            log.warning("Surface %d: auth required for %s but no credentials",
                        self.site_index, url.toString())
            return
        authenticator.setUser(creds[0])
        authenticator.setPassword(creds[1])
