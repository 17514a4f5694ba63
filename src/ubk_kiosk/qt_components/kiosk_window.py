"""
PySide6 kiosk window - the View that drives SessionController.

The window owns the Qt timers (1 Hz tick, API inbox drain, controller
one-shots) and the overlays; the controller owns every decision. Surfaces
are parented to the window only while attached, so a lock leaves no web
content in the widget tree.
"""
from __future__ import annotations

import logging
import subprocess
import sys
from typing import Any, Callable, Dict, Optional, Tuple

from PySide6.QtCore import QEvent, QObject, Qt, QTimer, Signal
from PySide6.QtWidgets import QApplication, QMainWindow, QVBoxLayout, QWidget

from ..conf import KioskSettings
from ..core.clock import SystemClock, TimerHandle
from ..core.controllers import CommandInbox, SessionController
from ..core.models import (
    Command,
    DialogKind,
    KioskStartupError,
    PowerAction,
    SiteConfig,
)
from ..services.registry import ViewSurface
from .constants import Colors, Timing
from .dialogs import (
    InactivityPrompt,
    LockScreen,
    PauseButton,
    PauseDialog,
    PinDialog,
    PowerMenu,
)

log = logging.getLogger(__name__)

# Input events that count as user activity
_ACTIVITY_EVENTS = {
    QEvent.Type.MouseButtonPress,
    QEvent.Type.TouchBegin,
    QEvent.Type.KeyPress,
    QEvent.Type.Wheel,
}

POWER_COMMANDS: Dict[PowerAction, list] = {
    PowerAction.SHUTDOWN: ['systemctl', 'poweroff'],
    PowerAction.RESTART: ['systemctl', 'reboot'],
}


def make_qt_scheduler(parent: QObject) -> Callable[[float, Callable[[], None]], TimerHandle]:
    """SystemClock scheduler backed by single-shot QTimers on the GUI thread."""

    def schedule(delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer(parent)
        timer.setSingleShot(True)
        handle = TimerHandle(cancel_fn=lambda: (timer.stop(), timer.deleteLater()))

        def fire():
            if not handle.active:
                return
            handle.fired = True
            timer.deleteLater()
            callback()

        timer.timeout.connect(fire)
        timer.start(max(0, int(delay * 1000)))
        return handle

    return schedule


class KioskWindow(QMainWindow):
    """
    Full-screen kiosk window.

    This View:
    - Owns the SessionController and its Qt timers
    - Attaches/detaches web surfaces on controller callbacks
    - Shows overlays for dialogs and forwards their answers as commands
    - Feeds global input events to the controller as activity pings
    """

    # Broadcast for the external keyboard helper: (visible, auto_closed)
    keyboard_state_changed = Signal(bool, bool)

    def __init__(self, settings: KioskSettings,
                 inbox: Optional[CommandInbox] = None,
                 publish_state: Optional[Callable[[Dict[str, Any]], None]] = None,
                 surface_factory: Optional[Callable[[SiteConfig, int], ViewSurface]] = None,
                 **controller_kwargs):
        super().__init__()
        self.setWindowTitle("UBK Kiosk")
        self.setStyleSheet(f"QMainWindow {{ background-color: {Colors.WINDOW_BG}; }}")

        self._inbox = inbox
        self._publish_state = publish_state
        self._attached: Optional[ViewSurface] = None
        self._last_activity_ms = 0

        self.clock = SystemClock(scheduler=make_qt_scheduler(self))
        self.controller = SessionController(
            settings, surface_factory or self._create_surface, self.clock,
            **controller_kwargs)

        self._setup_ui()
        self._connect_controller_callbacks()
        self._connect_overlay_signals()

        self._tick_timer = QTimer(self)
        self._tick_timer.setInterval(SessionController.TICK_INTERVAL_MS)
        self._tick_timer.timeout.connect(self._on_tick)

        self._inbox_timer = QTimer(self)
        self._inbox_timer.setInterval(Timing.INBOX_DRAIN)
        self._inbox_timer.timeout.connect(self._on_drain_inbox)

    # =========================================================================
    # Setup
    # =========================================================================

    @staticmethod
    def _create_surface(site: SiteConfig, index: int) -> ViewSurface:
        from .web_surface import WebSurface
        return WebSurface(site, index)

    def _setup_ui(self):
        self.central = QWidget(self)
        self.setCentralWidget(self.central)
        self.content_layout = QVBoxLayout(self.central)
        self.content_layout.setContentsMargins(0, 0, 0, 0)

        self.pin_dialog = PinDialog(self.central)
        self.pause_dialog = PauseDialog(self.central)
        self.inactivity_prompt = InactivityPrompt(self.central)
        self.power_menu = PowerMenu(self.central)
        self.lock_screen = LockScreen(self.central)
        self.lock_screen.hide()
        self.pause_button = PauseButton(self.central)

        self._overlays = {
            DialogKind.PIN: self.pin_dialog,
            DialogKind.PAUSE: self.pause_dialog,
            DialogKind.INACTIVITY: self.inactivity_prompt,
        }

    def _connect_controller_callbacks(self):
        c = self.controller
        c.on_surface_attached = self._on_surface_attached
        c.on_surfaces_detached = self._on_surfaces_detached
        c.on_dialog_opened = self._on_dialog_opened
        c.on_dialog_closed = self._on_dialog_closed
        c.on_unlock_failed = self.lock_screen.show_rejected
        c.on_pin_rejected = self.pin_dialog.show_rejected
        c.on_power_menu = self._on_power_menu
        c.on_power_action = self._on_power_action
        c.on_keyboard_changed = self._on_keyboard_changed

    def _connect_overlay_signals(self):
        dispatch = self.controller.dispatch
        self.pin_dialog.submitted.connect(lambda pin: dispatch(Command.PIN_SUBMIT, pin))
        self.pin_dialog.cancelled.connect(lambda: dispatch(Command.CLOSE_DIALOG, 'pin'))
        self.pause_dialog.selected.connect(lambda m: dispatch(Command.PAUSE_SELECT, m))
        self.inactivity_prompt.answered.connect(
            lambda choice: dispatch(Command.INACTIVITY_RESPONSE, choice))
        self.power_menu.chosen.connect(lambda a: dispatch(Command.POWER_ACTION, a))
        self.lock_screen.password_entered.connect(
            lambda pw: dispatch(Command.UNLOCK_ATTEMPT, pw))
        self.lock_screen.power_requested.connect(
            lambda: dispatch(Command.SHOW_POWER_MENU))
        self.pause_button.clicked.connect(lambda: dispatch(Command.SHOW_PAUSE_DIALOG))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the session (boot-flag check happens before any attach)."""
        QApplication.instance().installEventFilter(self)
        self.controller.start()
        self._tick_timer.start()
        if self._inbox is not None:
            self._inbox_timer.start()

    def stop(self) -> None:
        self._tick_timer.stop()
        self._inbox_timer.stop()
        app = QApplication.instance()
        if app is not None:
            app.removeEventFilter(self)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        rect = self.central.rect()
        self.lock_screen.setGeometry(rect)
        for overlay in list(self._overlays.values()) + [self.power_menu]:
            overlay.setGeometry(rect)

    # =========================================================================
    # Timers
    # =========================================================================

    def _on_tick(self):
        self.controller.tick()
        if self._publish_state:
            self._publish_state(self.controller.snapshot())

    def _on_drain_inbox(self):
        if self._inbox is not None:
            self._inbox.drain(self.controller)

    # =========================================================================
    # Activity
    # =========================================================================

    def eventFilter(self, watched, event):
        if event.type() in _ACTIVITY_EVENTS:
            self._on_user_input()
        return super().eventFilter(watched, event)

    def _on_user_input(self):
        self.pause_button.poke()
        now_ms = int(self.clock.now() * 1000)
        if now_ms - self._last_activity_ms < Timing.ACTIVITY_THROTTLE:
            return
        self._last_activity_ms = now_ms
        self.controller.dispatch(Command.USER_ACTIVITY)

    # =========================================================================
    # Controller callbacks
    # =========================================================================

    def _on_surface_attached(self, surface: ViewSurface):
        self._detach_widget()
        widget = getattr(surface, 'widget', None)
        if widget is not None:
            self.content_layout.addWidget(widget)
            widget.show()
            widget.lower()
        self._attached = surface
        self.pause_button.set_allowed(bool(getattr(surface, 'signals', {}).get(
            'pause-button-visibility', False)))
        if hasattr(surface, 'on_signal'):
            surface.on_signal = self._on_surface_signal
        log.debug("Attached surface %d", surface.site_index)

    def _on_surface_signal(self, surface, channel, value):
        if surface is self._attached and channel == 'pause-button-visibility':
            self.pause_button.set_allowed(bool(value))

    def _on_surfaces_detached(self):
        self._detach_widget()
        self.pause_button.set_allowed(False)
        for overlay in self._overlays.values():
            overlay.close_overlay()
        self.power_menu.close_overlay()

    def _detach_widget(self):
        if self._attached is None:
            return
        widget = getattr(self._attached, 'widget', None)
        if widget is not None:
            self.content_layout.removeWidget(widget)
            widget.setParent(None)
        self._attached = None

    def _on_dialog_opened(self, kind: DialogKind, data: Any):
        if kind == DialogKind.LOCKOUT:
            self.lock_screen.setGeometry(self.central.rect())
            self.lock_screen.show()
            self.lock_screen.raise_()
            self.lock_screen.reset()
            return
        overlay = self._overlays.get(kind)
        if overlay is None:
            return
        if kind == DialogKind.INACTIVITY:
            self.inactivity_prompt.start((data or {}).get('timeout', 15))
        else:
            overlay.open()

    def _on_dialog_closed(self, kind: DialogKind):
        if kind == DialogKind.LOCKOUT:
            self.lock_screen.hide()
            return
        overlay = self._overlays.get(kind)
        if overlay is not None:
            overlay.close_overlay()

    def _on_power_menu(self, actions: Tuple[PowerAction, ...]):
        self.power_menu.set_actions(actions)
        self.power_menu.open()

    def _on_power_action(self, action: PowerAction):
        cmd = POWER_COMMANDS.get(action)
        if cmd is None:
            return
        log.warning("Power action %s: %s", action.value, " ".join(cmd))
        try:
            subprocess.Popen(cmd)
        except OSError as e:
            log.error("Power action %s failed: %s", action.value, e)

    def _on_keyboard_changed(self, visible: bool, auto_closed: bool):
        surface = self._attached
        if surface is not None:
            surface.send('keyboard-state-changed', visible)
            if auto_closed:
                surface.send('keyboard-auto-closed', True)
        self.keyboard_state_changed.emit(visible, auto_closed)


def run_kiosk_app(settings: KioskSettings, windowed: bool = False,
                  api: bool = True, api_host: str = '127.0.0.1',
                  api_port: int = 8765, api_token: Optional[str] = None) -> int:
    """Create QApplication, start the session and the command API, run the loop."""
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("ubk-kiosk")
    app.setQuitOnLastWindowClosed(True)

    inbox = None
    publish = None
    if api:
        from .. import api as api_module
        inbox = api_module.inbox
        publish = api_module.publish_state
        api_module.start_server(api_host, api_port, api_token)

    try:
        window = KioskWindow(settings, inbox=inbox, publish_state=publish)
    except KioskStartupError as e:
        log.critical("Cannot start kiosk: %s", e)
        return 1

    if windowed:
        window.resize(1280, 800)
        window.show()
    else:
        window.setWindowFlags(Qt.WindowType.FramelessWindowHint | Qt.WindowType.Window)
        window.showFullScreen()
    window.start()
    return app.exec()
