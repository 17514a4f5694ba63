"""
PySide6 modal overlays for the kiosk window.

Every overlay is a non-blocking full-window QFrame (scrim + centered panel)
rather than a QDialog.exec(), so the 1 Hz tick keeps running while one is
shown. Overlays only emit signals; the window turns them into controller
commands.

- PinDialog:        hidden-tab PIN entry
- PauseDialog:      pick 15/30/60/120 minutes or cancel
- InactivityPrompt: "are you still here" with countdown
- LockScreen:       password entry + limited power menu
- PowerMenu:        shutdown / restart / reload
- PauseButton:      floating trigger, auto-hides after 5 s
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..core.models import (
    EXTENSION_CHOICES_MINUTES,
    InactivityChoice,
    PowerAction,
)
from .constants import Colors, Sizes, Styles, Timing

log = logging.getLogger(__name__)


def _minutes_label(minutes: int) -> str:
    if minutes >= 60 and minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" + ("s" if hours > 1 else "")
    return f"{minutes} min"


class ModalOverlay(QFrame):
    """Base overlay: covers the parent, centers a fixed-size panel."""

    def __init__(self, parent=None, width=Sizes.DIALOG_W, height=Sizes.DIALOG_H):
        super().__init__(parent)
        self.setStyleSheet(f"ModalOverlay {{ background-color: {Colors.SCRIM}; }}")
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)

        self.panel = QFrame(self)
        self.panel.setObjectName('panel')
        self.panel.setStyleSheet(Styles.PANEL)
        self.panel.setFixedSize(width, height)

        outer = QVBoxLayout(self)
        outer.addWidget(self.panel, 0, Qt.AlignmentFlag.AlignCenter)

        self.body = QVBoxLayout(self.panel)
        self.body.setContentsMargins(28, 24, 28, 24)
        self.body.setSpacing(14)
        self.hide()

    def _title(self, text: str) -> QLabel:
        label = QLabel(text, self.panel)
        label.setStyleSheet(Styles.TITLE)
        label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.body.addWidget(label)
        return label

    def _label(self, text: str = '', style: str = Styles.BODY) -> QLabel:
        label = QLabel(text, self.panel)
        label.setStyleSheet(style)
        label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        label.setWordWrap(True)
        self.body.addWidget(label)
        return label

    def _button(self, text: str, style: str = Styles.BUTTON) -> QPushButton:
        button = QPushButton(text, self.panel)
        button.setStyleSheet(style)
        button.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        return button

    def open(self) -> None:
        parent = self.parentWidget()
        if parent is not None:
            self.setGeometry(parent.rect())
        self.show()
        self.raise_()

    def close_overlay(self) -> None:
        """Hide. Safe to call when already hidden."""
        self.hide()


class PinDialog(ModalOverlay):
    """Hidden-tab PIN entry."""

    submitted = Signal(str)
    cancelled = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._title("Enter PIN")

        self.input = QLineEdit(self.panel)
        self.input.setEchoMode(QLineEdit.EchoMode.Password)
        self.input.setStyleSheet(Styles.INPUT)
        self.input.setFixedWidth(Sizes.PIN_INPUT_W)
        self.input.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.input.returnPressed.connect(self._submit)
        self.body.addWidget(self.input, 0, Qt.AlignmentFlag.AlignCenter)

        self.error = self._label('', Styles.ERROR)

        row = QHBoxLayout()
        cancel = self._button("Cancel")
        cancel.clicked.connect(self.cancelled.emit)
        ok = self._button("Open", Styles.ACCENT_BUTTON)
        ok.clicked.connect(self._submit)
        row.addWidget(cancel)
        row.addWidget(ok)
        self.body.addLayout(row)

    def open(self) -> None:
        self.input.clear()
        self.error.clear()
        super().open()
        self.input.setFocus()

    def show_rejected(self) -> None:
        self.input.clear()
        self.error.setText("Incorrect PIN")

    def _submit(self) -> None:
        self.submitted.emit(self.input.text())


class PauseDialog(ModalOverlay):
    """Pause rotation for a chosen number of minutes (0 = cancel)."""

    selected = Signal(int)

    def __init__(self, parent=None, choices: Sequence[int] = EXTENSION_CHOICES_MINUTES):
        super().__init__(parent)
        self._title("Pause rotation")
        self._label("Keep this page on screen for:")

        row = QHBoxLayout()
        self.choice_buttons = []
        for minutes in choices:
            button = self._button(_minutes_label(minutes), Styles.ACCENT_BUTTON)
            button.clicked.connect(lambda checked=False, m=minutes: self.selected.emit(m))
            row.addWidget(button)
            self.choice_buttons.append(button)
        self.body.addLayout(row)

        cancel = self._button("Cancel")
        cancel.clicked.connect(lambda: self.selected.emit(0))
        self.body.addWidget(cancel)


class InactivityPrompt(ModalOverlay):
    """'Are you still here?' with a visible countdown.

    The countdown is cosmetic; the controller owns the real auto-resolve
    timer.
    """

    answered = Signal(object)  # InactivityChoice or int minutes

    def __init__(self, parent=None, choices: Sequence[int] = EXTENSION_CHOICES_MINUTES):
        super().__init__(parent, height=Sizes.DIALOG_H + 60)
        self._title("Are you still here?")
        self.countdown = self._label()

        still = self._button("I'm still here", Styles.ACCENT_BUTTON)
        still.clicked.connect(lambda: self.answered.emit(InactivityChoice.STILL_HERE))
        self.body.addWidget(still)

        row = QHBoxLayout()
        for minutes in choices:
            button = self._button(f"+{_minutes_label(minutes)}")
            button.clicked.connect(lambda checked=False, m=minutes: self.answered.emit(m))
            row.addWidget(button)
        self.body.addLayout(row)

        home = self._button("Go home")
        home.clicked.connect(lambda: self.answered.emit(InactivityChoice.GO_HOME))
        self.body.addWidget(home)

        self._remaining = 0
        self._timer = QTimer(self)
        self._timer.setInterval(Timing.COUNTDOWN_STEP)
        self._timer.timeout.connect(self._on_countdown)

    def start(self, seconds: float) -> None:
        self._remaining = int(seconds)
        self._update_label()
        self._timer.start()
        self.open()

    def close_overlay(self) -> None:
        self._timer.stop()
        super().close_overlay()

    def _on_countdown(self) -> None:
        self._remaining = max(0, self._remaining - 1)
        self._update_label()
        if self._remaining == 0:
            self._timer.stop()

    def _update_label(self) -> None:
        self.countdown.setText(f"Returning home in {self._remaining} s")


class PowerMenu(ModalOverlay):
    """Power actions; built per request so the locked variant has no reload."""

    chosen = Signal(str)
    cancelled = Signal()

    def __init__(self, parent=None):
        super().__init__(parent, height=Sizes.DIALOG_H - 60)
        self._title("Power")
        self._row = QHBoxLayout()
        self.body.addLayout(self._row)
        cancel = self._button("Cancel")
        cancel.clicked.connect(self._cancel)
        self.body.addWidget(cancel)
        self.action_buttons = {}

    def set_actions(self, actions: Iterable[PowerAction]) -> None:
        for button in self.action_buttons.values():
            self._row.removeWidget(button)
            button.deleteLater()
        self.action_buttons = {}
        for action in actions:
            style = Styles.DANGER_BUTTON if action == PowerAction.SHUTDOWN else Styles.BUTTON
            button = self._button(action.value.capitalize(), style)
            button.clicked.connect(lambda checked=False, a=action: self._choose(a))
            self._row.addWidget(button)
            self.action_buttons[action] = button

    def _choose(self, action: PowerAction) -> None:
        self.close_overlay()
        self.chosen.emit(action.value)

    def _cancel(self) -> None:
        self.close_overlay()
        self.cancelled.emit()


class LockScreen(QFrame):
    """Opaque full-window password surface. Nothing else is attached while shown."""

    password_entered = Signal(str)
    power_requested = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName('lockScreen')
        self.setStyleSheet(f"QFrame#lockScreen {{ background-color: {Colors.LOCK_BG}; }}")
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)

        layout = QVBoxLayout(self)
        layout.addStretch(1)

        title = QLabel("Locked", self)
        title.setStyleSheet(Styles.TITLE)
        title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(title)

        self.input = QLineEdit(self)
        self.input.setEchoMode(QLineEdit.EchoMode.Password)
        self.input.setPlaceholderText("Password")
        self.input.setStyleSheet(Styles.INPUT)
        self.input.setFixedWidth(Sizes.PIN_INPUT_W + 80)
        self.input.returnPressed.connect(self._submit)
        layout.addWidget(self.input, 0, Qt.AlignmentFlag.AlignCenter)

        self.error = QLabel('', self)
        self.error.setStyleSheet(Styles.ERROR)
        self.error.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.error)

        unlock = QPushButton("Unlock", self)
        unlock.setStyleSheet(Styles.ACCENT_BUTTON)
        unlock.clicked.connect(self._submit)
        layout.addWidget(unlock, 0, Qt.AlignmentFlag.AlignCenter)

        layout.addStretch(1)

        power = QPushButton("Power", self)
        power.setStyleSheet(Styles.BUTTON)
        power.clicked.connect(self.power_requested.emit)
        layout.addWidget(power, 0, Qt.AlignmentFlag.AlignRight)

    def reset(self) -> None:
        self.input.clear()
        self.error.clear()
        self.input.setFocus()

    def show_rejected(self) -> None:
        self.input.clear()
        self.error.setText("Incorrect password")

    def _submit(self) -> None:
        text = self.input.text()
        self.input.clear()
        self.password_entered.emit(text)


class PauseButton(QPushButton):
    """Floating pause trigger shown on rotating sites.

    Appears on user interaction and hides itself after
    PAUSE_BUTTON_HIDE_DELAY ms with no further interaction.
    """

    def __init__(self, parent: QWidget = None):
        super().__init__("II", parent)
        self.setFixedSize(Sizes.PAUSE_BUTTON, Sizes.PAUSE_BUTTON)
        self.setStyleSheet(
            f"QPushButton {{ background-color: {Colors.SCRIM}; color: {Colors.TEXT};"
            f" border-radius: {Sizes.PAUSE_BUTTON // 2}px; font-size: 26px;"
            f" font-weight: bold; }}")
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.allowed = False

        self.hide_timer = QTimer(self)
        self.hide_timer.setSingleShot(True)
        self.hide_timer.setInterval(Timing.PAUSE_BUTTON_HIDE_DELAY)
        self.hide_timer.timeout.connect(self._on_hide_timeout)
        self.hide()

    def set_allowed(self, allowed: bool) -> None:
        """pause-button-visibility from the controller."""
        self.allowed = bool(allowed)
        if not self.allowed:
            self.hide_timer.stop()
            self.hide()

    def poke(self) -> None:
        """User interaction: show (or keep showing) and restart the hide timer."""
        if not self.allowed:
            return
        if self.isHidden():
            self._reposition()
            self.show()
            self.raise_()
        self.hide_timer.start()

    def _reposition(self) -> None:
        parent = self.parentWidget()
        if parent is None:
            return
        margin = Sizes.PAUSE_BUTTON_MARGIN
        self.move(parent.width() - self.width() - margin,
                  parent.height() - self.height() - margin)

    def _on_hide_timeout(self) -> None:
        log.debug("[PAUSE] auto-hiding pause button after %d ms",
                  Timing.PAUSE_BUTTON_HIDE_DELAY)
        self.hide()
