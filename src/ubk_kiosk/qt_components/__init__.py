"""PySide6 GUI components for UBK Kiosk."""

from .dialogs import (
    InactivityPrompt,
    LockScreen,
    PauseButton,
    PauseDialog,
    PinDialog,
    PowerMenu,
)
from .kiosk_window import KioskWindow, run_kiosk_app

__all__ = [
    'KioskWindow',
    'run_kiosk_app',
    'InactivityPrompt',
    'LockScreen',
    'PauseButton',
    'PauseDialog',
    'PinDialog',
    'PowerMenu',
]
