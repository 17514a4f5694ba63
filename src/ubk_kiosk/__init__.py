"""
UBK Kiosk - touch-screen kiosk session shell

Shows a list of configured web sites full-screen and manages the session
around them.

Features:
- Timed rotation between sites, paused while media plays
- Return to the home site after inactivity (with an "are you still here?" prompt)
- Pause extensions of 15 min to 2 h on rotating sites
- Password lockout on inactivity, at a daily time, on boot or display wake
- Hidden sites behind a PIN
- Local command API for gestures, hotkeys and helper processes

Usage:
    # As a library
    from ubk_kiosk import SessionController, load_settings
    controller = SessionController(load_settings(path), surface_factory, clock)
    controller.start()

    # Command line
    ubk-kiosk run             # Launch the kiosk
    ubk-kiosk check-config    # Validate config.json
"""

from ubk_kiosk.__version__ import __version__
from ubk_kiosk.conf import KioskSettings, load_settings, settings_from_dict
from ubk_kiosk.core.clock import Clock, SystemClock
from ubk_kiosk.core.controllers import CommandInbox, SessionController
from ubk_kiosk.core.models import Command, KioskCommand, KioskStartupError, SiteConfig

__all__ = [
    # Version
    "__version__",
    # Config
    "KioskSettings",
    "load_settings",
    "settings_from_dict",
    # Clock
    "Clock",
    "SystemClock",
    # Session
    "SessionController",
    "CommandInbox",
    "Command",
    "KioskCommand",
    "KioskStartupError",
    "SiteConfig",
]
