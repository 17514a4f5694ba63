"""
Central path constants and utilities for UBK Kiosk.

All path calculations happen once here. Components import what they need.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

log = logging.getLogger(__name__)

# Config directory (XDG-compliant)
_XDG_CONFIG = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
CONFIG_DIR = os.path.join(_XDG_CONFIG, 'ubk-kiosk')
CONFIG_PATH = os.path.join(CONFIG_DIR, 'config.json')

# Hidden-tab PIN (plain file written by the installer)
PIN_FILE = os.path.join(CONFIG_DIR, 'hidden_pin')
NO_PIN_SENTINEL = 'no-pin'

# Sentinel flag files dropped by the display schedule / boot units.
# Each is consumed (deleted) the first time the controller sees it.
_RUNTIME_DIR = os.environ.get('XDG_RUNTIME_DIR', '/tmp')
FLAG_DIR = os.path.join(_RUNTIME_DIR, 'ubk-kiosk')
DISPLAY_WAKE_FLAG = os.path.join(FLAG_DIR, 'display-wake')
BOOT_FLAG = os.path.join(FLAG_DIR, 'boot')

# Log file tailed by the diagnostics scripts
LOG_DIR = os.path.expanduser('~/.local/state/ubk-kiosk')
LOG_FILE = os.path.join(LOG_DIR, 'kiosk.log')


def read_text(path: str) -> Optional[str]:
    """Safely read a small text file, return stripped content or None."""
    try:
        with open(path, 'r') as f:
            return f.read().strip()
    except OSError:
        return None


def read_pin(path: str = PIN_FILE) -> Optional[str]:
    """Read the hidden-tab PIN.

    Returns None when no PIN file exists (hidden tabs stay closed),
    NO_PIN_SENTINEL when any input should be accepted.
    """
    return read_text(path)


def consume_flag(path: str) -> bool:
    """Return True if the flag file existed, deleting it.

    A flag that cannot be removed is still reported once; the removal
    failure is logged.
    """
    if not os.path.exists(path):
        return False
    try:
        os.remove(path)
    except OSError as e:
        log.warning("Could not clear flag %s: %s", path, e)
    log.debug("Consumed flag %s", path)
    return True


def touch_flag(path: str) -> None:
    """Create a flag file (used by `ubk-kiosk flag` and tests)."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'a'):
        pass
