"""
UBK Kiosk Core - Services + Controller Architecture

Services: Pure Python session logic (no GUI dependencies)
Controller: SessionController, the single command reducer and 1 Hz tick
Models: Data classes only (SiteConfig, SessionState, Command, etc.)

Note: the controller is NOT re-exported here to avoid circular imports
(services → core.models → core.__init__ → controllers → services).
Import it directly: `from ubk_kiosk.core.controllers import SessionController`
"""

from .models import (
    Command,
    DialogKind,
    KioskCommand,
    SessionState,
    SiteConfig,
    SiteKind,
)

__all__ = [
    'Command',
    'DialogKind',
    'KioskCommand',
    'SessionState',
    'SiteConfig',
    'SiteKind',
]
