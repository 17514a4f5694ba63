"""UBK Kiosk Services - Core hexagon (pure Python, no Qt/HTTP/CLI).

Session logic shared by all driving adapters:
- core/controllers.py (SessionController, driven by the PySide6 window)
- api.py (FastAPI command endpoint)
- cli.py (argparse CLI)
"""

from .dialogs import DialogService
from .extension import ExtensionService
from .hidden import HiddenGateService
from .inactivity import InactivityService
from .keyboard import KeyboardService
from .lockout import LockoutService
from .media import MediaService
from .registry import ViewRegistry, ViewSurface
from .rotation import RotationService

__all__ = [
    'DialogService',
    'ExtensionService',
    'HiddenGateService',
    'InactivityService',
    'KeyboardService',
    'LockoutService',
    'MediaService',
    'RotationService',
    'ViewRegistry',
    'ViewSurface',
]
