"""
UBK Kiosk Models - Pure data classes with no GUI dependencies.

These models are shared by the services, the session controller and every
driving adapter (PySide6 window, FastAPI endpoint, CLI).
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional, Tuple

# =============================================================================
# Site configuration
# =============================================================================

# Duration sentinels (tabs[].duration in config.json)
DURATION_MANUAL = 0
DURATION_HIDDEN = -1

BLANK_URL = 'about:blank'


class SiteKind(Enum):
    """How a configured site participates in the session."""
    ROTATING = auto()   # duration > 0: auto-advanced
    MANUAL = auto()     # duration == 0: explicit navigation only
    HIDDEN = auto()     # duration == -1: PIN-gated


@dataclass(frozen=True)
class SiteConfig:
    """Single configured site. Index in the site list is its identity."""
    url: str
    duration: int = DURATION_MANUAL
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def kind(self) -> SiteKind:
        if self.duration > 0:
            return SiteKind.ROTATING
        if self.duration == DURATION_HIDDEN:
            return SiteKind.HIDDEN
        return SiteKind.MANUAL

    @property
    def is_rotating(self) -> bool:
        return self.duration > 0

    @property
    def is_hidden(self) -> bool:
        return self.duration == DURATION_HIDDEN

    @property
    def credentials(self) -> Optional[Tuple[str, str]]:
        """(username, password) for HTTP auth challenges, or None."""
        if self.username:
            return (self.username, self.password or '')
        return None


# =============================================================================
# Dialogs
# =============================================================================

class DialogKind(Enum):
    """Modal dialogs. At most one is open at a time."""
    PIN = 'pin'
    PAUSE = 'pause'
    INACTIVITY = 'inactivity'
    LOCKOUT = 'lockout'


class InactivityChoice(Enum):
    """Outcomes of the "are you still here" prompt."""
    STILL_HERE = 'still-here'
    GO_HOME = 'go-home'
    EXTEND = 'extend'


# Offered by the pause dialog and the inactivity prompt
EXTENSION_CHOICES_MINUTES: Tuple[int, ...] = (15, 30, 60, 120)


# =============================================================================
# Lockout
# =============================================================================

class LockReason(Enum):
    """Why the session entered the locked state."""
    INACTIVITY = 'inactivity'
    SCHEDULED = 'scheduled'
    DISPLAY_WAKE = 'display-wake'
    BOOT = 'boot'
    MANUAL = 'manual'


class PowerAction(Enum):
    """Power menu entries."""
    SHUTDOWN = 'shutdown'
    RESTART = 'restart'
    RELOAD = 'reload'


# Reload would relaunch the app and drop the lock state
LOCKED_POWER_ACTIONS: Tuple[PowerAction, ...] = (PowerAction.SHUTDOWN, PowerAction.RESTART)
UNLOCKED_POWER_ACTIONS: Tuple[PowerAction, ...] = (
    PowerAction.SHUTDOWN, PowerAction.RESTART, PowerAction.RELOAD)


# =============================================================================
# Commands
# =============================================================================

class Command(Enum):
    """External commands accepted by the session controller."""
    TAB_NEXT = 'tab-next'
    TAB_PREV = 'tab-prev'
    TOGGLE_HIDDEN = 'toggle-hidden'
    FORCE_RETURN = 'force-return'
    SHOW_KEYBOARD = 'show-keyboard'
    SHOW_POWER_MENU = 'show-power-menu'
    POWER_ACTION = 'power-action'
    USER_ACTIVITY = 'user-activity'
    SHOW_PAUSE_DIALOG = 'show-pause-dialog'
    PAUSE_SELECT = 'pause-select'
    PIN_SUBMIT = 'pin-submit'
    INACTIVITY_RESPONSE = 'inactivity-response'
    UNLOCK_ATTEMPT = 'check-lockout-password'
    CLOSE_DIALOG = 'close-dialog'


# Names used by the gesture daemon and older kiosk builds
COMMAND_ALIASES: Dict[str, Command] = {
    'swipe-left': Command.TAB_NEXT,
    'swipe-right': Command.TAB_PREV,
    'activity-ping': Command.USER_ACTIVITY,
    'power-menu': Command.SHOW_POWER_MENU,
    'unlock-attempt': Command.UNLOCK_ATTEMPT,
}

# Commands that change which view is visible
NAVIGATION_COMMANDS = frozenset({
    Command.TAB_NEXT,
    Command.TAB_PREV,
    Command.TOGGLE_HIDDEN,
    Command.SHOW_PAUSE_DIALOG,
})

# Commands still honoured while locked
LOCKED_COMMANDS = frozenset({
    Command.UNLOCK_ATTEMPT,
    Command.SHOW_POWER_MENU,
    Command.POWER_ACTION,
})


def parse_command(name: str) -> Optional[Command]:
    """Map a wire name ('swipe-left', 'tab-next', ...) to a Command."""
    name = name.strip().lower()
    if name in COMMAND_ALIASES:
        return COMMAND_ALIASES[name]
    try:
        return Command(name)
    except ValueError:
        return None


@dataclass(frozen=True)
class KioskCommand:
    """One command message for SessionController.dispatch()."""
    command: Command
    value: Any = None

    @classmethod
    def parse(cls, name: str, value: Any = None) -> Optional['KioskCommand']:
        cmd = parse_command(name)
        if cmd is None:
            return None
        return cls(cmd, value)


# =============================================================================
# Session state
# =============================================================================

@dataclass
class SessionState:
    """
    The single mutable nucleus of a kiosk session.

    Owned by SessionController; services receive it by reference and only
    mutate it from inside a tick or a command handler. Timestamps are clock
    seconds (see core.clock).
    """
    current_view_index: int = 0
    showing_hidden: bool = False
    current_hidden_index: int = 0

    site_start_time: float = 0.0           # rotation dwell start
    last_user_interaction: float = 0.0     # any recognised input
    lockout_activity_time: float = 0.0     # unlock / extension grant only
    inactivity_extension_until: float = 0.0  # 0 = no extension

    is_locked_out: bool = False
    lock_reason: Optional[LockReason] = None

    media_is_playing: bool = False
    last_media_state_change: float = 0.0

    keyboard_visible: bool = False
    failed_unlock_attempts: int = 0

    def extension_active(self, now: float) -> bool:
        return self.inactivity_extension_until > now

    def snapshot(self) -> Dict[str, Any]:
        """Plain dict view for diagnostics (GET /state, CLI)."""
        return {
            'current_view_index': self.current_view_index,
            'showing_hidden': self.showing_hidden,
            'current_hidden_index': self.current_hidden_index,
            'site_start_time': self.site_start_time,
            'last_user_interaction': self.last_user_interaction,
            'lockout_activity_time': self.lockout_activity_time,
            'inactivity_extension_until': self.inactivity_extension_until,
            'is_locked_out': self.is_locked_out,
            'lock_reason': self.lock_reason.value if self.lock_reason else None,
            'media_is_playing': self.media_is_playing,
            'keyboard_visible': self.keyboard_visible,
        }


class KioskStartupError(RuntimeError):
    """No rendering surface could be constructed."""
