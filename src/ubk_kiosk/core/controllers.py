"""
UBK Kiosk Controller - the session controller that coordinates services and views.

SessionController is GUI-framework independent. It:
1. Owns the single SessionState and every session service
2. Accepts all external commands through one reducer, dispatch()
3. Runs the 1 Hz tick in a fixed order
4. Emits callbacks that the window subscribes to for updates

Tick order: keyboard auto-close → lockout check → display-wake flag →
(stop if locked) → media → extension expiry → rotation → home-return.
"""
from __future__ import annotations

import logging
import queue
from typing import Any, Callable, Dict, Optional, Tuple, Union

from ..conf import KioskSettings
from ..paths import BOOT_FLAG, DISPLAY_WAKE_FLAG, PIN_FILE
from ..services import (
    DialogService,
    ExtensionService,
    HiddenGateService,
    InactivityService,
    KeyboardService,
    LockoutService,
    MediaService,
    RotationService,
    ViewRegistry,
    ViewSurface,
)
from ..services.registry import SIGNAL_KEYBOARD_BUTTON, SIGNAL_PAUSE_BUTTON, SurfaceFactory
from .clock import Clock
from .models import (
    EXTENSION_CHOICES_MINUTES,
    LOCKED_COMMANDS,
    LOCKED_POWER_ACTIONS,
    NAVIGATION_COMMANDS,
    UNLOCKED_POWER_ACTIONS,
    Command,
    DialogKind,
    InactivityChoice,
    KioskCommand,
    LockReason,
    PowerAction,
    SessionState,
)

log = logging.getLogger(__name__)

CommandLike = Union[KioskCommand, Command, str]


class SessionController:
    """
    Session controller: command dispatcher + periodic tick.

    Services are injected with the settings snapshot; views are created by
    ``surface_factory`` through the ViewRegistry (raises KioskStartupError
    if no visible surface can be built).
    """

    TICK_INTERVAL_MS = 1000

    def __init__(self,
                 settings: KioskSettings,
                 surface_factory: SurfaceFactory,
                 clock: Clock,
                 pin_file: str = PIN_FILE,
                 wake_flag: str = DISPLAY_WAKE_FLAG,
                 boot_flag: str = BOOT_FLAG):
        self.settings = settings
        self.clock = clock
        self.state = SessionState()

        self.registry = ViewRegistry(settings.sites, surface_factory)
        self.home_view = self.registry.view_for_site(settings.home_index)
        if settings.home_index is not None and self.home_view is None:
            log.warning("[HOME] home site %d is hidden or unavailable, home disabled",
                        settings.home_index)

        # Services (owned, all operate on self.state)
        self.dialogs = DialogService()
        self.media = MediaService(settings.media_grace_period)
        self.rotation = RotationService(self.registry)
        self.inactivity = InactivityService(self.registry, self.home_view,
                                            settings.inactivity_timeout)
        self.extension = ExtensionService(settings.max_extension_minutes,
                                          settings.password_protected)
        self.lockout = LockoutService(settings, wake_flag, boot_flag)
        self.hidden = HiddenGateService(self.registry, pin_file)
        self.keyboard = KeyboardService(settings.enable_keyboard,
                                        settings.keyboard_auto_close)

        # View callbacks
        self.on_surface_attached: Optional[Callable[[ViewSurface], None]] = None
        self.on_surfaces_detached: Optional[Callable[[], None]] = None
        self.on_dialog_opened: Optional[Callable[[DialogKind, Any], None]] = None
        self.on_dialog_closed: Optional[Callable[[DialogKind], None]] = None
        self.on_unlock_failed: Optional[Callable[[], None]] = None
        self.on_pin_rejected: Optional[Callable[[], None]] = None
        self.on_power_menu: Optional[Callable[[Tuple[PowerAction, ...]], None]] = None
        self.on_power_action: Optional[Callable[[PowerAction], None]] = None
        self.on_keyboard_changed: Optional[Callable[[bool, bool], None]] = None  # visible, auto

        # Wire up service callbacks
        self.dialogs.on_opened = self._on_dialog_opened
        self.dialogs.on_closed = self._on_dialog_closed

        self._handlers: Dict[Command, Callable[[Any, float], bool]] = {
            Command.TAB_NEXT: lambda v, now: self._navigate(1, now),
            Command.TAB_PREV: lambda v, now: self._navigate(-1, now),
            Command.TOGGLE_HIDDEN: self._toggle_hidden,
            Command.FORCE_RETURN: self._force_return,
            Command.PIN_SUBMIT: self._submit_pin,
            Command.SHOW_PAUSE_DIALOG: self._show_pause_dialog,
            Command.PAUSE_SELECT: self._select_pause,
            Command.INACTIVITY_RESPONSE: self._respond_inactivity,
            Command.SHOW_KEYBOARD: self._toggle_keyboard,
            Command.SHOW_POWER_MENU: self._show_power_menu,
            Command.POWER_ACTION: self._power_action,
            Command.UNLOCK_ATTEMPT: self._unlock,
            Command.CLOSE_DIALOG: self._close_dialog_command,
            Command.USER_ACTIVITY: lambda v, now: True,
        }
        self._started = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Initialise timers, honour the boot flag, attach the first view.

        The boot flag is checked before anything is attached so no content
        is ever visible ahead of the password.
        """
        now = self.clock.now()
        self.state.site_start_time = now
        self.state.last_user_interaction = now
        self.state.lockout_activity_time = now

        reason = self.lockout.check_boot_flag()
        self._started = True
        if reason is not None:
            self._enter_lock(reason)
            return
        self._attach_current(now)

    @property
    def started(self) -> bool:
        return self._started

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def locked(self) -> bool:
        return self.state.is_locked_out

    @property
    def foreground(self) -> str:
        """'locked', 'hidden' or 'normal' - exactly one at any time."""
        if self.state.is_locked_out:
            return 'locked'
        return 'hidden' if self.state.showing_hidden else 'normal'

    @property
    def visible_surface(self) -> Optional[ViewSurface]:
        if self.state.is_locked_out:
            return None
        if self.state.showing_hidden:
            return self.registry.surface(self.state.current_hidden_index, hidden=True)
        return self.registry.surface(self.state.current_view_index)

    @property
    def current_duration(self) -> int:
        surface = self.visible_surface
        return surface.site.duration if surface else 0

    def snapshot(self) -> Dict[str, Any]:
        data = self.state.snapshot()
        data['foreground'] = self.foreground
        data['dialog'] = self.dialogs.current.value if self.dialogs.current else None
        return data

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self) -> None:
        """One 1 Hz step. Never blocks."""
        if not self._started:
            return
        state = self.state
        now = self.clock.now()
        local = self.clock.localtime()

        # 1. Keyboard auto-close
        if self.keyboard.auto_close_due(state, now):
            self.keyboard.close(state)
            log.info("[KEYBOARD] auto-closed after %ss idle", self.keyboard.auto_close)
            self._emit_keyboard(auto=True)

        # 2. Lockout clock (inactivity / daily time)
        reason = self.lockout.check(state, now, local, self.extension.active(state, now))
        if reason is not None:
            self._enter_lock(reason)

        # 3. Display-wake flag
        reason = self.lockout.check_wake_flag()
        if reason is not None:
            self._enter_lock(reason)

        if state.is_locked_out:
            return

        # 4. Media
        self.media.apply_results(state, now)
        if not state.showing_hidden and self.registry.is_rotating(state.current_view_index):
            self.media.poll(self.visible_surface, now)

        # 5. Extension window
        self.extension.check_expiry(state, now)
        if self.extension.active(state, now):
            return

        # 6. Rotation
        if (not state.showing_hidden
                and not self.dialogs.any_open
                and not self.media.blocks_rotation(state, now)):
            target = self.rotation.due(state, now)
            if target is not None:
                log.info("[ROTATION] %d → %d after %ds", state.current_view_index,
                         target, self.registry.duration(state.current_view_index))
                self._show_view(target, now)
                return

        # 7. Home-return
        if not self.dialogs.any_open and self.inactivity.due(state, now):
            self._open_inactivity_prompt(now)

    # =========================================================================
    # Command dispatcher
    # =========================================================================

    def dispatch(self, command: CommandLike, value: Any = None) -> bool:
        """Single entry point for every external command.

        Precedence: lock → open dialog → normal effect + activity ping.
        Returns True if the command took effect.
        """
        cmd = self._coerce(command, value)
        if cmd is None:
            return False
        c = cmd.command
        now = self.clock.now()

        if not self._started:
            log.debug("[COMMAND] %s before start, ignored", c.value)
            return False
        if self.state.is_locked_out and c not in LOCKED_COMMANDS:
            # Lock-screen typing pings activity once a second
            level = logging.DEBUG if c == Command.USER_ACTIVITY else logging.INFO
            log.log(level, "[COMMAND] %s ignored while locked", c.value)
            return False
        if self.dialogs.any_open and c in NAVIGATION_COMMANDS:
            log.info("[COMMAND] %s blocked by open %s dialog",
                     c.value, self.dialogs.current.value)
            return False

        log.debug("[COMMAND] %s %r", c.value, cmd.value)
        result = self._handlers[c](cmd.value, now)

        if not self.state.is_locked_out:
            self._activity(now)
        return result

    @staticmethod
    def _coerce(command: CommandLike, value: Any) -> Optional[KioskCommand]:
        if isinstance(command, KioskCommand):
            return command
        if isinstance(command, Command):
            return KioskCommand(command, value)
        parsed = KioskCommand.parse(str(command), value)
        if parsed is None:
            log.warning("[COMMAND] unknown command %r", command)
        return parsed

    def _activity(self, now: float) -> None:
        """Activity-ping path: never touches the lockout clock."""
        self.state.last_user_interaction = now
        if self.dialogs.is_open(DialogKind.INACTIVITY):
            self.inactivity.cancel_prompt_timer()
            self.dialogs.close(DialogKind.INACTIVITY)
            self.inactivity.still_here(self.state, now)

    # ── Navigation ───────────────────────────────────────────────────

    def _navigate(self, delta: int, now: float) -> bool:
        state = self.state
        self.extension.clear(state)  # explicit navigation ends a pause
        if state.showing_hidden:
            state.current_hidden_index = self.registry.step(
                state.current_hidden_index, delta, hidden=True)
        else:
            state.current_view_index = self.registry.step(state.current_view_index, delta)
        return self._attach_current(now)

    def _toggle_hidden(self, value: Any, now: float) -> bool:
        state = self.state
        if state.showing_hidden:
            self.hidden.advance(state)
            return self._attach_current(now)
        if not self.registry.has_hidden:
            log.info("[HIDDEN] toggle ignored, no hidden views")
            return False
        return self.dialogs.open(DialogKind.PIN)

    def _force_return(self, value: Any, now: float) -> bool:
        """Escape hatch: leave hidden mode without a PIN."""
        self.dialogs.close(DialogKind.PIN)
        if not self.hidden.exit(self.state):
            return False
        return self._attach_current(now)

    def _submit_pin(self, value: Any, now: float) -> bool:
        if not self.dialogs.is_open(DialogKind.PIN):
            return False
        if not self.hidden.check_pin(value):
            log.info("[HIDDEN] incorrect PIN")
            if self.on_pin_rejected:
                self.on_pin_rejected()
            return False
        self.dialogs.close(DialogKind.PIN)
        self.hidden.enter(self.state)
        return self._attach_current(now)

    # ── Extension / pause ────────────────────────────────────────────

    def _show_pause_dialog(self, value: Any, now: float) -> bool:
        if not self.settings.enable_pause_button:
            return False
        if self.state.showing_hidden or self.current_duration <= 0:
            log.info("[PAUSE] pause dialog only available on rotating sites")
            return False
        return self.dialogs.open(DialogKind.PAUSE, EXTENSION_CHOICES_MINUTES)

    def _select_pause(self, value: Any, now: float) -> bool:
        if not self.dialogs.is_open(DialogKind.PAUSE):
            return False
        self.dialogs.close(DialogKind.PAUSE)
        return self.extension.grant(self.state, now, value)

    # ── Inactivity prompt ────────────────────────────────────────────

    def _open_inactivity_prompt(self, now: float) -> bool:
        data = {
            'timeout': self.inactivity.PROMPT_TIMEOUT,
            'choices': EXTENSION_CHOICES_MINUTES,
        }
        if not self.dialogs.open(DialogKind.INACTIVITY, data):
            return False
        log.info("[HOME] idle %.0fs on manual site, prompting",
                 self.inactivity.idle_time(self.state, now))
        self.inactivity.start_prompt_timer(self.clock, self._on_prompt_timeout)
        return True

    def _on_prompt_timeout(self) -> None:
        """Auto-resolve timer fired: nobody answered, go home."""
        if self.state.is_locked_out or not self.dialogs.is_open(DialogKind.INACTIVITY):
            return
        now = self.clock.now()
        self.dialogs.close(DialogKind.INACTIVITY)
        self.extension.clear(self.state)
        self._return_home(now)

    @staticmethod
    def _parse_inactivity_response(value: Any) -> Tuple[Optional[InactivityChoice], int]:
        minutes = 0
        if isinstance(value, dict):
            minutes = value.get('minutes') or 0
            value = value.get('choice', InactivityChoice.EXTEND.value if minutes else None)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            return InactivityChoice.EXTEND, int(value)
        elif isinstance(value, str) and value.strip().isdigit():
            return InactivityChoice.EXTEND, int(value)
        if isinstance(value, InactivityChoice):
            return value, minutes
        try:
            return InactivityChoice(value), minutes
        except ValueError:
            return None, 0

    def _respond_inactivity(self, value: Any, now: float) -> bool:
        if not self.dialogs.is_open(DialogKind.INACTIVITY):
            return False
        choice, minutes = self._parse_inactivity_response(value)
        if choice is None:
            log.warning("[HOME] unknown prompt response %r", value)
            return False

        self.inactivity.cancel_prompt_timer()
        self.dialogs.close(DialogKind.INACTIVITY)

        if choice == InactivityChoice.STILL_HERE:
            self.inactivity.still_here(self.state, now)
            return True
        if choice == InactivityChoice.GO_HOME:
            self.extension.clear(self.state)
            return self._return_home(now)
        self.state.last_user_interaction = now
        return self.extension.grant(self.state, now, minutes)

    def _return_home(self, now: float) -> bool:
        if self.home_view is None:
            return False
        self.hidden.exit(self.state)
        self.state.last_user_interaction = now
        log.info("[HOME] returning to home view %d", self.home_view)
        return self._show_view(self.home_view, now)

    # ── Keyboard / power ─────────────────────────────────────────────

    def _toggle_keyboard(self, value: Any, now: float) -> bool:
        if not self.keyboard.toggle(self.state, now):
            return False
        self._emit_keyboard(auto=False)
        return True

    def _show_power_menu(self, value: Any, now: float) -> bool:
        options = LOCKED_POWER_ACTIONS if self.state.is_locked_out else UNLOCKED_POWER_ACTIONS
        if self.on_power_menu:
            self.on_power_menu(options)
        return True

    def _power_action(self, value: Any, now: float) -> bool:
        try:
            action = PowerAction(value.value if isinstance(value, PowerAction) else value)
        except ValueError:
            log.warning("[COMMAND] unknown power action %r", value)
            return False
        if self.state.is_locked_out and action not in LOCKED_POWER_ACTIONS:
            log.warning("[LOCKOUT] %s refused while locked", action.value)
            return False
        if action == PowerAction.RELOAD:
            surface = self.visible_surface
            if surface is None:
                return False
            surface.reload()
            self._push_view_signals(surface)
            return True
        log.warning("[COMMAND] power action %s", action.value)
        if self.on_power_action:
            self.on_power_action(action)
        return True

    # ── Lockout ──────────────────────────────────────────────────────

    def lock_now(self, reason: LockReason = LockReason.MANUAL) -> bool:
        """Lock immediately (diagnostics / API)."""
        if not self.lockout.enabled:
            log.info("[LOCKOUT] manual lock ignored, protection off")
            return False
        return self._enter_lock(reason)

    def _enter_lock(self, reason: LockReason) -> bool:
        if not self.lockout.lock(self.state, reason):
            return False
        self.inactivity.cancel_prompt_timer()
        if self.keyboard.close(self.state):
            self._emit_keyboard(auto=True)
        self.media.reset()
        # Detach (not hide) so no prior content stays addressable
        if self.on_surfaces_detached:
            self.on_surfaces_detached()
        self.dialogs.open(DialogKind.LOCKOUT, reason)
        return True

    def _unlock(self, value: Any, now: float) -> bool:
        if not self.state.is_locked_out:
            return False
        if not self.lockout.unlock(self.state, '' if value is None else str(value), now):
            if self.on_unlock_failed:
                self.on_unlock_failed()
            return False
        self.dialogs.close(DialogKind.LOCKOUT)
        self.state.last_user_interaction = now
        return self._attach_current(now)

    # ── Dialogs ──────────────────────────────────────────────────────

    def close_dialog(self, kind: Optional[DialogKind] = None) -> bool:
        """Close a non-lockout dialog. Idempotent; leaves state untouched when closed."""
        current = self.dialogs.current
        if current is None or current == DialogKind.LOCKOUT:
            return False
        if kind is not None and kind != current:
            return False
        if current == DialogKind.INACTIVITY:
            self.inactivity.cancel_prompt_timer()
        return self.dialogs.close(current)

    def _close_dialog_command(self, value: Any, now: float) -> bool:
        kind = None
        if value:
            try:
                kind = value if isinstance(value, DialogKind) else DialogKind(value)
            except ValueError:
                return False
        return self.close_dialog(kind)

    # =========================================================================
    # View attachment
    # =========================================================================

    def _show_view(self, index: int, now: float) -> bool:
        if self.state.is_locked_out:
            return False
        self.state.current_view_index = index
        return self._attach_current(now)

    def _attach_current(self, now: float) -> bool:
        """Attach the current (hidden or normal) view; the only attach path."""
        if self.state.is_locked_out:
            return False
        surface = self.visible_surface
        if surface is None:
            log.error("No surface for view %d (hidden=%s)",
                      self.state.current_view_index, self.state.showing_hidden)
            return False
        self.rotation.restart(self.state, now)
        self.media.clear_state(self.state, now)
        if self.on_surface_attached:
            self.on_surface_attached(surface)
        self._push_view_signals(surface)
        return True

    def _push_view_signals(self, surface: ViewSurface) -> None:
        show_pause = (self.settings.enable_pause_button
                      and not self.state.showing_hidden
                      and surface.site.is_rotating)
        surface.send(SIGNAL_PAUSE_BUTTON, show_pause)
        surface.send(SIGNAL_KEYBOARD_BUTTON, self.settings.enable_keyboard)

    # =========================================================================
    # Callback plumbing
    # =========================================================================

    def _on_dialog_opened(self, kind: DialogKind, data: Any) -> None:
        if self.on_dialog_opened:
            self.on_dialog_opened(kind, data)

    def _on_dialog_closed(self, kind: DialogKind) -> None:
        if self.on_dialog_closed:
            self.on_dialog_closed(kind)

    def _emit_keyboard(self, auto: bool) -> None:
        if self.on_keyboard_changed:
            self.on_keyboard_changed(self.state.keyboard_visible, auto)


class CommandInbox:
    """Thread-safe hand-off from non-GUI threads (API server) to the controller.

    Producers call ``put()``; the GUI thread calls ``drain()`` so every
    command is still serialised through SessionController.dispatch().
    """

    def __init__(self, maxsize: int = 256) -> None:
        self._queue: 'queue.Queue[KioskCommand]' = queue.Queue(maxsize=maxsize)

    def put(self, command: KioskCommand) -> bool:
        try:
            self._queue.put_nowait(command)
            return True
        except queue.Full:
            log.warning("[COMMAND] inbox full, dropping %s", command.command.value)
            return False

    def drain(self, controller: SessionController) -> int:
        handled = 0
        while True:
            try:
                command = self._queue.get_nowait()
            except queue.Empty:
                return handled
            controller.dispatch(command)
            handled += 1

    def __len__(self) -> int:
        return self._queue.qsize()
