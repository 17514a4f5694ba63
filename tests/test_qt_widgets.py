"""
Tests for qt_components – overlays, pause button and KioskWindow wiring.

Uses QT_QPA_PLATFORM=offscreen for headless testing. KioskWindow is built
with in-memory surfaces so QtWebEngine is never loaded.

Tests cover:
- PinDialog / PauseDialog / InactivityPrompt / PowerMenu signals
- LockScreen submit and rejection
- PauseButton allowed/poke/auto-hide
- make_qt_scheduler one-shots
- KioskWindow: overlays follow controller dialogs, lock screen, keyboard broadcast
"""

import os
import sys
import tempfile
import unittest
from unittest.mock import patch

# Must set before ANY Qt import
os.environ['QT_QPA_PLATFORM'] = 'offscreen'

from PySide6.QtWidgets import QApplication, QWidget  # noqa: E402

_app = QApplication.instance() or QApplication(sys.argv)

from kiosk_fakes import FakeSurface, make_settings  # noqa: E402
from PySide6.QtTest import QTest  # noqa: E402

from ubk_kiosk.core.models import (  # noqa: E402
    LOCKED_POWER_ACTIONS,
    Command,
    DialogKind,
    InactivityChoice,
    PowerAction,
)
from ubk_kiosk.qt_components.dialogs import (  # noqa: E402
    InactivityPrompt,
    LockScreen,
    PauseButton,
    PauseDialog,
    PinDialog,
    PowerMenu,
)
from ubk_kiosk.qt_components.kiosk_window import (  # noqa: E402
    KioskWindow,
    make_qt_scheduler,
)
from ubk_kiosk.services.lockout import hash_password  # noqa: E402


class _Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)


# ============================================================================
# Overlays
# ============================================================================


class TestPinDialog(unittest.TestCase):

    def setUp(self):
        self.parent = QWidget()
        self.parent.resize(800, 600)
        self.dialog = PinDialog(self.parent)

    def test_hidden_until_opened(self):
        self.assertTrue(self.dialog.isHidden())
        self.dialog.open()
        self.assertFalse(self.dialog.isHidden())
        self.assertEqual(self.dialog.geometry(), self.parent.rect())

    def test_submit(self):
        rec = _Recorder()
        self.dialog.submitted.connect(rec)
        self.dialog.open()
        self.dialog.input.setText('1234')
        self.dialog._submit()
        self.assertEqual(rec.calls, [('1234',)])

    def test_open_clears_previous_entry(self):
        self.dialog.input.setText('99')
        self.dialog.show_rejected()
        self.assertEqual(self.dialog.error.text(), 'Incorrect PIN')
        self.dialog.open()
        self.assertEqual(self.dialog.input.text(), '')
        self.assertEqual(self.dialog.error.text(), '')

    def test_close_overlay_idempotent(self):
        self.dialog.close_overlay()
        self.dialog.open()
        self.dialog.close_overlay()
        self.dialog.close_overlay()
        self.assertTrue(self.dialog.isHidden())


class TestPauseDialog(unittest.TestCase):

    def test_choices(self):
        dialog = PauseDialog()
        rec = _Recorder()
        dialog.selected.connect(rec)
        self.assertEqual([b.text() for b in dialog.choice_buttons],
                         ['15 min', '30 min', '1 hour', '2 hours'])
        dialog.choice_buttons[1].click()
        self.assertEqual(rec.calls, [(30,)])


class TestInactivityPrompt(unittest.TestCase):

    def test_countdown_label(self):
        prompt = InactivityPrompt()
        prompt.start(15)
        self.assertIn('15', prompt.countdown.text())
        prompt._on_countdown()
        self.assertIn('14', prompt.countdown.text())
        prompt.close_overlay()
        self.assertFalse(prompt._timer.isActive())

    def test_countdown_stops_at_zero(self):
        prompt = InactivityPrompt()
        prompt.start(1)
        prompt._on_countdown()
        prompt._on_countdown()
        self.assertIn(' 0 ', prompt.countdown.text())
        self.assertFalse(prompt._timer.isActive())

    def test_answer_emits_choice(self):
        prompt = InactivityPrompt()
        rec = _Recorder()
        prompt.answered.connect(rec)
        prompt.answered.emit(InactivityChoice.GO_HOME)
        self.assertEqual(rec.calls, [(InactivityChoice.GO_HOME,)])


class TestPowerMenu(unittest.TestCase):

    def test_locked_actions(self):
        menu = PowerMenu()
        menu.set_actions(LOCKED_POWER_ACTIONS)
        self.assertNotIn(PowerAction.RELOAD, menu.action_buttons)
        rec = _Recorder()
        menu.chosen.connect(rec)
        menu.open()
        menu.action_buttons[PowerAction.RESTART].click()
        self.assertEqual(rec.calls, [('restart',)])
        self.assertTrue(menu.isHidden())

    def test_rebuild_replaces_buttons(self):
        menu = PowerMenu()
        menu.set_actions(list(PowerAction))
        menu.set_actions([PowerAction.SHUTDOWN])
        self.assertEqual(list(menu.action_buttons), [PowerAction.SHUTDOWN])


class TestLockScreen(unittest.TestCase):

    def test_submit_clears_input(self):
        screen = LockScreen()
        rec = _Recorder()
        screen.password_entered.connect(rec)
        screen.input.setText('secret')
        screen._submit()
        self.assertEqual(rec.calls, [('secret',)])
        self.assertEqual(screen.input.text(), '')

    def test_rejected(self):
        screen = LockScreen()
        screen.show_rejected()
        self.assertEqual(screen.error.text(), 'Incorrect password')
        screen.reset()
        self.assertEqual(screen.error.text(), '')


class TestPauseButton(unittest.TestCase):

    def setUp(self):
        self.parent = QWidget()
        self.parent.resize(800, 600)
        self.button = PauseButton(self.parent)

    def test_not_allowed_stays_hidden(self):
        self.button.poke()
        self.assertTrue(self.button.isHidden())

    def test_poke_shows_and_arms_timer(self):
        self.button.set_allowed(True)
        self.button.poke()
        self.assertFalse(self.button.isHidden())
        self.assertTrue(self.button.hide_timer.isActive())
        self.assertEqual(self.button.hide_timer.interval(), 5000)

    def test_auto_hide(self):
        self.button.set_allowed(True)
        self.button.poke()
        self.button._on_hide_timeout()
        self.assertTrue(self.button.isHidden())

    def test_disallow_hides(self):
        self.button.set_allowed(True)
        self.button.poke()
        self.button.set_allowed(False)
        self.assertTrue(self.button.isHidden())
        self.assertFalse(self.button.hide_timer.isActive())


# ============================================================================
# Scheduler
# ============================================================================


class TestQtScheduler(unittest.TestCase):

    def setUp(self):
        self.owner = QWidget()
        self.schedule = make_qt_scheduler(self.owner)

    def test_fires_once(self):
        fired = []
        handle = self.schedule(0.01, lambda: fired.append(1))
        QTest.qWait(100)
        self.assertEqual(fired, [1])
        self.assertTrue(handle.fired)

    def test_cancel(self):
        fired = []
        handle = self.schedule(0.01, lambda: fired.append(1))
        handle.cancel()
        QTest.qWait(100)
        self.assertEqual(fired, [])


# ============================================================================
# KioskWindow
# ============================================================================


class TestKioskWindow(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.pin_file = os.path.join(self.tmp.name, 'hidden_pin')
        with open(self.pin_file, 'w') as f:
            f.write('no-pin')

    def tearDown(self):
        if getattr(self, 'window', None) is not None:
            self.window.stop()
        self.tmp.cleanup()

    def _window(self, durations=(60, -1), **overrides):
        overrides.setdefault('enable_password_protection', True)
        overrides.setdefault('lockout_password_hash', hash_password('pw'))
        self.window = KioskWindow(
            make_settings(durations, **overrides),
            surface_factory=FakeSurface,
            pin_file=self.pin_file,
            wake_flag=os.path.join(self.tmp.name, 'wake'),
            boot_flag=os.path.join(self.tmp.name, 'boot'))
        self.window.resize(1024, 600)
        self.window.start()
        return self.window

    def test_start_attaches_first_surface(self):
        window = self._window()
        self.assertIs(window._attached, window.controller.registry.views[0])

    def test_pin_overlay_follows_controller(self):
        window = self._window()
        window.controller.dispatch(Command.TOGGLE_HIDDEN)
        self.assertFalse(window.pin_dialog.isHidden())
        window.pin_dialog.submitted.emit('')
        self.assertTrue(window.pin_dialog.isHidden())
        self.assertTrue(window.controller.state.showing_hidden)

    def test_pin_cancel_closes_dialog(self):
        window = self._window()
        window.controller.dispatch(Command.TOGGLE_HIDDEN)
        window.pin_dialog.cancelled.emit()
        self.assertIsNone(window.controller.dialogs.current)
        self.assertTrue(window.pin_dialog.isHidden())

    def test_pause_dialog_cancel(self):
        window = self._window()
        window.pause_button.clicked.emit()
        self.assertEqual(window.controller.dialogs.current, DialogKind.PAUSE)
        window.pause_dialog.selected.emit(0)
        self.assertIsNone(window.controller.dialogs.current)
        self.assertEqual(window.controller.state.inactivity_extension_until, 0.0)

    def test_pause_button_follows_page_signal(self):
        window = self._window()
        surface = window._attached
        self.assertTrue(surface.last('pause-button-visibility'))
        window._on_surface_signal(surface, 'pause-button-visibility', True)
        self.assertTrue(window.pause_button.allowed)
        # Signals from a detached surface are ignored
        other = window.controller.registry.hidden_views[0]
        window._on_surface_signal(other, 'pause-button-visibility', False)
        self.assertTrue(window.pause_button.allowed)

    def test_lock_and_unlock(self):
        window = self._window()
        window.controller.lock_now()
        self.assertFalse(window.lock_screen.isHidden())
        self.assertIsNone(window._attached)
        window.lock_screen.password_entered.emit('nope')
        self.assertEqual(window.lock_screen.error.text(), 'Incorrect password')
        window.lock_screen.password_entered.emit('pw')
        self.assertTrue(window.lock_screen.isHidden())
        self.assertIsNotNone(window._attached)

    def test_locked_power_menu(self):
        window = self._window()
        window.controller.lock_now()
        window.lock_screen.power_requested.emit()
        self.assertFalse(window.power_menu.isHidden())
        self.assertNotIn(PowerAction.RELOAD, window.power_menu.action_buttons)

    @patch('ubk_kiosk.qt_components.kiosk_window.subprocess.Popen')
    def test_power_action_does_not_wait(self, mock_popen):
        window = self._window()
        window._on_power_action(PowerAction.SHUTDOWN)
        mock_popen.assert_called_once_with(['systemctl', 'poweroff'])
        window._on_power_action(PowerAction.RELOAD)
        self.assertEqual(mock_popen.call_count, 1)

    @patch('ubk_kiosk.qt_components.kiosk_window.subprocess.Popen',
           side_effect=OSError('no systemctl'))
    def test_power_action_failure_logged(self, _):
        window = self._window()
        with self.assertLogs('ubk_kiosk.qt_components.kiosk_window', level='ERROR'):
            window._on_power_action(PowerAction.RESTART)

    def test_keyboard_broadcast(self):
        window = self._window()
        rec = _Recorder()
        window.keyboard_state_changed.connect(rec)
        window.controller.dispatch(Command.SHOW_KEYBOARD)
        self.assertEqual(rec.calls, [(True, False)])
        self.assertTrue(window._attached.last('keyboard-state-changed'))

    def test_user_input_is_throttled(self):
        window = self._window()
        window._last_activity_ms = 0
        window._on_user_input()
        first = window._last_activity_ms
        window._on_user_input()
        self.assertEqual(window._last_activity_ms, first)

    def test_inbox_drain(self):
        from ubk_kiosk.core.controllers import CommandInbox
        from ubk_kiosk.core.models import KioskCommand

        inbox = CommandInbox()
        self.window = KioskWindow(
            make_settings((60, 30)), inbox=inbox, surface_factory=FakeSurface,
            pin_file=self.pin_file,
            wake_flag=os.path.join(self.tmp.name, 'wake'),
            boot_flag=os.path.join(self.tmp.name, 'boot'))
        self.window.start()
        inbox.put(KioskCommand(Command.TAB_NEXT))
        self.window._on_drain_inbox()
        self.assertEqual(self.window.controller.state.current_view_index, 1)


if __name__ == '__main__':
    unittest.main()
