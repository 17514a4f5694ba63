"""
Tests for paths.py and conf.py – flag files, PIN file, config loading.

Tests cover:
- read_text / read_pin on missing and present files
- consume_flag: delete-once semantics
- load_config: missing, corrupt, non-object files
- parse_duration / parse_hhmm / parse_site degradation
- settings_from_dict: defaults, home index validation, password protection
"""

import json
import os
import tempfile
import unittest
from datetime import time

from ubk_kiosk.conf import (
    DEFAULT_INACTIVITY_TIMEOUT,
    KioskSettings,
    load_config,
    load_settings,
    parse_duration,
    parse_hhmm,
    parse_site,
    save_config,
    settings_from_dict,
)
from ubk_kiosk.core.models import BLANK_URL
from ubk_kiosk.paths import (
    NO_PIN_SENTINEL,
    consume_flag,
    read_pin,
    read_text,
    touch_flag,
)

# =============================================================================
# paths.py
# =============================================================================


class TestReadText(unittest.TestCase):

    def test_missing(self):
        self.assertIsNone(read_text('/nonexistent/ubk/file'))

    def test_strips(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'pin')
            with open(path, 'w') as f:
                f.write('  1234\n')
            self.assertEqual(read_text(path), '1234')
            self.assertEqual(read_pin(path), '1234')

    def test_sentinel(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'pin')
            with open(path, 'w') as f:
                f.write('no-pin\n')
            self.assertEqual(read_pin(path), NO_PIN_SENTINEL)


class TestFlags(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.flag = os.path.join(self.tmp, 'sub', 'display-wake')

    def tearDown(self):
        if os.path.exists(self.flag):
            os.remove(self.flag)
        os.rmdir(os.path.join(self.tmp, 'sub'))
        os.rmdir(self.tmp)

    def test_consume_once(self):
        touch_flag(self.flag)
        self.assertTrue(consume_flag(self.flag))
        self.assertFalse(os.path.exists(self.flag))
        self.assertFalse(consume_flag(self.flag))

    def test_touch_creates_parent(self):
        touch_flag(self.flag)
        self.assertTrue(os.path.exists(self.flag))


# =============================================================================
# conf.py – low-level
# =============================================================================


class TestLoadConfig(unittest.TestCase):

    def test_missing_returns_empty(self):
        self.assertEqual(load_config('/nonexistent/config.json'), {})

    def test_corrupt_returns_empty(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'config.json')
            with open(path, 'w') as f:
                f.write('{not json')
            self.assertEqual(load_config(path), {})

    def test_non_object_returns_empty(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'config.json')
            with open(path, 'w') as f:
                json.dump([1, 2], f)
            self.assertEqual(load_config(path), {})

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'nested', 'config.json')
            save_config({'homeTabIndex': 1}, path)
            self.assertEqual(load_config(path), {'homeTabIndex': 1})


class TestParsing(unittest.TestCase):

    def test_duration_numeric(self):
        self.assertEqual(parse_duration(60), 60)
        self.assertEqual(parse_duration('45'), 45)
        self.assertEqual(parse_duration(-1), -1)

    def test_duration_non_numeric_is_manual(self):
        self.assertEqual(parse_duration('soon'), 0)
        self.assertEqual(parse_duration(None), 0)
        self.assertEqual(parse_duration([1]), 0)

    def test_duration_below_hidden_is_manual(self):
        self.assertEqual(parse_duration(-5), 0)

    def test_duration_infinite_is_manual(self):
        self.assertEqual(parse_duration(float('inf')), 0)
        self.assertEqual(parse_duration('inf'), 0)
        self.assertEqual(parse_duration('-Infinity'), 0)
        self.assertEqual(parse_duration('1e400'), 0)
        self.assertEqual(parse_duration(float('nan')), 0)

    def test_hhmm(self):
        self.assertEqual(parse_hhmm('22:30'), time(22, 30))
        self.assertEqual(parse_hhmm('7:05'), time(7, 5))

    def test_hhmm_invalid(self):
        self.assertIsNone(parse_hhmm(''))
        self.assertIsNone(parse_hhmm(None))
        self.assertIsNone(parse_hhmm('25:00'))
        self.assertIsNone(parse_hhmm('noon'))

    def test_site_missing_url(self):
        site = parse_site({'duration': 30}, 0)
        self.assertEqual(site.url, BLANK_URL)
        self.assertEqual(site.duration, 0)

    def test_site_not_object(self):
        site = parse_site(42, 3)
        self.assertEqual(site.url, BLANK_URL)

    def test_site_plain_string(self):
        site = parse_site('https://a.example', 0)
        self.assertEqual(site.url, 'https://a.example')
        self.assertEqual(site.duration, 0)

    def test_site_credentials(self):
        site = parse_site({'url': 'https://a', 'duration': 10,
                           'username': 'u', 'password': 'p'}, 0)
        self.assertEqual(site.credentials, ('u', 'p'))


# =============================================================================
# conf.py – settings snapshot
# =============================================================================


class TestSettingsFromDict(unittest.TestCase):

    def test_empty(self):
        settings = settings_from_dict({})
        self.assertEqual(settings.sites, ())
        self.assertIsNone(settings.home_index)
        self.assertEqual(settings.inactivity_timeout, DEFAULT_INACTIVITY_TIMEOUT)
        self.assertFalse(settings.password_protected)

    def test_sites_and_home(self):
        settings = settings_from_dict({
            'tabs': [{'url': 'https://a', 'duration': 60},
                     {'url': 'https://b', 'duration': 0},
                     {'url': 'https://c', 'duration': -1}],
            'homeTabIndex': 1,
            'inactivityTimeout': 120,
        })
        self.assertEqual([s.duration for s in settings.sites], [60, 0, -1])
        self.assertEqual(settings.home_index, 1)
        self.assertEqual(settings.inactivity_timeout, 120)

    def test_home_out_of_range(self):
        settings = settings_from_dict({'tabs': ['https://a'], 'homeTabIndex': 5})
        self.assertIsNone(settings.home_index)

    def test_home_disabled(self):
        settings = settings_from_dict({'tabs': ['https://a'], 'homeTabIndex': -1})
        self.assertIsNone(settings.home_index)

    def test_infinite_values_degrade(self):
        raw = json.loads('{"tabs": [{"url": "https://a", "duration": Infinity}],'
                         ' "inactivityTimeout": Infinity, "lockoutTimeout": "inf"}')
        settings = settings_from_dict(raw)
        self.assertEqual(settings.sites[0].duration, 0)
        self.assertEqual(settings.inactivity_timeout, DEFAULT_INACTIVITY_TIMEOUT)
        self.assertEqual(settings.lockout_timeout_minutes, 0)

    def test_tabs_not_list(self):
        self.assertEqual(settings_from_dict({'tabs': 'https://a'}).sites, ())

    def test_password_needs_hash(self):
        settings = settings_from_dict({'enablePasswordProtection': True})
        self.assertTrue(settings.enable_password_protection)
        self.assertFalse(settings.password_protected)

    def test_password_protected(self):
        settings = settings_from_dict({
            'enablePasswordProtection': True,
            'lockoutPasswordHash': 'ABCDEF',
            'lockoutTimeout': 5,
            'lockoutActiveStart': '22:00',
            'lockoutActiveEnd': '06:00',
            'lockoutAtTime': '23:30',
        })
        self.assertTrue(settings.password_protected)
        self.assertEqual(settings.lockout_password_hash, 'abcdef')
        self.assertEqual(settings.lockout_timeout, 300)
        self.assertTrue(settings.has_active_hours)
        self.assertEqual(settings.lockout_at_time, time(23, 30))

    def test_string_booleans(self):
        settings = settings_from_dict({'enablePauseButton': 'false',
                                       'enableKeyboard': 'yes'})
        self.assertFalse(settings.enable_pause_button)
        self.assertTrue(settings.enable_keyboard)

    def test_bad_numbers_fall_back(self):
        settings = settings_from_dict({'inactivityTimeout': 'x',
                                       'maxExtensionMinutes': 0})
        self.assertEqual(settings.inactivity_timeout, DEFAULT_INACTIVITY_TIMEOUT)
        self.assertEqual(settings.max_extension_minutes, 120)

    def test_frozen(self):
        with self.assertRaises(Exception):
            KioskSettings().home_index = 2

    def test_load_settings(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'config.json')
            save_config({'tabs': [{'url': 'https://a', 'duration': '30'}]}, path)
            settings = load_settings(path)
        self.assertEqual(settings.sites[0].duration, 30)


if __name__ == '__main__':
    unittest.main()
