"""Kiosk settings snapshot and config loading for UBK Kiosk.

Config is stored at ~/.config/ubk-kiosk/config.json (XDG-compliant) and is
read exactly once at startup into an immutable KioskSettings. Malformed
values degrade to the safest default instead of failing startup.

Usage:
    from ubk_kiosk.conf import load_settings

    settings = load_settings()
    settings.sites              # tuple[SiteConfig, ...]
    settings.home_index         # configured-site index or None
    settings.password_protected # enabled AND a hash is stored

    # Low-level config access
    from ubk_kiosk.conf import load_config, save_config, settings_from_dict
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import time as dtime
from typing import Any, Optional, Tuple

from .core.models import BLANK_URL, DURATION_HIDDEN, DURATION_MANUAL, SiteConfig
from .paths import CONFIG_DIR, CONFIG_PATH

log = logging.getLogger(__name__)

# Defaults (seconds unless noted)
DEFAULT_INACTIVITY_TIMEOUT = 120
DEFAULT_MEDIA_GRACE_PERIOD = 10
DEFAULT_KEYBOARD_AUTO_CLOSE = 60
DEFAULT_MAX_EXTENSION_MINUTES = 120


# =========================================================================
# Low-level config persistence
# =========================================================================

def load_config(path: str = CONFIG_PATH) -> dict:
    """Load kiosk config from disk. Returns empty dict on missing/corrupt file."""
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError, OSError) as e:
        log.warning("Config %s unreadable (%s), using defaults", path, e)
        return {}
    if not isinstance(data, dict):
        log.warning("Config %s is not a JSON object, using defaults", path)
        return {}
    return data


def save_config(config: dict, path: str = CONFIG_PATH):
    """Save kiosk config to disk (used by `ubk-kiosk hash-password --save`)."""
    os.makedirs(os.path.dirname(path) or CONFIG_DIR, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(config, f, indent=2)


# =========================================================================
# Tolerant value parsing
# =========================================================================

def parse_duration(raw: Any) -> int:
    """tabs[].duration → seconds; non-numeric or < -1 degrades to manual (0)."""
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        if raw not in (None, ''):
            log.warning("Invalid site duration %r, treating as manual", raw)
        return DURATION_MANUAL
    if value < DURATION_HIDDEN:
        log.warning("Invalid site duration %r, treating as manual", raw)
        return DURATION_MANUAL
    return value


def parse_hhmm(raw: Any) -> Optional[dtime]:
    """'HH:MM' → datetime.time, or None if empty/malformed."""
    if not raw:
        return None
    try:
        hh, mm = str(raw).strip().split(':')
        return dtime(int(hh), int(mm))
    except (TypeError, ValueError):
        log.warning("Invalid time string %r, feature disabled", raw)
        return None


def _int(raw: Any, default: int, minimum: int = 0) -> int:
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return default
    return value if value >= minimum else default


def _bool(raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, str):
        return raw.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(raw)


def parse_site(entry: Any, index: int) -> SiteConfig:
    """One tabs[] entry → SiteConfig. Missing URL degrades to a blank manual site."""
    if isinstance(entry, str):
        entry = {'url': entry}
    if not isinstance(entry, dict):
        log.warning("Site %d is not an object, using blank manual site", index)
        return SiteConfig(url=BLANK_URL, duration=DURATION_MANUAL)

    url = str(entry.get('url') or '').strip()
    duration = parse_duration(entry.get('duration', DURATION_MANUAL))
    if not url:
        log.warning("Site %d has no URL, using blank manual site", index)
        url, duration = BLANK_URL, DURATION_MANUAL

    return SiteConfig(
        url=url,
        duration=duration,
        username=entry.get('username') or None,
        password=entry.get('password') or None,
    )


# =========================================================================
# Settings snapshot
# =========================================================================

@dataclass(frozen=True)
class KioskSettings:
    """Immutable configuration loaded once at startup."""
    sites: Tuple[SiteConfig, ...] = ()
    home_index: Optional[int] = None

    inactivity_timeout: int = DEFAULT_INACTIVITY_TIMEOUT  # seconds

    enable_password_protection: bool = False
    lockout_password_hash: str = ''
    lockout_timeout_minutes: int = 0                      # 0 = disabled
    lockout_active_start: Optional[dtime] = None
    lockout_active_end: Optional[dtime] = None
    lockout_at_time: Optional[dtime] = None
    require_password_on_boot: bool = False
    lock_on_display_wake: bool = True

    enable_pause_button: bool = True
    enable_keyboard: bool = True
    media_grace_period: int = DEFAULT_MEDIA_GRACE_PERIOD
    keyboard_auto_close: int = DEFAULT_KEYBOARD_AUTO_CLOSE
    max_extension_minutes: int = DEFAULT_MAX_EXTENSION_MINUTES

    @property
    def password_protected(self) -> bool:
        return self.enable_password_protection and bool(self.lockout_password_hash)

    @property
    def lockout_timeout(self) -> int:
        """Lockout inactivity timeout in seconds (0 = disabled)."""
        return self.lockout_timeout_minutes * 60

    @property
    def has_active_hours(self) -> bool:
        return self.lockout_active_start is not None and self.lockout_active_end is not None


def settings_from_dict(config: dict) -> KioskSettings:
    """Validate a raw config dict into a KioskSettings snapshot."""
    tabs = config.get('tabs') or []
    if not isinstance(tabs, list):
        log.warning("Config 'tabs' is not a list, no sites loaded")
        tabs = []
    sites = tuple(parse_site(entry, i) for i, entry in enumerate(tabs))

    home_index: Optional[int] = _int(config.get('homeTabIndex'), -1, minimum=-1)
    if home_index is not None and not (0 <= home_index < len(sites)):
        if home_index != -1:
            log.warning("homeTabIndex %s out of range, home disabled", home_index)
        home_index = None

    return KioskSettings(
        sites=sites,
        home_index=home_index,
        inactivity_timeout=_int(config.get('inactivityTimeout'), DEFAULT_INACTIVITY_TIMEOUT, 1),
        enable_password_protection=_bool(config.get('enablePasswordProtection'), False),
        lockout_password_hash=str(config.get('lockoutPasswordHash') or '').strip().lower(),
        lockout_timeout_minutes=_int(config.get('lockoutTimeout'), 0),
        lockout_active_start=parse_hhmm(config.get('lockoutActiveStart')),
        lockout_active_end=parse_hhmm(config.get('lockoutActiveEnd')),
        lockout_at_time=parse_hhmm(config.get('lockoutAtTime')),
        require_password_on_boot=_bool(config.get('requirePasswordOnBoot'), False),
        lock_on_display_wake=_bool(config.get('lockOnDisplayWake'), True),
        enable_pause_button=_bool(config.get('enablePauseButton'), True),
        enable_keyboard=_bool(config.get('enableKeyboard'), True),
        media_grace_period=_int(config.get('mediaGracePeriod'), DEFAULT_MEDIA_GRACE_PERIOD),
        keyboard_auto_close=_int(config.get('keyboardAutoClose'), DEFAULT_KEYBOARD_AUTO_CLOSE),
        max_extension_minutes=_int(config.get('maxExtensionMinutes'),
                                   DEFAULT_MAX_EXTENSION_MINUTES, 1),
    )


def load_settings(path: str = CONFIG_PATH) -> KioskSettings:
    """Read config.json and return the validated snapshot."""
    settings = settings_from_dict(load_config(path))
    log.info("Loaded %d site(s) from %s (home=%s, password=%s)",
             len(settings.sites), path, settings.home_index,
             'on' if settings.password_protected else 'off')
    return settings
