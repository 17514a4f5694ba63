#!/usr/bin/env python3
"""
UBK Kiosk - Command Line Interface

Entry points for the ubk-kiosk package.
"""

import argparse
import getpass
import json
import logging
import os
import sys
import urllib.error
import urllib.request

from ubk_kiosk.__version__ import __version__
from ubk_kiosk.paths import LOG_FILE

DEFAULT_API_PORT = 8765


def _setup_logging(verbose=0, log_file=None):
    """Configure logging by verbosity (-v INFO, -vv DEBUG)."""
    if verbose >= 2:
        level, fmt = logging.DEBUG, '[%(levelname)s] %(name)s: %(message)s'
    elif verbose == 1:
        level, fmt = logging.INFO, '[%(levelname)s] %(message)s'
    else:
        level, fmt = logging.WARNING, '[%(levelname)s] %(message)s'

    handlers = [logging.StreamHandler()]
    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'))
        handlers.append(file_handler)
    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)
    # Chromium/uvicorn chatter stays at WARNING unless -vv
    if verbose < 2:
        logging.getLogger('uvicorn').setLevel(logging.WARNING)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="ubk-kiosk",
        description="UBK Kiosk session shell",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    ubk-kiosk run                    Start the full-screen kiosk
    ubk-kiosk run --windowed -v      Start in a window with INFO logging
    ubk-kiosk check-config           Validate config.json and list sites
    ubk-kiosk hash-password --save   Set the lockout password
    ubk-kiosk send swipe-left        Send a command to the running kiosk
    ubk-kiosk flag display-wake      Drop the display-wake flag
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv)"
    )
    parser.add_argument("--config", "-c", help="Path to config.json")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Start the kiosk shell")
    run_parser.add_argument("--windowed", "-w", action="store_true",
                            help="Normal window instead of full-screen")
    run_parser.add_argument("--no-api", action="store_true",
                            help="Do not start the local command API")
    run_parser.add_argument("--api-host", default="127.0.0.1", help="API bind address")
    run_parser.add_argument("--api-port", type=int, default=DEFAULT_API_PORT,
                            help="API port")
    run_parser.add_argument("--token", help="Require X-API-Token on API requests")
    run_parser.add_argument("--log-file", nargs="?", const=LOG_FILE, metavar="PATH",
                            help=f"Also write logs to a file (default: {LOG_FILE})")

    # Check-config command
    subparsers.add_parser("check-config", help="Validate config and list sites")

    # Hash-password command
    hash_parser = subparsers.add_parser("hash-password", help="Hash a lockout password")
    hash_parser.add_argument("password", nargs="?", help="Password (prompted if omitted)")
    hash_parser.add_argument("--save", action="store_true",
                             help="Store the hash in config.json")

    # Send command
    send_parser = subparsers.add_parser("send", help="Send a command to the running kiosk")
    send_parser.add_argument("name", help="Command name (e.g. swipe-left, toggle-hidden)")
    send_parser.add_argument("value", nargs="?", help="Optional value (JSON or text)")
    send_parser.add_argument("--port", type=int, default=DEFAULT_API_PORT, help="API port")
    send_parser.add_argument("--token", help="API token")

    # State command
    state_parser = subparsers.add_parser("state", help="Show the running session state")
    state_parser.add_argument("--port", type=int, default=DEFAULT_API_PORT, help="API port")
    state_parser.add_argument("--token", help="API token")

    # Flag command
    flag_parser = subparsers.add_parser("flag", help="Create a lock trigger flag file")
    flag_parser.add_argument("which", choices=["display-wake", "boot"])

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "run":
        _setup_logging(args.verbose, args.log_file)
        return run(config=args.config, windowed=args.windowed, api=not args.no_api,
                   api_host=args.api_host, api_port=args.api_port, token=args.token)

    _setup_logging(args.verbose)
    if args.command == "check-config":
        return check_config(config=args.config)
    elif args.command == "hash-password":
        return hash_password(args.password, save=args.save, config=args.config)
    elif args.command == "send":
        return send_command(args.name, args.value, port=args.port, token=args.token)
    elif args.command == "state":
        return show_state(port=args.port, token=args.token)
    elif args.command == "flag":
        return create_flag(args.which)

    return 0


def _load(config=None):
    from ubk_kiosk.conf import load_settings
    from ubk_kiosk.paths import CONFIG_PATH
    return load_settings(config or CONFIG_PATH)


def run(config=None, windowed=False, api=True, api_host="127.0.0.1",
        api_port=DEFAULT_API_PORT, token=None):
    """Launch the kiosk GUI."""
    settings = _load(config)
    if not settings.sites:
        print("Error: no sites configured (tabs[] is empty)")
        return 1
    try:
        from ubk_kiosk.qt_components.kiosk_window import run_kiosk_app
        print("[UBK] Starting kiosk shell...")
        return run_kiosk_app(settings, windowed=windowed, api=api,
                             api_host=api_host, api_port=api_port, api_token=token)
    except ImportError as e:
        print(f"Error: PySide6 not available: {e}")
        print("Install with: pip install PySide6")
        return 1


def check_config(config=None):
    """Print the validated settings snapshot."""
    settings = _load(config)
    if not settings.sites:
        print("No sites configured.")
        return 1

    print(f"{len(settings.sites)} site(s):")
    for i, site in enumerate(settings.sites):
        marker = "*" if i == settings.home_index else " "
        auth = " [auth]" if site.credentials else ""
        print(f"{marker} [{i}] {site.kind.name.lower():8s} {site.duration:>5d}s  {site.url}{auth}")

    visible = [s for s in settings.sites if not s.is_hidden]
    print(f"Home: {settings.home_index if settings.home_index is not None else 'none'}"
          f"  Inactivity: {settings.inactivity_timeout}s")
    if settings.password_protected:
        hours = ("always" if not settings.has_active_hours else
                 f"{settings.lockout_active_start:%H:%M}-{settings.lockout_active_end:%H:%M}")
        daily = (f"{settings.lockout_at_time:%H:%M}"
                 if settings.lockout_at_time else "none")
        print(f"Lockout: {settings.lockout_timeout_minutes} min ({hours}), daily at {daily},"
              f" boot={'yes' if settings.require_password_on_boot else 'no'}")
    elif settings.enable_password_protection:
        print("Lockout: enabled but no password hash set (disabled)")
    else:
        print("Lockout: off")

    if not visible:
        print("Error: every site is hidden; nothing to show at startup")
        return 1
    return 0


def hash_password(password=None, save=False, config=None):
    """Print (and optionally store) a lockout password hash."""
    from ubk_kiosk.conf import load_config, save_config
    from ubk_kiosk.paths import CONFIG_PATH
    from ubk_kiosk.services.lockout import hash_password as _hash

    if password is None:
        password = getpass.getpass("Lockout password: ")
        if password != getpass.getpass("Repeat: "):
            print("Passwords do not match.")
            return 1
    if not password:
        print("Empty password refused.")
        return 1

    digest = _hash(password)
    print(digest)
    if save:
        path = config or CONFIG_PATH
        data = load_config(path)
        data['lockoutPasswordHash'] = digest
        data.setdefault('enablePasswordProtection', True)
        save_config(data, path)
        print(f"Saved to {path}")
    return 0


def _api_request(path, port, token=None, payload=None):
    url = f"http://127.0.0.1:{port}{path}"
    data = json.dumps(payload).encode() if payload is not None else None
    req = urllib.request.Request(url, data=data, method="POST" if data else "GET")
    req.add_header("Content-Type", "application/json")
    if token:
        req.add_header("X-API-Token", token)
    with urllib.request.urlopen(req, timeout=5) as resp:
        return json.loads(resp.read().decode() or "{}")


def _parse_value(raw):
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def send_command(name, value=None, port=DEFAULT_API_PORT, token=None):
    """POST a command to the running kiosk's API."""
    try:
        result = _api_request(f"/commands/{name}", port, token,
                              payload={"value": _parse_value(value)})
    except urllib.error.HTTPError as e:
        print(f"Error: {e.code} {e.reason}")
        return 1
    except (urllib.error.URLError, OSError) as e:
        print(f"Error: kiosk API not reachable: {e}")
        return 1
    print(f"Queued {result.get('command', name)}")
    return 0


def show_state(port=DEFAULT_API_PORT, token=None):
    """Print the running session snapshot."""
    try:
        state = _api_request("/state", port, token)
    except (urllib.error.URLError, OSError) as e:
        print(f"Error: kiosk API not reachable: {e}")
        return 1
    print(json.dumps(state, indent=2, sort_keys=True))
    return 0


def create_flag(which):
    """Drop a display-wake or boot flag for the running kiosk."""
    from ubk_kiosk.paths import BOOT_FLAG, DISPLAY_WAKE_FLAG, touch_flag

    path = DISPLAY_WAKE_FLAG if which == "display-wake" else BOOT_FLAG
    try:
        touch_flag(path)
    except OSError as e:
        print(f"Error: cannot create {path}: {e}")
        return 1
    print(f"Created {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
