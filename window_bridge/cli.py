from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from window_bridge.config import BridgeSettings, default_settings_path, load_settings
from window_bridge.errors import WindowBridgeError
from window_bridge.logging_utils import LOGGER_NAME, configure_logging
from window_bridge.models import Window
from window_bridge.native_platform import NativePlatform, create_native_platform

PlatformFactory = Callable[[logging.Logger, BridgeSettings], NativePlatform]

_LOGGER = logging.getLogger(LOGGER_NAME)


def _window_dict(window: Window) -> dict:
    return {
        "id": window.id,
        "pid": window.process.pid,
        "executable": window.process.executable,
        "title": window.title,
    }


def _print_window(window: Window, out: TextIO) -> None:
    out.write(f"{window.id}\t{window.process.pid}\t{window.process.executable}\t{window.title}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="window-bridge", description="Inspect and control desktop windows")
    parser.add_argument("--settings", help="Path to settings.json")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("session", help="Print the detected session type")
    windows = sub.add_parser("windows", help="List windows on the current desktop")
    windows.add_argument("--all", action="store_true", help="Include windows on other desktops")
    windows.add_argument("--json", action="store_true", help="Emit JSON instead of tab-separated lines")
    active = sub.add_parser("active", help="Print the active window")
    active.add_argument("--json", action="store_true", help="Emit JSON instead of tab-separated lines")
    minimize = sub.add_parser("minimize", help="Minimize a window by id")
    minimize.add_argument("window_id")
    restore = sub.add_parser("restore", help="Restore a minimized window by id")
    restore.add_argument("window_id")
    sub.add_parser("check-deps", help="Verify wmctrl and xdotool are installed")
    return parser


def _default_factory(logger: logging.Logger, settings: BridgeSettings) -> NativePlatform:
    return create_native_platform(logger, settings)


def main(
    argv: Optional[List[str]] = None,
    *,
    platform_factory: PlatformFactory = _default_factory,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
    setup_logging: bool = True,
) -> int:
    args = build_parser().parse_args(argv)
    out = out or sys.stdout
    err = err or sys.stderr

    settings_path = Path(args.settings).expanduser() if args.settings else default_settings_path()
    settings = load_settings(settings_path)
    if setup_logging:
        configure_logging(settings)
    _LOGGER.debug("Running %s with settings from %s", args.command, settings_path)

    try:
        platform = platform_factory(_LOGGER, settings)
    except WindowBridgeError as exc:
        err.write(f"window-bridge: {exc}\n")
        return 1

    try:
        code = _dispatch(args, platform, out)
    except WindowBridgeError as exc:
        _LOGGER.error("%s failed: %s", args.command, exc)
        err.write(f"window-bridge: {exc}\n")
        code = 1
    finally:
        cleanup_error = _dispose(platform)

    if cleanup_error is not None and code == 0:
        err.write(f"window-bridge: {cleanup_error}\n")
        return 1
    return code


def _dispose(platform: NativePlatform) -> Optional[WindowBridgeError]:
    try:
        platform.dispose()
    except WindowBridgeError as exc:
        _LOGGER.error("Releasing desktop resources failed: %s", exc)
        return exc
    return None


def _dispatch(args: argparse.Namespace, platform: NativePlatform, out: TextIO) -> int:
    command = args.command
    if command == "session":
        out.write(f"{platform.session_type()}\n")
        return 0
    if command == "windows":
        windows = platform.windows(show_hidden=args.all)
        if args.json:
            out.write(json.dumps([_window_dict(window) for window in windows], indent=2) + "\n")
        else:
            for window in windows:
                _print_window(window, out)
        return 0
    if command == "active":
        window = platform.active_window()
        if args.json:
            out.write(json.dumps(_window_dict(window), indent=2) + "\n")
        else:
            _print_window(window, out)
        return 0
    if command == "minimize":
        return 0 if platform.minimize_window(args.window_id) else 1
    if command == "restore":
        return 0 if platform.restore_window(args.window_id) else 1
    if command == "check-deps":
        ok = platform.check_dependencies()
        out.write("ok\n" if ok else "missing dependencies\n")
        return 0 if ok else 1
    return 2
