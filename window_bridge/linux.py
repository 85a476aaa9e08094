"""Window introspection and control for Linux desktops.

X11 sessions are served by shelling out to wmctrl/xdotool and parsing their
text output. KDE Plasma on Wayland has no such tools, so a long-lived KWin
script pushes the window list to our D-Bus service, and window state changes
are made by loading small one-shot scripts into KWin.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from window_bridge.command_runner import CommandRunner, RunFunction
from window_bridge.config import BridgeSettings
from window_bridge.dbus_service import WindowBridgeService
from window_bridge.errors import UnsupportedSessionError, WindowBridgeError
from window_bridge.kwin import KWinScripting
from window_bridge.kwin_scripts import (
    SCRIPT_LOG_PREFIX,
    WINDOW_LIST_SCRIPT_NAME,
    default_window_list_script,
    render_minimize_restore,
    write_script,
)
from window_bridge.models import Process, ProcessStatus, Window
from window_bridge.session_type import DesktopEnvironment, DisplayProtocol, SessionType, detect_session_type
from window_bridge.x11 import executable_from_readlink, parse_current_desktop, parse_pid, parse_wmctrl_line

_LOGGER = logging.getLogger("WindowBridge.Linux")

# System-level or non-app executables that should never be offered to the user.
# plasmashell is the KDE desktop itself and shows up once per monitor and
# virtual desktop.
DEFAULT_FILTERED_EXECUTABLES = (
    "plasmashell",
    "xwaylandvideobridge",
)

_REQUIRED_TOOLS = ("xdotool", "wmctrl")


class Linux:
    """Interact with the native Linux desktop."""

    def __init__(
        self,
        run: RunFunction,
        *,
        kwin: Optional[KWinScripting] = None,
        dbus_service: Optional[WindowBridgeService] = None,
        settings: Optional[BridgeSettings] = None,
        kde_wayland_script_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._run = run
        self._kwin = kwin
        self._dbus_service = dbus_service
        self._settings = settings or BridgeSettings()
        self._kde_wayland_script_path = kde_wayland_script_path or str(default_window_list_script())
        self._environ = environ
        self._sleep = sleep
        self._filtered = frozenset(DEFAULT_FILTERED_EXECUTABLES) | frozenset(self._settings.filtered_executables)
        self._session_type: Optional[SessionType] = None
        self._desktop: Optional[int] = None
        self._window_list_loaded = False
        self._disposed = False

    @classmethod
    def initialize(
        cls,
        run: Optional[RunFunction] = None,
        kde_wayland_script_path: Optional[str] = None,
        kwin: Optional[KWinScripting] = None,
        dbus_service: Optional[WindowBridgeService] = None,
        *,
        settings: Optional[BridgeSettings] = None,
        environ: Optional[Mapping[str, str]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "Linux":
        """Build the adapter and prepare compositor hooks for the running session."""
        settings = settings or BridgeSettings()
        runner = run or CommandRunner(timeout=settings.command_timeout)
        linux = cls(
            runner,
            kwin=kwin,
            dbus_service=dbus_service,
            settings=settings,
            kde_wayland_script_path=kde_wayland_script_path,
            environ=environ,
            sleep=sleep,
        )
        session = linux.session_type()
        _LOGGER.info("Linux desktop session: %s", session)
        if session.is_kde_wayland:
            try:
                linux._load_kde_wayland_script()
            except Exception:
                _LOGGER.error("KDE Wayland setup failed; releasing D-Bus service and KWin client")
                linux.dispose()
                raise
        return linux

    # Session ------------------------------------------------------------

    def session_type(self) -> SessionType:
        if self._session_type is None:
            self._session_type = detect_session_type(self._environ)
        return self._session_type

    def _require_kwin(self) -> KWinScripting:
        if self._kwin is None:
            self._kwin = KWinScripting()
        return self._kwin

    def _require_dbus_service(self) -> WindowBridgeService:
        if self._dbus_service is None:
            self._dbus_service = WindowBridgeService.initialize()
        return self._dbus_service

    def _load_kde_wayland_script(self) -> None:
        _LOGGER.info("Loading KWin script for KDE Wayland. Path: %s", self._kde_wayland_script_path)
        self._require_dbus_service()
        kwin = self._require_kwin()
        kwin.load_script(self._kde_wayland_script_path, WINDOW_LIST_SCRIPT_NAME)
        self._window_list_loaded = True
        kwin.follow_output(
            lambda line: SCRIPT_LOG_PREFIX in line,
            lambda line: _LOGGER.debug("KWin script output: %s", line),
        )
        # Give the script time to push its first window list, otherwise the
        # first query briefly looks as though no windows exist.
        self._sleep(self._settings.kwin_script_settle_delay)

    # Desktops and windows -----------------------------------------------

    def current_desktop(self) -> int:
        """Active virtual desktop as reported by wmctrl."""
        result = self._run("wmctrl", ["-d"])
        desktop = parse_current_desktop(result.stdout)
        if desktop is not None:
            self._desktop = desktop
        if self._desktop is None:
            self._desktop = 0
        return self._desktop

    def windows(self, show_hidden: bool = False) -> List[Window]:
        session = self.session_type()
        if session.display_protocol is DisplayProtocol.WAYLAND:
            return self._windows_wayland(session, show_hidden)
        if session.display_protocol is DisplayProtocol.X11:
            return self._windows_x11(show_hidden)
        raise UnsupportedSessionError(f"Unknown session type: {session.display_protocol.value}")

    def _windows_wayland(self, session: SessionType, show_hidden: bool) -> List[Window]:
        if session.environment is DesktopEnvironment.KDE:
            return self._windows_kde_wayland(show_hidden)
        if session.environment is DesktopEnvironment.GNOME:
            raise UnsupportedSessionError("Listing windows is not implemented for GNOME Wayland")
        raise UnsupportedSessionError(f"Unknown desktop environment: {session.environment.value}")

    def _windows_kde_wayland(self, show_hidden: bool) -> List[Window]:
        payload = self._require_dbus_service().windows_json
        if not payload:
            _LOGGER.warning("No windows found from KDE Wayland")
            return []
        entries = self._decode_kwin_json(payload)
        if not isinstance(entries, list):
            raise WindowBridgeError("KWin window list is not a JSON array")

        windows: List[Window] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            if entry.get("onCurrentDesktop") is not True and not show_hidden:
                continue
            window = self._window_from_kwin(entry)
            if window is not None:
                windows.append(window)
        _LOGGER.info("Windows from KDE Wayland: found %d windows", len(windows))
        return windows

    def _window_from_kwin(self, entry: Dict[str, Any]) -> Optional[Window]:
        try:
            pid = int(entry.get("pid"))
        except (TypeError, ValueError):
            _LOGGER.debug("Skipping KWin window without a usable pid: %s", entry)
            return None
        executable = self._executable_name(pid)
        if executable in self._filtered:
            return None
        return Window(
            id=str(entry.get("internalId", "")),
            process=Process(pid=pid, executable=executable, status=ProcessStatus.UNKNOWN),
            title=str(entry.get("caption") or ""),
        )

    @staticmethod
    def _decode_kwin_json(payload: str) -> Any:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            _LOGGER.error("KWin script sent malformed JSON: %s", exc)
            raise WindowBridgeError(f"Malformed window data from KWin: {exc}") from exc

    def _windows_x11(self, show_hidden: bool) -> List[Window]:
        self.current_desktop()
        # Each line from wmctrl looks like:
        # 0x03600041  1 1459   SHODAN Inbox - Unified Folders - Mozilla Thunderbird
        # window id, desktop id, pid, host, window title
        result = self._run("bash", ["-c", "wmctrl -lp"])
        return list(self._build_windows(result.stdout.splitlines(), show_hidden))

    def _build_windows(self, lines: Iterable[str], show_hidden: bool) -> Iterable[Window]:
        for line in lines:
            window = self._build_window(line, show_hidden)
            if window is not None:
                yield window

    def _build_window(self, wmctrl_line: str, show_hidden: bool) -> Optional[Window]:
        entry = parse_wmctrl_line(wmctrl_line)
        if entry is None:
            return None
        if not entry.on_desktop(self._desktop) and not show_hidden:
            return None
        executable = self._executable_name(entry.pid)
        if executable in self._filtered:
            return None
        return Window(
            id=str(entry.window_id),
            process=Process(pid=entry.pid, executable=executable, status=ProcessStatus.UNKNOWN),
            title=entry.title,
        )

    def _executable_name(self, pid: int) -> str:
        result = self._run("readlink", [f"/proc/{pid}/exe"])
        return executable_from_readlink(result.stdout)

    # Active window ------------------------------------------------------

    def active_window(self) -> Window:
        if self.session_type().is_kde_wayland:
            return self._active_window_kde_wayland()

        window_id = self._active_window_id()
        if window_id in ("", "0"):
            raise WindowBridgeError("No window id")

        pid = self._active_window_pid(window_id)
        if pid == 0:
            raise WindowBridgeError("No pid")

        return Window(
            id=window_id,
            process=Process(pid=pid, executable=self._executable_name(pid), status=ProcessStatus.UNKNOWN),
            title=self._active_window_title(),
        )

    def _active_window_kde_wayland(self) -> Window:
        payload = self._require_dbus_service().active_window_json
        if not payload:
            raise WindowBridgeError("No active window reported by KWin")
        entry = self._decode_kwin_json(payload)
        if not isinstance(entry, dict):
            raise WindowBridgeError("KWin active window is not a JSON object")
        try:
            pid = int(entry.get("pid"))
        except (TypeError, ValueError) as exc:
            raise WindowBridgeError("No pid") from exc
        return Window(
            id=str(entry.get("internalId", "")),
            process=Process(pid=pid, executable=self._executable_name(pid), status=ProcessStatus.UNKNOWN),
            title=str(entry.get("caption") or ""),
        )

    def _active_window_id(self) -> str:
        """Unique id of the active window as reported by xdotool."""
        result = self._run("xdotool", ["getactivewindow"])
        return result.stdout.strip()

    def _active_window_pid(self, window_id: str) -> int:
        result = self._run("xdotool", ["getwindowpid", window_id])
        return parse_pid(result.stdout)

    def _active_window_title(self) -> str:
        result = self._run("xdotool", ["getactivewindow", "getwindowname"])
        return result.stdout.strip()

    # Dependencies -------------------------------------------------------

    def check_dependencies(self) -> bool:
        """Verify wmctrl and xdotool are present on the system."""
        available: Dict[str, bool] = {}
        for tool in _REQUIRED_TOOLS:
            script = (
                f"command -v {tool} >/dev/null 2>&1 || "
                f"{{ echo >&2 \"{tool} is required but it's not installed.\"; exit 1; }}"
            )
            result = self._run("bash", ["-c", script])
            available[tool] = result.stderr.strip() == ""

        if not all(available.values()):
            _LOGGER.error(
                "Dependency check failed!\n%s\nMake sure these are installed on your host system.",
                "\n".join(f"{tool} available: {ok}" for tool, ok in available.items()),
            )
            return False
        return True

    # Minimize / restore -------------------------------------------------

    def minimize_window(self, window_id: str) -> bool:
        _LOGGER.info("Minimizing window with id %s", window_id)
        return self._set_minimized(window_id, minimize=True)

    def restore_window(self, window_id: str) -> bool:
        _LOGGER.info("Restoring window with id %s", window_id)
        return self._set_minimized(window_id, minimize=False)

    def _set_minimized(self, window_id: str, *, minimize: bool) -> bool:
        action = "Minimize" if minimize else "Restore"
        session = self.session_type()
        if session.display_protocol is DisplayProtocol.WAYLAND:
            if session.environment is DesktopEnvironment.KDE:
                return self._set_minimized_kde_wayland(window_id, minimize)
            if session.environment is DesktopEnvironment.GNOME:
                raise UnsupportedSessionError(f"{action} not implemented for GNOME Wayland")
            raise UnsupportedSessionError(f"Unknown desktop environment: {session.environment.value}")
        if session.display_protocol is DisplayProtocol.X11:
            return self._set_minimized_x11(window_id, minimize)
        raise UnsupportedSessionError(f"Unknown session type: {session.display_protocol.value}")

    def _set_minimized_x11(self, window_id: str, minimize: bool) -> bool:
        state = "add,hidden" if minimize else "remove,hidden"
        result = self._run("wmctrl", ["-i", "-r", window_id, "-b", state])
        if result.stderr:
            _LOGGER.warning("wmctrl failed to set %s on window %s: %s", state, window_id, result.stderr.strip())
            return False
        return True

    def _set_minimized_kde_wayland(self, window_id: str, minimize: bool) -> bool:
        suffix = "minimize" if minimize else "restore"
        name = f"{self._settings.script_prefix}_{suffix}"
        script_path = write_script(render_minimize_restore(window_id, minimize), name)
        self._require_kwin().load_script(str(script_path), name)
        return True

    # Teardown -----------------------------------------------------------

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        try:
            if self._kwin is not None and self._window_list_loaded:
                self._kwin.unload_script(WINDOW_LIST_SCRIPT_NAME)
                self._window_list_loaded = False
        finally:
            try:
                if self._kwin is not None:
                    self._kwin.dispose()
            finally:
                if self._dbus_service is not None:
                    self._dbus_service.dispose()
