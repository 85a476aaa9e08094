"""Client for the KWin scripting engine on the D-Bus session bus."""
from __future__ import annotations

import logging
import subprocess
import threading
from typing import Any, Callable, List, Optional, Sequence

from window_bridge.errors import KWinScriptError

KWIN_BUS_NAME = "org.kde.KWin"
KWIN_SCRIPTING_PATH = "/Scripting"
DEFAULT_JOURNAL_COMMAND = ("journalctl", "--user", "--follow", "--lines=0", "--output=cat")

_LOGGER = logging.getLogger("WindowBridge.KWin")

OutputCallback = Callable[[str], None]
OutputPredicate = Callable[[str], bool]


def _default_bus() -> Any:
    from pydbus import SessionBus  # type: ignore

    return SessionBus()


def _dbus_errors() -> tuple:
    from gi.repository import GLib  # type: ignore

    return (GLib.Error,)


class ScriptOutputFollower:
    """Tail the user journal, where KWin prints script console output."""

    def __init__(
        self,
        predicate: OutputPredicate,
        callback: OutputCallback,
        command: Sequence[str] = DEFAULT_JOURNAL_COMMAND,
    ) -> None:
        self._predicate = predicate
        self._callback = callback
        self._command = list(command)
        self._process: Optional[subprocess.Popen[str]] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.running:
            return True
        try:
            self._process = subprocess.Popen(
                self._command,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (FileNotFoundError, OSError) as exc:
            _LOGGER.warning("Unable to follow KWin script output (%s): %s", self._command[0], exc)
            self._process = None
            return False
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._read_lines, name="WindowBridge-KWinOutput", daemon=True)
        self._thread.start()
        _LOGGER.debug("Following KWin script output via %s (pid=%s)", self._command[0], self._process.pid)
        return True

    def stop(self) -> None:
        self._stop_event.set()
        process = self._process
        self._process = None
        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=2.0)
            except subprocess.TimeoutExpired:
                process.kill()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
        self._thread = None

    def feed(self, line: str) -> None:
        text = line.rstrip("\n")
        if text and self._predicate(text):
            self._callback(text)

    def _read_lines(self) -> None:
        process = self._process
        if process is None or process.stdout is None:
            return
        for line in process.stdout:
            if self._stop_event.is_set():
                break
            self.feed(line)


class KWinScripting:
    """Load and unload scripts through ``org.kde.kwin.Scripting``."""

    def __init__(self, bus: Any = None, journal_command: Sequence[str] = DEFAULT_JOURNAL_COMMAND) -> None:
        self._bus = bus
        self._proxy: Any = None
        self._journal_command = tuple(journal_command)
        self._followers: List[ScriptOutputFollower] = []
        self._errors = _dbus_errors()

    def _scripting(self) -> Any:
        if self._proxy is not None:
            return self._proxy
        try:
            if self._bus is None:
                self._bus = _default_bus()
            self._proxy = self._bus.get(KWIN_BUS_NAME, KWIN_SCRIPTING_PATH)
        except self._errors as exc:
            _LOGGER.error("Failed to connect to KWin scripting via D-Bus: %s", exc)
            raise KWinScriptError(f"KWin scripting unavailable: {exc}") from exc
        return self._proxy

    def load_script(self, path: str, name: str) -> int:
        """Load the script at ``path`` under ``name`` and start it.

        KWin rejects a name that is already loaded, so a stale copy is unloaded first.
        """
        scripting = self._scripting()
        try:
            if scripting.isScriptLoaded(name):
                _LOGGER.debug("KWin script %s already loaded; reloading", name)
                scripting.unloadScript(name)
            script_id = int(scripting.loadScript(path, name))
            scripting.start()
        except self._errors as exc:
            _LOGGER.error("KWin failed to load script %s from %s: %s", name, path, exc)
            raise KWinScriptError(f"KWin failed to load script {name}: {exc}") from exc
        if script_id < 0:
            raise KWinScriptError(f"KWin rejected script {name} from {path}")
        _LOGGER.debug("Loaded KWin script %s from %s (id=%d)", name, path, script_id)
        return script_id

    def unload_script(self, name: str) -> bool:
        scripting = self._scripting()
        try:
            unloaded = bool(scripting.unloadScript(name))
        except self._errors as exc:
            _LOGGER.error("KWin failed to unload script %s: %s", name, exc)
            raise KWinScriptError(f"KWin failed to unload script {name}: {exc}") from exc
        _LOGGER.debug("Unloaded KWin script %s: %s", name, unloaded)
        return unloaded

    def is_script_loaded(self, name: str) -> bool:
        scripting = self._scripting()
        try:
            return bool(scripting.isScriptLoaded(name))
        except self._errors as exc:
            raise KWinScriptError(f"KWin script query failed for {name}: {exc}") from exc

    def follow_output(self, predicate: OutputPredicate, callback: OutputCallback) -> ScriptOutputFollower:
        follower = ScriptOutputFollower(predicate, callback, self._journal_command)
        follower.start()
        self._followers.append(follower)
        return follower

    def dispose(self) -> None:
        for follower in self._followers:
            follower.stop()
        self._followers.clear()
        self._proxy = None
        self._bus = None
