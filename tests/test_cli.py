from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from typing import List

import pytest

from window_bridge import cli
from window_bridge.errors import KWinScriptError, UnsupportedSessionError, WindowBridgeError
from window_bridge.linux import Linux
from window_bridge.models import Process, Window
from window_bridge.native_platform import create_native_platform
from window_bridge.session_type import DesktopEnvironment, DisplayProtocol, SessionType

WINDOWS = [
    Window(id="101", process=Process(pid=11, executable="kate"), title="notes.txt - Kate"),
    Window(id="102", process=Process(pid=12, executable="firefox"), title="Mozilla Firefox"),
]


class FakePlatform:
    def __init__(self, minimize_ok: bool = True, deps_ok: bool = True) -> None:
        self.minimize_ok = minimize_ok
        self.deps_ok = deps_ok
        self.calls: List[tuple] = []
        self.disposed = False

    def session_type(self) -> SessionType:
        return SessionType(DisplayProtocol.X11, DesktopEnvironment.KDE)

    def current_desktop(self) -> int:
        return 0

    def windows(self, show_hidden: bool = False) -> List[Window]:
        self.calls.append(("windows", show_hidden))
        return WINDOWS

    def active_window(self) -> Window:
        return WINDOWS[1]

    def check_dependencies(self) -> bool:
        return self.deps_ok

    def minimize_window(self, window_id: str) -> bool:
        self.calls.append(("minimize", window_id))
        return self.minimize_ok

    def restore_window(self, window_id: str) -> bool:
        self.calls.append(("restore", window_id))
        raise WindowBridgeError("Restore not implemented for GNOME Wayland")

    def dispose(self) -> None:
        self.disposed = True


def _run(args, platform, tmp_path: Path):
    out, err = io.StringIO(), io.StringIO()
    code = cli.main(
        ["--settings", str(tmp_path / "missing.json"), *args],
        platform_factory=lambda _logger, _settings: platform,
        out=out,
        err=err,
        setup_logging=False,
    )
    return code, out.getvalue(), err.getvalue()


def test_session_command(tmp_path: Path) -> None:
    platform = FakePlatform()
    code, out, _ = _run(["session"], platform, tmp_path)
    assert code == 0
    assert out == "x11/kde\n"
    assert platform.disposed is True


def test_windows_tab_separated(tmp_path: Path) -> None:
    platform = FakePlatform()
    code, out, _ = _run(["windows"], platform, tmp_path)
    assert code == 0
    assert out.splitlines() == ["101\t11\tkate\tnotes.txt - Kate", "102\t12\tfirefox\tMozilla Firefox"]
    assert platform.calls == [("windows", False)]


def test_windows_all_json(tmp_path: Path) -> None:
    platform = FakePlatform()
    code, out, _ = _run(["windows", "--all", "--json"], platform, tmp_path)
    assert code == 0
    assert platform.calls == [("windows", True)]
    assert json.loads(out)[0] == {"id": "101", "pid": 11, "executable": "kate", "title": "notes.txt - Kate"}


def test_active_json(tmp_path: Path) -> None:
    code, out, _ = _run(["active", "--json"], FakePlatform(), tmp_path)
    assert code == 0
    assert json.loads(out)["executable"] == "firefox"


def test_minimize_exit_codes(tmp_path: Path) -> None:
    assert _run(["minimize", "101"], FakePlatform(), tmp_path)[0] == 0
    assert _run(["minimize", "101"], FakePlatform(minimize_ok=False), tmp_path)[0] == 1


def test_errors_are_reported_and_platform_disposed(tmp_path: Path) -> None:
    platform = FakePlatform()
    code, _, err = _run(["restore", "101"], platform, tmp_path)
    assert code == 1
    assert err == "window-bridge: Restore not implemented for GNOME Wayland\n"
    assert platform.disposed is True


def test_check_deps(tmp_path: Path) -> None:
    assert _run(["check-deps"], FakePlatform(), tmp_path)[1] == "ok\n"
    code, out, _ = _run(["check-deps"], FakePlatform(deps_ok=False), tmp_path)
    assert code == 1
    assert out == "missing dependencies\n"


def test_factory_failure(tmp_path: Path) -> None:
    def _factory(_logger, _settings):
        raise UnsupportedSessionError("Unsupported platform: win32")

    err = io.StringIO()
    code = cli.main(
        ["--settings", str(tmp_path / "missing.json"), "session"],
        platform_factory=_factory,
        err=err,
        setup_logging=False,
    )
    assert code == 1
    assert "Unsupported platform: win32" in err.getvalue()


def test_missing_subcommand_exits() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_create_native_platform_rejects_other_platforms() -> None:
    with pytest.raises(UnsupportedSessionError, match="Unsupported platform: darwin"):
        create_native_platform(logging.getLogger("test"), platform="darwin")


def test_create_native_platform_linux_x11(monkeypatch) -> None:
    monkeypatch.setattr("window_bridge.linux.CommandRunner", lambda timeout: (lambda exe, args: None))
    platform = create_native_platform(
        logging.getLogger("test"),
        environ={"XDG_SESSION_TYPE": "x11", "XDG_CURRENT_DESKTOP": "XFCE"},
        platform="linux",
    )
    assert isinstance(platform, Linux)
    assert platform.session_type().environment is DesktopEnvironment.XFCE
    platform.dispose()


class _StuckPlatform(FakePlatform):
    def dispose(self) -> None:
        raise KWinScriptError("unload failed")


def test_dispose_failure_is_reported(tmp_path: Path) -> None:
    code, out, err = _run(["windows"], _StuckPlatform(), tmp_path)
    assert code == 1
    assert out.startswith("101\t")
    assert err == "window-bridge: unload failed\n"


def test_dispose_failure_keeps_command_error(tmp_path: Path) -> None:
    code, _, err = _run(["restore", "101"], _StuckPlatform(), tmp_path)
    assert code == 1
    assert err == "window-bridge: Restore not implemented for GNOME Wayland\n"
