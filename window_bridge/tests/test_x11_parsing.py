from __future__ import annotations

from window_bridge.x11 import (
    STICKY_DESKTOP,
    executable_from_readlink,
    parse_current_desktop,
    parse_pid,
    parse_wmctrl_line,
)


def test_parse_current_desktop_picks_starred_line() -> None:
    stdout = (
        "0  - DG: 3840x1080  VP: N/A  WA: 0,0 3840x1052  Desktop 1\n"
        "1  * DG: 3840x1080  VP: 0,0  WA: 0,0 3840x1052  Desktop 2\n"
    )
    assert parse_current_desktop(stdout) == 1


def test_parse_current_desktop_handles_two_digit_ids() -> None:
    assert parse_current_desktop("12 * DG: 1920x1080  VP: 0,0  Desktop 13\n") == 12


def test_parse_current_desktop_without_marker() -> None:
    assert parse_current_desktop("0  - DG: 1920x1080  Desktop 1\n") is None


def test_parse_wmctrl_line_collapses_whitespace() -> None:
    entry = parse_wmctrl_line("0x03600041  1 1459   SHODAN Inbox - Unified Folders - Mozilla Thunderbird")
    assert entry is not None
    assert entry.window_id == 0x03600041
    assert entry.desktop == 1
    assert entry.pid == 1459
    assert entry.title == "Inbox - Unified Folders - Mozilla Thunderbird"


def test_sticky_window_counts_as_current_desktop() -> None:
    entry = parse_wmctrl_line("0x05000003 -1 3003 host Panel")
    assert entry is not None
    assert entry.desktop == STICKY_DESKTOP
    assert entry.on_desktop(4) is True


def test_parse_wmctrl_line_rejects_short_or_bad_lines() -> None:
    assert parse_wmctrl_line("") is None
    assert parse_wmctrl_line("0x0100000a 0") is None
    assert parse_wmctrl_line("0x0100000a 0 notapid host Title") is None
    assert parse_wmctrl_line("nothex 0 1234 host Title") is None


def test_window_without_title() -> None:
    entry = parse_wmctrl_line("0x0100000a 0 1234 host")
    assert entry is not None
    assert entry.title == ""


def test_executable_from_readlink() -> None:
    assert executable_from_readlink("/usr/lib/firefox/firefox\n") == "firefox"
    assert executable_from_readlink("") == ""


def test_parse_pid() -> None:
    assert parse_pid("4242\n") == 4242
    assert parse_pid("") == 0
    assert parse_pid("X Error of failed request") == 0
