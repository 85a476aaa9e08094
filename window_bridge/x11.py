"""Parsers for the plain-text output of wmctrl, xdotool and readlink."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# wmctrl reports a window's desktop as -1 when it is "sticky", e.g. every
# window on a secondary display with GNOME's "workspaces on primary only".
STICKY_DESKTOP = -1


@dataclass(frozen=True, slots=True)
class WmctrlEntry:
    """One line of ``wmctrl -lp``: ``<id> <desktop> <pid> <host> <title...>``."""

    window_id: int
    desktop: Optional[int]
    pid: int
    title: str

    def on_desktop(self, desktop: Optional[int]) -> bool:
        return self.desktop == desktop or self.desktop == STICKY_DESKTOP


def _parse_int(token: str) -> Optional[int]:
    try:
        return int(token, 0)
    except ValueError:
        try:
            return int(token)
        except ValueError:
            return None


def parse_current_desktop(stdout: str) -> Optional[int]:
    """Return the id of the desktop ``wmctrl -d`` marks with ``*``."""
    current: Optional[int] = None
    for line in stdout.splitlines():
        if "*" not in line:
            continue
        fields = line.split()
        if fields:
            parsed = _parse_int(fields[0])
            if parsed is not None:
                current = parsed
    return current


def parse_wmctrl_line(line: str) -> Optional[WmctrlEntry]:
    fields = line.split()
    if len(fields) < 3:
        return None
    window_id = _parse_int(fields[0])
    pid = _parse_int(fields[2])
    if window_id is None or pid is None:
        return None
    return WmctrlEntry(
        window_id=window_id,
        desktop=_parse_int(fields[1]),
        pid=pid,
        title=" ".join(fields[4:]),
    )


def executable_from_readlink(stdout: str) -> str:
    """``readlink /proc/<pid>/exe`` prints a path; the executable is its basename."""
    return stdout.strip().split("/")[-1].strip()


def parse_pid(stdout: str) -> int:
    """Parse ``xdotool getwindowpid`` output, returning 0 when it is not a number."""
    try:
        return int(stdout.strip())
    except ValueError:
        return 0
