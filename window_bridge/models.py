"""Value records describing desktop windows and the processes behind them."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProcessStatus(Enum):
    RUNNING = "running"
    SUSPENDED = "suspended"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Process:
    """An operating-system process that owns one or more windows."""

    pid: int
    executable: str
    status: ProcessStatus = ProcessStatus.UNKNOWN


@dataclass(frozen=True, slots=True)
class Window:
    """A top-level window as reported by the window manager or compositor.

    ``id`` is opaque: a decimal X11 window id on X11, the KWin internal UUID on
    KDE Wayland.
    """

    id: str
    process: Process
    title: str
