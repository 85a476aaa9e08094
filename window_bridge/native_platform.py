"""Platform-neutral entry point for desktop window operations."""
from __future__ import annotations

import logging
import sys
from typing import List, Mapping, Optional, Protocol

from window_bridge.config import BridgeSettings
from window_bridge.errors import UnsupportedSessionError
from window_bridge.models import Window
from window_bridge.session_type import SessionType


class NativePlatform(Protocol):
    """Operations the host application needs from the desktop."""

    def session_type(self) -> SessionType:
        ...

    def current_desktop(self) -> int:
        ...

    def windows(self, show_hidden: bool = False) -> List[Window]:
        ...

    def active_window(self) -> Window:
        ...

    def check_dependencies(self) -> bool:
        ...

    def minimize_window(self, window_id: str) -> bool:
        ...

    def restore_window(self, window_id: str) -> bool:
        ...

    def dispose(self) -> None:
        ...


def create_native_platform(
    logger: logging.Logger,
    settings: Optional[BridgeSettings] = None,
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
) -> NativePlatform:
    """Instantiate the adapter for the running operating system."""
    platform = platform or sys.platform
    if platform.startswith("linux"):
        from window_bridge.linux import Linux

        return Linux.initialize(settings=settings, environ=environ)

    logger.info("Window control not implemented for platform '%s'", platform)
    raise UnsupportedSessionError(f"Unsupported platform: {platform}")
