"""Linux desktop window introspection for suspending and resuming applications."""
from __future__ import annotations

from window_bridge.errors import (
    CommandError,
    KWinScriptError,
    SessionTypeError,
    UnsupportedSessionError,
    WindowBridgeError,
)
from window_bridge.models import Process, ProcessStatus, Window
from window_bridge.session_type import DesktopEnvironment, DisplayProtocol, SessionType

__version__ = "0.1.0"

__all__ = [
    "CommandError",
    "DesktopEnvironment",
    "DisplayProtocol",
    "KWinScriptError",
    "Process",
    "ProcessStatus",
    "SessionType",
    "SessionTypeError",
    "UnsupportedSessionError",
    "Window",
    "WindowBridgeError",
    "__version__",
]
