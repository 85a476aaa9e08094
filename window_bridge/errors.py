"""Exception types raised by the window bridge."""
from __future__ import annotations


class WindowBridgeError(RuntimeError):
    """Base error for failed desktop introspection or window operations."""


class SessionTypeError(WindowBridgeError):
    """The desktop session could not be identified from the environment."""


class UnsupportedSessionError(WindowBridgeError):
    """The requested operation has no implementation for the running session."""


class CommandError(WindowBridgeError):
    """An external tool could not be run to completion."""


class KWinScriptError(WindowBridgeError):
    """KWin refused or failed a scripting request over D-Bus."""
