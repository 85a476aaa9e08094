"""Detect the display protocol and desktop environment of the running session."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from window_bridge.errors import SessionTypeError

_LOGGER = logging.getLogger("WindowBridge.Session")

SESSION_TYPE_ENV = "XDG_SESSION_TYPE"
CURRENT_DESKTOP_ENV = "XDG_CURRENT_DESKTOP"
SESSION_TYPE_OVERRIDE_ENV = "WINDOW_BRIDGE_SESSION_TYPE"
CURRENT_DESKTOP_OVERRIDE_ENV = "WINDOW_BRIDGE_CURRENT_DESKTOP"


class DisplayProtocol(Enum):
    X11 = "x11"
    WAYLAND = "wayland"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str) -> "DisplayProtocol":
        token = (value or "").strip().lower()
        for member in cls:
            if member.value == token:
                return member
        return cls.UNKNOWN


class DesktopEnvironment(Enum):
    KDE = "kde"
    GNOME = "gnome"
    XFCE = "xfce"
    CINNAMON = "cinnamon"
    MATE = "mate"
    UNITY = "unity"
    LXQT = "lxqt"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str) -> "DesktopEnvironment":
        """Map an ``XDG_CURRENT_DESKTOP`` value to a known environment.

        The variable may hold a colon-separated list such as ``ubuntu:GNOME``;
        the first recognised entry wins.
        """
        for raw in (value or "").split(":"):
            token = raw.strip().lower()
            if token.startswith("x-"):
                token = token[2:]
            token = _DESKTOP_ALIASES.get(token, token)
            for member in cls:
                if member is not cls.UNKNOWN and member.value == token:
                    return member
        return cls.UNKNOWN


_DESKTOP_ALIASES = {
    "plasma": "kde",
    "kde-plasma": "kde",
    "gnome-classic": "gnome",
    "gnome-flashback": "gnome",
}


@dataclass(frozen=True, slots=True)
class SessionType:
    display_protocol: DisplayProtocol
    environment: DesktopEnvironment

    @property
    def is_x11(self) -> bool:
        return self.display_protocol is DisplayProtocol.X11

    @property
    def is_kde_wayland(self) -> bool:
        return self.display_protocol is DisplayProtocol.WAYLAND and self.environment is DesktopEnvironment.KDE

    def __str__(self) -> str:
        return f"{self.display_protocol.value}/{self.environment.value}"


def _read_variable(env: Mapping[str, str], name: str, override: str) -> Optional[str]:
    value = env.get(override) or env.get(name)
    if value is None or not value.strip():
        return None
    return value


def detect_session_type(environ: Optional[Mapping[str, str]] = None) -> SessionType:
    """Read the session type from the environment.

    Raises SessionTypeError when either variable is unset or empty.
    """
    env = os.environ if environ is None else environ

    protocol_value = _read_variable(env, SESSION_TYPE_ENV, SESSION_TYPE_OVERRIDE_ENV)
    if protocol_value is None:
        _LOGGER.error("%s is not set", SESSION_TYPE_ENV)
        raise SessionTypeError(f"{SESSION_TYPE_ENV} is not set")

    desktop_value = _read_variable(env, CURRENT_DESKTOP_ENV, CURRENT_DESKTOP_OVERRIDE_ENV)
    if desktop_value is None:
        _LOGGER.error("%s is not set", CURRENT_DESKTOP_ENV)
        raise SessionTypeError(f"{CURRENT_DESKTOP_ENV} is not set")

    session = SessionType(
        display_protocol=DisplayProtocol.from_string(protocol_value),
        environment=DesktopEnvironment.from_string(desktop_value),
    )
    _LOGGER.debug(
        "Detected session %s (%s=%s %s=%s)",
        session,
        SESSION_TYPE_ENV,
        protocol_value,
        CURRENT_DESKTOP_ENV,
        desktop_value,
    )
    return session
