"""Settings for the window bridge, read from a JSON file with safe defaults."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

SETTINGS_ENV = "WINDOW_BRIDGE_SETTINGS"
DEBUG_ENV = "WINDOW_BRIDGE_DEBUG"

COMMAND_TIMEOUT_MIN = 0.5
COMMAND_TIMEOUT_MAX = 60.0
SETTLE_DELAY_MAX = 10.0
LOG_RETENTION_MIN = 1
LOG_RETENTION_MAX = 20


def _env_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class BridgeSettings:
    command_timeout: float = 5.0
    kwin_script_settle_delay: float = 1.0
    filtered_executables: Tuple[str, ...] = field(default_factory=tuple)
    script_prefix: str = "window_bridge"
    log_retention: int = 5
    debug: bool = False


def default_settings_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    override = env.get(SETTINGS_ENV)
    if override:
        return Path(override).expanduser()
    config_home = env.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "window_bridge" / "settings.json"


def _float(value: Any, fallback: float, lower: float, upper: float) -> float:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return fallback
    return min(max(numeric, lower), upper)


def _int(value: Any, fallback: int, lower: int, upper: int) -> int:
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return fallback
    return min(max(numeric, lower), upper)


def _bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _env_flag(value)
    if isinstance(value, (int, float)):
        return value != 0
    return fallback


def _names(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    cleaned = [str(item).strip() for item in value if isinstance(item, (str, int))]
    return tuple(filter(None, cleaned))


def load_settings(
    settings_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BridgeSettings:
    """Read settings from ``settings_path``; missing or malformed files yield defaults."""
    env = os.environ if environ is None else environ
    path = settings_path if settings_path is not None else default_settings_path(env)
    defaults = BridgeSettings()
    env_debug = _env_flag(env.get(DEBUG_ENV))

    data: Dict[str, Any] = {}
    try:
        raw = path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError, UnicodeDecodeError):
        raw = None
    if raw is not None:
        try:
            loaded = json.loads(raw)
        except json.JSONDecodeError:
            loaded = {}
        if isinstance(loaded, dict):
            data = loaded

    prefix = str(data.get("script_prefix") or defaults.script_prefix).strip() or defaults.script_prefix
    return BridgeSettings(
        command_timeout=_float(
            data.get("command_timeout", defaults.command_timeout),
            defaults.command_timeout,
            COMMAND_TIMEOUT_MIN,
            COMMAND_TIMEOUT_MAX,
        ),
        kwin_script_settle_delay=_float(
            data.get("kwin_script_settle_delay", defaults.kwin_script_settle_delay),
            defaults.kwin_script_settle_delay,
            0.0,
            SETTLE_DELAY_MAX,
        ),
        filtered_executables=_names(data.get("filtered_executables")),
        script_prefix=prefix,
        log_retention=_int(
            data.get("log_retention", defaults.log_retention),
            defaults.log_retention,
            LOG_RETENTION_MIN,
            LOG_RETENTION_MAX,
        ),
        debug=_bool(data.get("debug", defaults.debug), defaults.debug) or env_debug,
    )
