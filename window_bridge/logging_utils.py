from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional

from window_bridge.config import BridgeSettings

LOGGER_NAME = "WindowBridge"
LOG_DIR_ENV = "WINDOW_BRIDGE_LOG_DIR"
PROPAGATE_ENV = "WINDOW_BRIDGE_PROPAGATE_LOGS"
LOG_FILENAME = "window_bridge.log"
LOG_MAX_BYTES = 512 * 1024

_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def resolve_logs_dir(log_dir_name: str = "window_bridge", environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Resolve the directory to store bridge logs.

    Strategy:
    - Use WINDOW_BRIDGE_LOG_DIR if set.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    env = os.environ if environ is None else environ
    candidates = []

    env_override = env.get(LOG_DIR_ENV)
    if env_override:
        candidates.append(Path(env_override).expanduser())

    state_home = Path(env.get("XDG_STATE_HOME") or Path.home() / ".local" / "state")
    cache_home = Path(env.get("XDG_CACHE_HOME") or Path.home() / ".cache")
    candidates.append(state_home / log_dir_name)
    candidates.append(cache_home / log_dir_name)
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def build_rotating_file_handler(settings: BridgeSettings, log_dir: Path) -> RotatingFileHandler:
    """File handler for the bridge log; ``log_retention`` counts the live file plus backups."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=LOG_MAX_BYTES,
        backupCount=max(0, settings.log_retention - 1),
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._window_bridge_handler = True  # type: ignore[attr-defined]
    return handler


def resolve_log_level(settings: BridgeSettings) -> int:
    return logging.DEBUG if settings.debug else logging.INFO


def configure_logging(
    settings: BridgeSettings,
    *,
    log_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> logging.Logger:
    """Attach the rotating file handler to the package logger once."""
    env = os.environ if environ is None else environ
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_log_level(settings))
    # Opt-in propagation flag for environments/tests that want bridge logs upstream.
    logger.propagate = env.get(PROPAGATE_ENV, "").lower() in {"1", "true", "yes", "on"}

    if any(getattr(handler, "_window_bridge_handler", False) for handler in logger.handlers):
        return logger

    target_dir = log_dir if log_dir is not None else resolve_logs_dir(environ=env)
    handler = build_rotating_file_handler(settings, target_dir)
    logger.addHandler(handler)
    logger.debug("Logging to %s (level=%s)", target_dir / LOG_FILENAME, logging.getLevelName(logger.level))
    return logger
