"""JavaScript sources handed to the KWin scripting engine."""
from __future__ import annotations

import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Optional

from window_bridge.errors import KWinScriptError

# KWin prints script console output to the journal; lines carrying this prefix
# are the ones the bridge forwards to its own log.
SCRIPT_LOG_PREFIX = "WindowBridge:"

WINDOW_LIST_SCRIPT_NAME = "window_bridge_window_list"
_WINDOW_LIST_SCRIPT = Path(__file__).resolve().parent / "scripts" / "kwin_window_list.js"

MINIMIZE_RESTORE_TEMPLATE = """
function print(str) {
    console.info('%(prefix)s ' + str);
}

function apply() {
    let windows = workspace.windowList ? workspace.windowList() : workspace.clientList();
    let targetWindowId = %(window_id)s;
    let targetWindow = windows.find(w => w.internalId.toString() === targetWindowId);

    if (!targetWindow) {
        print('Window with id ' + targetWindowId + ' not found');
        return;
    }

    let shouldMinimize = %(minimize)s;
    targetWindow.minimized = shouldMinimize;

    print('Window with id ' + targetWindowId + ' ' + (shouldMinimize ? 'minimized' : 'restored'));

    if (!shouldMinimize) {
        if (workspace.activeWindow !== undefined) {
            workspace.activeWindow = targetWindow;
        } else {
            workspace.activeClient = targetWindow;
        }
    }
}

apply();
"""


def render_minimize_restore(window_id: str, minimize: bool) -> str:
    # json.dumps yields a quoted, escaped JavaScript string literal.
    return MINIMIZE_RESTORE_TEMPLATE % {
        "prefix": SCRIPT_LOG_PREFIX,
        "window_id": json.dumps(str(window_id)),
        "minimize": "true" if minimize else "false",
    }


def script_directory() -> Path:
    """Per-user directory under the system temp dir, private to the current user."""
    target = Path(tempfile.gettempdir()) / f"window_bridge-{os.getuid()}"
    try:
        target.mkdir(mode=0o700, exist_ok=True)
        info = os.lstat(target)
    except OSError as exc:
        raise KWinScriptError(f"Unable to prepare script directory {target}: {exc}") from exc
    if stat.S_ISLNK(info.st_mode) or info.st_uid != os.getuid():
        raise KWinScriptError(f"Refusing to use script directory {target}: not owned by the current user")
    if stat.S_IMODE(info.st_mode) & 0o077:
        os.chmod(target, 0o700)
    return target


def write_script(source: str, name: str, directory: Optional[Path] = None) -> Path:
    """Write ``source`` to ``<directory>/<name>.js``, replacing any earlier copy.

    The file is never opened through a symlink.
    """
    if directory is None:
        target_dir = script_directory()
    else:
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"{name}.js"
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_NOFOLLOW, 0o600)
    except OSError as exc:
        raise KWinScriptError(f"Unable to write KWin script {path}: {exc}") from exc
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(source)
    return path


def default_window_list_script() -> Path:
    return _WINDOW_LIST_SCRIPT
