"""Helpers for reaching host tools when running inside a Flatpak sandbox."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

FLATPAK_INFO_PATH = Path("/.flatpak-info")


def running_in_flatpak(
    environ: Optional[Mapping[str, str]] = None,
    info_path: Path = FLATPAK_INFO_PATH,
) -> bool:
    env = os.environ if environ is None else environ
    if env.get("FLATPAK_ID"):
        return True
    try:
        return info_path.exists()
    except OSError:
        return False


def host_command(executable: str, args: Sequence[str]) -> List[str]:
    """Build an argv that runs ``executable`` on the host instead of in the sandbox."""
    return ["flatpak-spawn", "--host", executable, *args]
