"""Run external desktop tools and capture their text output."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from window_bridge.errors import CommandError
from window_bridge.flatpak import host_command, running_in_flatpak

_LOGGER = logging.getLogger("WindowBridge.Command")

# Shell convention for "command not found".
MISSING_BINARY_RETURNCODE = 127


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


RunFunction = Callable[[str, Sequence[str]], CommandResult]


class CommandRunner:
    """Callable runner used by the platform adapter for every external tool."""

    def __init__(self, timeout: float = 5.0, flatpak: Optional[bool] = None) -> None:
        self._timeout = timeout
        self._flatpak = running_in_flatpak() if flatpak is None else flatpak
        if self._flatpak:
            _LOGGER.debug("Flatpak sandbox detected; commands will run via flatpak-spawn --host")

    def build_argv(self, executable: str, args: Sequence[str]) -> List[str]:
        if self._flatpak:
            return host_command(executable, args)
        return [executable, *args]

    def __call__(self, executable: str, args: Sequence[str]) -> CommandResult:
        argv = self.build_argv(executable, args)
        try:
            completed = subprocess.run(
                argv,
                check=False,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError as exc:
            _LOGGER.debug("%s binary not found: %s", executable, exc)
            return CommandResult(returncode=MISSING_BINARY_RETURNCODE, stdout="", stderr=str(exc))
        except subprocess.TimeoutExpired as exc:
            _LOGGER.warning("%s timed out after %.1fs", executable, self._timeout)
            raise CommandError(f"{executable} timed out after {self._timeout:.1f}s") from exc
        except (subprocess.SubprocessError, OSError) as exc:
            _LOGGER.debug("%s invocation failed: %s", executable, exc)
            raise CommandError(f"{executable} invocation failed: {exc}") from exc

        if completed.returncode != 0:
            _LOGGER.debug(
                "%s returned non-zero status %s: %s",
                executable,
                completed.returncode,
                (completed.stderr or "").strip(),
            )
        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
