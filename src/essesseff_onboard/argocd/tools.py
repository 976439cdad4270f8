"""External command capability used by environment setup.

Environment setup shells out to `git`, `kubectl` and each repository's setup
script. It depends only on :class:`ToolRunner`, so tests can substitute a fake.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127
COMMAND_NOT_EXECUTABLE = 126
COMMAND_TIMED_OUT = 124


@dataclass(frozen=True, slots=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ToolRunner(Protocol):
    """Contract for locating and running external commands."""

    def which(self, name: str) -> str | None:
        """Return the resolved path of *name* on PATH, or ``None``."""
        ...  # pragma: no cover

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command to completion.

        With ``capture=False`` output goes straight to the terminal and the
        result carries only the exit code. Implementations report a missing
        executable as exit code 127, any other OS error starting it as 126
        and a timeout as 124 instead of raising.
        """
        ...  # pragma: no cover


class SubprocessToolRunner:
    """:class:`ToolRunner` backed by :mod:`subprocess`."""

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        logger.debug("Running command", extra={"command": list(args), "cwd": str(cwd or ".")})
        try:
            completed = subprocess.run(
                list(args),
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture_output=capture,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(returncode=COMMAND_NOT_FOUND, stderr=str(e))
        except subprocess.TimeoutExpired:
            return CommandResult(
                returncode=COMMAND_TIMED_OUT,
                stderr=f"Command timed out after {timeout} seconds",
            )
        except OSError as e:
            # e.g. ENOEXEC for a script without a shebang, EACCES on a noexec mount
            return CommandResult(returncode=COMMAND_NOT_EXECUTABLE, stderr=str(e))

        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def missing_tools(tools: ToolRunner, names: Sequence[str]) -> list[str]:
    return [name for name in names if tools.which(name) is None]
