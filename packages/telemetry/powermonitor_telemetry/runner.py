"""Narrow external-process seam used by the sampler and memory queries."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Sequence


logger = logging.getLogger(__name__)


class CommandLaunchError(RuntimeError):
    """The command could not be started or did not produce a result."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"{command}: {reason}")


class CommandTimeoutError(CommandLaunchError):
    def __init__(self, command: str, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(command, f"timed out after {timeout_s:g}s")


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


class ProcessRunner:
    """Runs a command to completion and captures its output."""

    def run(self, command: str, args: Sequence[str] = (), timeout_s: float | None = None) -> CommandResult:
        argv = [command, *args]
        logger.debug("running %s", " ".join(argv))
        try:
            proc = subprocess.run(argv, capture_output=True, timeout=timeout_s, check=False)
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(command, float(exc.timeout)) from exc
        except OSError as exc:
            raise CommandLaunchError(command, str(exc)) from exc

        logger.debug("%s exited with status %d", command, proc.returncode)
        return CommandResult(returncode=proc.returncode, stdout=proc.stdout or b"", stderr=proc.stderr or b"")
