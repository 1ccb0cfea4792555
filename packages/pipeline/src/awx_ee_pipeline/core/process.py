from __future__ import annotations

import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Protocol, Sequence

import structlog

from .provenance import Timer

log = structlog.get_logger(__name__)

# Shell conventions for "not executable" and "command not found"
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127


@dataclass(frozen=True, slots=True)
class CommandResult:
    cmd: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def not_found(self) -> bool:
        return self.exit_code == EXIT_NOT_FOUND

    @property
    def output(self) -> str:
        """stdout and stderr combined, the way a terminal would show them."""
        parts = [p for p in (self.stdout, self.stderr) if p]
        return "\n".join(p.rstrip("\n") for p in parts)

    def tail(self, lines: int = 40) -> str:
        return "\n".join(self.output.splitlines()[-lines:])

    def display(self) -> str:
        return shlex.join(self.cmd)


class CommandRunner(Protocol):
    def run(
        self,
        cmd: Sequence[str],
        *,
        input_text: str | None = None,
    ) -> CommandResult: ...

    def which(self, name: str) -> str | None: ...


class SubprocessRunner:
    """
    Blocking subprocess execution with captured text output.

    No timeout is applied; the host scheduler bounds the run.
    """

    def run(
        self,
        cmd: Sequence[str],
        *,
        input_text: str | None = None,
    ) -> CommandResult:
        argv = tuple(str(c) for c in cmd)
        log.debug("command.start", cmd=shlex.join(argv))
        with Timer() as t:
            try:
                completed = subprocess.run(
                    argv,
                    input=input_text,
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except FileNotFoundError as e:
                log.debug("command.not_found", cmd=argv[0])
                return CommandResult(cmd=argv, exit_code=EXIT_NOT_FOUND, stderr=str(e))
            except OSError as e:
                log.debug("command.not_executable", cmd=argv[0], error=str(e))
                return CommandResult(cmd=argv, exit_code=EXIT_NOT_EXECUTABLE, stderr=str(e))

        log.debug(
            "command.finish",
            cmd=argv[0],
            exit_code=completed.returncode,
            duration_ms=t.duration_ms,
        )
        return CommandResult(
            cmd=argv,
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            duration_ms=t.duration_ms or 0,
        )

    def which(self, name: str) -> str | None:
        return shutil.which(name)
