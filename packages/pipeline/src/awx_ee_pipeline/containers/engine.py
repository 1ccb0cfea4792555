from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Sequence

from awx_ee_pipeline.core.process import CommandResult, CommandRunner
from pydantic import SecretStr


class ContainerRuntime(StrEnum):
    PODMAN = "podman"  # primary
    DOCKER = "docker"  # alternate


@dataclass(frozen=True, slots=True)
class Volume:
    host: Path
    container: Path

    def spec(self) -> str:
        return f"{self.host}:{self.container}"


@dataclass(frozen=True, slots=True)
class ContainerEngine:
    """
    Thin wrapper over the podman/docker CLI. Both share the subcommands used here.
    """

    runtime: ContainerRuntime
    runner: CommandRunner

    @property
    def executable(self) -> str:
        return self.runtime.value

    def run(
        self,
        image: str,
        args: Sequence[str],
        *,
        volumes: Sequence[Volume] = (),
    ) -> CommandResult:
        cmd = [self.executable, "run", "--rm"]
        for v in volumes:
            cmd += ["-v", v.spec()]
        cmd.append(image)
        cmd += list(args)
        return self.runner.run(cmd)

    def image_id(self, image: str) -> str | None:
        res = self.runner.run(
            [self.executable, "image", "inspect", "--format", "{{.Id}}", image]
        )
        if not res.ok:
            return None
        return res.stdout.strip() or None

    def tag(self, source: str, target: str) -> CommandResult:
        return self.runner.run([self.executable, "tag", source, target])

    def push(self, ref: str) -> CommandResult:
        return self.runner.run([self.executable, "push", ref])

    def pull(self, ref: str) -> CommandResult:
        return self.runner.run([self.executable, "pull", ref])

    def login(self, registry: str, *, username: str, password: SecretStr) -> CommandResult:
        # password goes over stdin only
        return self.runner.run(
            [self.executable, "login", registry, "-u", username, "--password-stdin"],
            input_text=password.get_secret_value(),
        )
