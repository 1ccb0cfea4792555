from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

import pytest
import structlog
from awx_ee_pipeline.containers import ContainerRuntime
from awx_ee_pipeline.core import CommandResult
from awx_ee_pipeline.pipeline import PipelineOptions, RunContext
from awx_ee_pipeline.pipeline.events import EventSink

FIXTURES = Path(__file__).parent / "fixtures"

IMAGE = "awx-ee:test"

COLLECTION_LISTING = """\
# /usr/share/ansible/collections/ansible_collections
Collection        Version
----------------- -------
amazon.aws        8.1.0
awx.awx           24.6.1
community.vmware  4.5.0
kubernetes.core   5.0.0
vmware.vmware     1.5.0
"""

Effect = Callable[[tuple[str, ...]], None]


@dataclass
class _Script:
    pattern: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str
    effect: Effect | None


def _is_subsequence(pattern: Sequence[str], cmd: Sequence[str]) -> bool:
    it = iter(cmd)
    return all(any(tok == c for c in it) for tok in pattern)


@dataclass
class FakeRunner:
    """
    Scripted stand-in for SubprocessRunner.

    A script matches when its tokens appear in the command in order. The most
    recently added matching script wins; unmatched commands succeed silently.
    """

    tools: set[str] = field(default_factory=set)
    calls: list[tuple[str, ...]] = field(default_factory=list)
    inputs: list[str | None] = field(default_factory=list)
    _scripts: list[_Script] = field(default_factory=list)

    def on(
        self,
        *pattern: str,
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
        effect: Effect | None = None,
    ) -> "FakeRunner":
        self._scripts.append(_Script(tuple(pattern), exit_code, stdout, stderr, effect))
        return self

    def run(self, cmd, *, input_text=None) -> CommandResult:
        argv = tuple(str(c) for c in cmd)
        self.calls.append(argv)
        self.inputs.append(input_text)
        for script in reversed(self._scripts):
            if _is_subsequence(script.pattern, argv):
                if script.effect is not None:
                    script.effect(argv)
                return CommandResult(
                    cmd=argv,
                    exit_code=script.exit_code,
                    stdout=script.stdout,
                    stderr=script.stderr,
                )
        return CommandResult(cmd=argv, exit_code=0)

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.tools else None

    def called(self, *pattern: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if _is_subsequence(pattern, c)]


def write_sarif(argv: tuple[str, ...]) -> None:
    out = Path(argv[argv.index("--output") + 1])
    out.write_text(
        '{"version": "2.1.0", "runs": [{"tool": {"driver": {"rules": ['
        '{"id": "CVE-1", "properties": {"tags": ["vulnerability", "HIGH"]}},'
        '{"id": "CVE-2", "properties": {"tags": ["vulnerability", "MEDIUM"]}}'
        ']}}, "results": [{"ruleId": "CVE-1"}, {"ruleId": "CVE-1"}, {"ruleId": "CVE-2"}]}]}',
        encoding="utf-8",
    )


def healthy_image(runner: FakeRunner, image: str = IMAGE) -> FakeRunner:
    """Script a build host and image on which every stage succeeds."""
    runner.tools |= {"podman", "docker", "ansible-builder", "yamllint", "trivy"}
    runner.on("ansible-builder", "--version", stdout="ansible-builder 3.1.0\n")
    runner.on("image", "inspect", image, stdout="sha256:abc123\n")
    runner.on("run", image, "ansible", "--version", stdout="ansible [core 2.17.4]\n")
    runner.on("run", image, "python", "--version", stdout="Python 3.11.9\n")
    runner.on("run", image, "ansible-galaxy", "collection", "list", stdout=COLLECTION_LISTING)
    runner.on(
        "run",
        image,
        "python",
        "-c",
        stdout='OK pyvmomi (import pyVim)\nRESULT {"failed": []}\n',
    )
    runner.on("trivy", "image", effect=write_sarif)
    return runner


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def healthy_runner() -> FakeRunner:
    return healthy_image(FakeRunner())


@pytest.fixture()
def ee_dir(tmp_path: Path) -> Path:
    d = tmp_path / "ee"
    d.mkdir()
    shutil.copy(FIXTURES / "execution-environment.yml", d / "execution-environment.yml")
    shutil.copy(FIXTURES / "requirements.txt", d / "requirements.txt")
    return d


@pytest.fixture()
def options(tmp_path: Path, ee_dir: Path) -> PipelineOptions:
    return PipelineOptions(
        manifest_path=ee_dir / "execution-environment.yml",
        runtime=ContainerRuntime.PODMAN,
        image_tag=IMAGE,
        report_path=tmp_path / "trivy-results.sarif",
    )


@pytest.fixture()
def make_ctx(tmp_path: Path) -> Callable[..., RunContext]:
    def _make(options: PipelineOptions, runner: FakeRunner) -> RunContext:
        run_root = tmp_path / "run"
        return RunContext(
            run_id="test-run",
            run_root=run_root,
            options=options,
            runner=runner,
            logger=structlog.get_logger("test"),
            events=EventSink(run_root / "events.jsonl"),
        )

    return _make
