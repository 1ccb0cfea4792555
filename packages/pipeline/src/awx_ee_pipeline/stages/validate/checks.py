from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from awx_ee_pipeline.core import CommandRunner, ToolError

BUILDER = "ansible-builder"
YAMLLINT = "yamllint"


@dataclass(frozen=True, slots=True)
class LintOutcome:
    ran: bool
    clean: bool
    findings: tuple[str, ...] = field(default_factory=tuple)


def lint_yaml(runner: CommandRunner, path: Path) -> LintOutcome:
    """
    yamllint is optional. Missing tool or findings are reported, never raised.
    """
    if runner.which(YAMLLINT) is None:
        return LintOutcome(ran=False, clean=False)
    res = runner.run([YAMLLINT, "-f", "parsable", str(path)])
    findings = tuple(line for line in res.stdout.splitlines() if line.strip())
    return LintOutcome(ran=True, clean=res.ok, findings=findings)


def builder_version(runner: CommandRunner) -> str:
    if runner.which(BUILDER) is None:
        raise ToolError(f"{BUILDER} not found. Install it with: pip install {BUILDER}")
    res = runner.run([BUILDER, "--version"])
    if not res.ok:
        raise ToolError(f"{BUILDER} --version failed (exit {res.exit_code}): {res.tail(10)}")
    return res.stdout.strip()


def introspect(runner: CommandRunner, context_dir: Path) -> str:
    """
    Dry-run dependency introspection; the builder reads the definition without building.
    """
    res = runner.run([BUILDER, "introspect", str(context_dir)])
    if not res.ok:
        raise ToolError(
            f"{BUILDER} introspect rejected {context_dir} (exit {res.exit_code}):\n{res.tail()}"
        )
    return res.stdout
