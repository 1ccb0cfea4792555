from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, cast

from awx_ee_pipeline.containers import ContainerRuntime
from awx_ee_pipeline.core import (
    CommandRunner,
    ConfigError,
    Settings,
    SubprocessRunner,
    bind,
    clear_bindings,
    configure_logging,
    get_logger,
    load_settings,
    new_run_id,
)
from awx_ee_pipeline.pipeline import (
    EventContext,
    Manual,
    PipelineOptions,
    PipelineRunner,
    RegistryCredentials,
    RunnerConfig,
    RunReport,
)
from awx_ee_pipeline.pipeline.stage import Stage, StageFn
from awx_ee_pipeline.stages import (
    stage_build,
    stage_functional,
    stage_publish,
    stage_scan,
    stage_tags,
    stage_validate,
    stage_verify_published,
)
from awx_ee_pipeline.stages.tagging import event_from_args, event_from_github_env
from pydantic import SecretStr
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()

_STAGE_FNS: dict[str, Callable[[Any], object]] = {
    "validate": stage_validate,
    "build": stage_build,
    "test": stage_functional,
    "scan": stage_scan,
    "tags": stage_tags,
    "publish": stage_publish,
    "verify-published": stage_verify_published,
}

_PIPELINES: dict[str, tuple[str, ...]] = {
    "validate": ("validate",),
    "build": ("build",),
    "test": ("test",),
    "scan": ("scan",),
    "all": ("validate", "build", "test"),
    "ci": ("validate", "build", "test", "scan", "tags", "publish", "verify-published"),
}

_COMMAND_HELP = (
    "validate: check the manifest and builder; build: build the image; "
    "test: run functional checks on an existing image; scan: scan an existing image; "
    "all: validate, build and test (default); "
    "ci: all, then scan, tag, publish and verify the published image"
)


@dataclass(frozen=True, slots=True)
class _Args:
    cmd: str
    runtime: str | None
    tag: str | None
    manifest: str | None
    verbose: bool
    event: str | None
    release_tag: str | None
    pr_number: str | None
    ref: str | None
    github: bool


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="awx-ee-pipeline",
        description="Validate, build, test, scan and publish the AWX execution environment image.",
    )
    p.add_argument(
        "command",
        nargs="?",
        default="all",
        choices=tuple(_PIPELINES),
        help=_COMMAND_HELP,
    )
    p.add_argument(
        "-r",
        "--runtime",
        choices=tuple(r.value for r in ContainerRuntime),
        default=None,
        help="Container runtime (default: podman, or AWX_EE_RUNTIME)",
    )
    p.add_argument("-t", "--tag", default=None, help="Image tag to build and test (default: awx-ee:test)")
    p.add_argument(
        "-f",
        "--file",
        dest="manifest",
        default=None,
        help="Execution environment definition (default: ee/execution-environment.yml)",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Debug logging (builder verbosity comes from AWX_EE_BUILDER_VERBOSITY)",
    )

    ev = p.add_argument_group("ci event", "How the ci command decides tags and whether to push")
    ev.add_argument(
        "--event",
        choices=("release", "push", "pull_request", "manual"),
        default=None,
        help="Trigger kind (default: manual)",
    )
    ev.add_argument("--release-tag", default=None, help="Release tag name, for --event release")
    ev.add_argument("--pr-number", default=None, help="Pull request number, for --event pull_request")
    ev.add_argument("--ref", default=None, help="Git ref, for --event manual")
    ev.add_argument(
        "--github",
        action="store_true",
        help="Classify the trigger from the GitHub Actions environment",
    )
    return p


def _args(ns: argparse.Namespace) -> _Args:
    return _Args(
        cmd=str(ns.command),
        runtime=ns.runtime,
        tag=ns.tag,
        manifest=ns.manifest,
        verbose=bool(ns.verbose),
        event=ns.event,
        release_tag=ns.release_tag,
        pr_number=ns.pr_number,
        ref=ns.ref,
        github=bool(ns.github),
    )


def _normalize_stage_fn(fn: Callable[[Any], object]) -> StageFn:
    def _wrapped(ctx):
        return cast(dict[str, Any] | None, fn(ctx))

    return _wrapped


def _with_status(stage_id: str, fn: StageFn) -> StageFn:
    def _run_with_status(ctx):
        with console.status(f"[bold]{stage_id}[/]", spinner="dots"):
            return fn(ctx)

    return _run_with_status


def _build_stages(cmd: str) -> list[Stage]:
    return [
        PipelineRunner.fn(
            stage_id=sid,
            fn=_with_status(sid, _normalize_stage_fn(_STAGE_FNS[sid])),
        )
        for sid in _PIPELINES[cmd]
    ]


def _resolve_event(args: _Args, s: Settings, env: Mapping[str, str]) -> EventContext:
    if args.cmd != "ci":
        return Manual(ref=args.ref)
    if args.github:
        return event_from_github_env(env, default_branch=s.default_branch)
    return event_from_args(
        args.event or "manual",
        release_tag=args.release_tag,
        pr_number=args.pr_number,
        ref=args.ref,
        default_branch=s.default_branch,
    )


def _resolve_credentials(s: Settings, env: Mapping[str, str]) -> RegistryCredentials | None:
    user = s.registry_user or env.get("GITHUB_ACTOR")
    token = s.registry_token or (SecretStr(env["GITHUB_TOKEN"]) if env.get("GITHUB_TOKEN") else None)
    if not user or token is None:
        return None
    return RegistryCredentials(username=user, token=token)


def _build_options(
    args: _Args, s: Settings, env: Mapping[str, str]
) -> PipelineOptions:
    return PipelineOptions(
        manifest_path=Path(args.manifest) if args.manifest else Path(s.manifest_path),
        runtime=ContainerRuntime(args.runtime or s.runtime),
        image_tag=args.tag or s.image_tag,
        registry=s.registry,
        image_name=s.image_name,
        report_path=Path(s.report_path),
        scanner_image=s.scanner_image,
        builder_verbosity=s.builder_verbosity,
        event=_resolve_event(args, s, env),
        credentials=_resolve_credentials(s, env),
    )


def _print_result(report: RunReport, options: PipelineOptions) -> None:
    tbl = Table(title="Result", show_header=True, box=None)
    tbl.add_column("key")
    tbl.add_column("value")
    tbl.add_row(
        "status",
        "[green]ok[/green]" if report.exit_code == 0 else "[red]failed[/red]",
    )
    for st in report.stages:
        color = {"success": "green", "skipped": "yellow"}.get(st.status, "red")
        tbl.add_row(f"stage {st.stage}", f"[{color}]{st.status}[/{color}]")
    tag_stage = report.stage("tags")
    if tag_stage is not None and tag_stage.outputs.get("tags"):
        tbl.add_row("tags", ", ".join(tag_stage.outputs["tags"]))
    tbl.add_row("image", options.image_tag)
    tbl.add_row("report", str(report.report_json))
    console.print(tbl)


def main(
    argv: list[str] | None = None,
    *,
    runner: CommandRunner | None = None,
    settings: Settings | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    args = _args(_build_parser().parse_args(argv))
    env = os.environ if environ is None else environ

    s = settings or load_settings()
    configure_logging(level="DEBUG" if args.verbose else s.log_level, fmt=s.log_format)
    log = get_logger("awx_ee_pipeline")
    runner = runner or SubprocessRunner()

    try:
        options = _build_options(args, s, env)
    except ConfigError as e:
        print(f"config: {e}", file=sys.stderr)
        return 1

    if runner.which(options.runtime.value) is None:
        print(
            f"runtime: {options.runtime.value} is not installed or not on PATH",
            file=sys.stderr,
        )
        return 1

    run_id = new_run_id()
    clear_bindings()
    bind(run_id=run_id, command=args.cmd, image=options.image_tag)

    pipeline = PipelineRunner(
        stages=_build_stages(args.cmd),
        cfg=RunnerConfig(stop_on_failure=True),
        logger=log,
    )

    console.print(
        Panel.fit(
            Text(
                f"awx-ee-pipeline - {args.cmd}\nrun_id={run_id}\n"
                f"image={options.image_tag}\nruntime={options.runtime.value}",
                style="bold",
            ),
            title="Run",
        )
    )

    report = pipeline.run(
        options=options,
        run_root=Path(s.run_root),
        runner=runner,
        run_id=run_id,
        meta={"command": args.cmd},
    )

    _print_result(report, options)
    if report.failure is not None:
        print(report.failure.describe(), file=sys.stderr)

    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
