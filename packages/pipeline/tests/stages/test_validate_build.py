from __future__ import annotations

from dataclasses import replace

import pytest
from awx_ee_pipeline.containers import ContainerRuntime
from awx_ee_pipeline.core import BuildError, ConfigError, ToolError
from awx_ee_pipeline.stages.build import stage_build
from awx_ee_pipeline.stages.build.builder import build_command
from awx_ee_pipeline.stages.validate import stage_validate

IMAGE = "awx-ee:test"


def test_validate_healthy_definition(healthy_runner, options, make_ctx) -> None:
    ctx = make_ctx(options, healthy_runner)
    out = stage_validate(ctx)
    assert out["base_image"] == "quay.io/centos/centos:stream9"
    assert out["builder_version"] == "ansible-builder 3.1.0"
    assert out["yamllint"] == "clean"
    assert out["_metrics"]["collections"] == 17
    assert out["_metrics"]["python_requirements"] > 0
    assert ctx.manifest is not None

    assert healthy_runner.called("ansible-builder", "introspect", str(options.context_dir))


def test_validate_without_yamllint_only_warns(healthy_runner, options, make_ctx) -> None:
    healthy_runner.tools.discard("yamllint")
    out = stage_validate(make_ctx(options, healthy_runner))
    assert out["yamllint"] == "skipped"
    assert any("yamllint" in w for w in out["_warnings"])


def test_validate_lint_findings_only_warn(healthy_runner, options, make_ctx) -> None:
    healthy_runner.on("yamllint", exit_code=1, stdout="ee.yml:3:1: [warning] truthy value\n")
    out = stage_validate(make_ctx(options, healthy_runner))
    assert out["yamllint"] == "issues"
    assert any("YAML lint issues found (1)" in w for w in out["_warnings"])


def test_validate_missing_builder(healthy_runner, options, make_ctx) -> None:
    healthy_runner.tools.discard("ansible-builder")
    with pytest.raises(ToolError, match="pip install ansible-builder"):
        stage_validate(make_ctx(options, healthy_runner))


def test_validate_introspect_rejection(healthy_runner, options, make_ctx) -> None:
    healthy_runner.on("ansible-builder", "introspect", exit_code=1, stderr="bad galaxy\n")
    with pytest.raises(ToolError, match="bad galaxy"):
        stage_validate(make_ctx(options, healthy_runner))


def test_validate_broken_manifest_runs_no_tools(healthy_runner, options, make_ctx) -> None:
    options.manifest_path.write_text("version: 3\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        stage_validate(make_ctx(options, healthy_runner))
    assert healthy_runner.calls == []


def test_build_command(options) -> None:
    cmd = build_command(replace(options, runtime=ContainerRuntime.DOCKER))
    assert cmd[:3] == ["ansible-builder", "build", "-v3"]
    assert cmd[cmd.index("--container-runtime") + 1] == "docker"
    assert cmd[cmd.index("-t") + 1] == IMAGE
    assert "--no-cache" in cmd
    assert cmd[cmd.index("-f") + 1] == str(options.manifest_path)

    quiet = build_command(replace(options, builder_verbosity=0))
    assert not any(c.startswith("-v") for c in quiet)


def test_build_sets_artifact(healthy_runner, options, make_ctx) -> None:
    ctx = make_ctx(options, healthy_runner)
    out = stage_build(ctx)
    assert out["image_id"] == "sha256:abc123"
    assert ctx.artifact is not None and ctx.artifact.image_ref == IMAGE
    assert ctx.artifact.built_at_utc is not None


def test_build_failure_includes_builder_output(healthy_runner, options, make_ctx) -> None:
    healthy_runner.on("ansible-builder", "build", exit_code=1, stdout="Step 3/20\nERROR: dnf failed\n")
    with pytest.raises(BuildError, match="dnf failed"):
        stage_build(make_ctx(options, healthy_runner))


def test_build_success_without_image_is_error(healthy_runner, options, make_ctx) -> None:
    healthy_runner.on("image", "inspect", exit_code=1)
    with pytest.raises(BuildError, match="not present"):
        stage_build(make_ctx(options, healthy_runner))
