from __future__ import annotations

import json
from pathlib import Path

import pytest
from awx_ee_pipeline.cli import main
from awx_ee_pipeline.core import Settings


@pytest.fixture()
def settings(tmp_path: Path, ee_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        manifest_path=ee_dir / "execution-environment.yml",
        report_path=tmp_path / "trivy-results.sarif",
        run_root=tmp_path / "runs",
        image_name="acme/awx-ee",
    )


def _report(settings: Settings) -> dict:
    (run_dir,) = list(settings.run_root.iterdir())
    return json.loads((run_dir / "run_report.json").read_text())


def test_default_command_runs_validate_build_test(healthy_runner, settings) -> None:
    code = main([], runner=healthy_runner, settings=settings, environ={})
    assert code == 0
    report = _report(settings)
    assert [s["stage"] for s in report["stages"]] == ["validate", "build", "test"]
    assert report["meta"]["command"] == "all"


def test_missing_runtime_exits_1(fake_runner, settings, capsys) -> None:
    code = main(["build", "-r", "docker"], runner=fake_runner, settings=settings, environ={})
    assert code == 1
    assert "docker is not installed" in capsys.readouterr().err
    assert fake_runner.calls == []


def test_failure_prints_stage_and_message(healthy_runner, settings, capsys) -> None:
    healthy_runner.on("ansible-builder", "build", exit_code=2, stdout="boom\n")
    code = main(["build", "-t", "custom:1"], runner=healthy_runner, settings=settings, environ={})
    assert code == 1
    err = capsys.readouterr().err
    assert "build: ansible-builder build failed (exit 2) for custom:1" in err


def test_tag_and_runtime_flags_reach_commands(healthy_runner, settings) -> None:
    healthy_runner.on("image", "inspect", "custom:1", stdout="sha256:def\n")
    code = main(
        ["build", "-r", "docker", "-t", "custom:1"],
        runner=healthy_runner,
        settings=settings,
        environ={},
    )
    assert code == 0
    (build,) = healthy_runner.called("ansible-builder", "build")
    assert build[build.index("--container-runtime") + 1] == "docker"
    assert build[build.index("-t") + 1] == "custom:1"
    assert healthy_runner.called("docker", "image", "inspect", "custom:1")


def test_file_flag_overrides_manifest(healthy_runner, settings, tmp_path: Path) -> None:
    code = main(
        ["validate", "-f", str(tmp_path / "missing.yml")],
        runner=healthy_runner,
        settings=settings,
        environ={},
    )
    assert code == 1
    assert _report(settings)["failure"]["exc_type"] == "ConfigError"


def test_unknown_command_is_usage_error(fake_runner, settings) -> None:
    with pytest.raises(SystemExit) as ei:
        main(["deploy"], runner=fake_runner, settings=settings, environ={})
    assert ei.value.code == 2


def test_ci_pull_request_builds_but_does_not_publish(healthy_runner, settings) -> None:
    code = main(
        ["ci", "--event", "pull_request", "--pr-number", "42"],
        runner=healthy_runner,
        settings=settings,
        environ={},
    )
    assert code == 0
    report = _report(settings)
    statuses = {s["stage"]: s["status"] for s in report["stages"]}
    assert statuses == {
        "validate": "success",
        "build": "success",
        "test": "success",
        "scan": "success",
        "tags": "success",
        "publish": "skipped",
        "verify-published": "skipped",
    }
    tags = next(s for s in report["stages"] if s["stage"] == "tags")
    assert tags["outputs"]["tags"] == ["ghcr.io/acme/awx-ee:pr-42"]
    assert not healthy_runner.called("push")


def test_ci_release_from_github_env(healthy_runner, settings, tmp_path: Path) -> None:
    payload = tmp_path / "event.json"
    payload.write_text(json.dumps({"release": {"tag_name": "v1.0.0"}}), encoding="utf-8")
    env = {
        "GITHUB_EVENT_NAME": "release",
        "GITHUB_REF": "refs/tags/v1.0.0",
        "GITHUB_EVENT_PATH": str(payload),
        "GITHUB_ACTOR": "octocat",
        "GITHUB_TOKEN": "ghp_secret",
    }
    code = main(["ci", "--github"], runner=healthy_runner, settings=settings, environ=env)
    assert code == 0

    pushed = [c[-1] for c in healthy_runner.called("podman", "push")]
    assert pushed == ["ghcr.io/acme/awx-ee:v1.0.0", "ghcr.io/acme/awx-ee:latest"]
    assert healthy_runner.called("podman", "pull", "ghcr.io/acme/awx-ee:v1.0.0")
    assert "ghp_secret" in healthy_runner.inputs
    events = next(settings.run_root.glob("*/events.jsonl"))
    assert "ghp_secret" not in events.read_text()


def test_ci_release_without_credentials_fails_in_publish(healthy_runner, settings, capsys) -> None:
    code = main(
        ["ci", "--event", "release", "--release-tag", "v2"],
        runner=healthy_runner,
        settings=settings,
        environ={},
    )
    assert code == 1
    assert "publish: No registry credentials for ghcr.io" in capsys.readouterr().err


def test_ci_bad_event_flags(fake_runner, settings, capsys) -> None:
    fake_runner.tools.add("podman")
    code = main(["ci", "--event", "release"], runner=fake_runner, settings=settings, environ={})
    assert code == 1
    assert "--release-tag" in capsys.readouterr().err


def test_verbose_flag_leaves_builder_verbosity_to_settings(healthy_runner, settings) -> None:
    quiet = settings.model_copy(update={"builder_verbosity": 1})
    code = main(["build", "-v"], runner=healthy_runner, settings=quiet, environ={})
    assert code == 0
    (build,) = healthy_runner.called("ansible-builder", "build")
    assert "-v1" in build and "-v3" not in build
