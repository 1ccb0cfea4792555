from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest
from awx_ee_pipeline.core import ConfigError
from awx_ee_pipeline.pipeline import (
    DefaultBranchPush,
    Manual,
    PullRequest,
    Release,
    TagPlan,
)
from awx_ee_pipeline.stages.tagging import (
    compute_tag_plan,
    event_from_args,
    event_from_github,
    event_from_github_env,
    stage_tags,
)

REPO = dict(registry="ghcr.io", image="acme/awx-ee")


def test_release_gets_version_and_latest_and_is_published() -> None:
    plan = compute_tag_plan(Release(tag="v1.2.0"), **REPO)
    assert plan.tags == ("ghcr.io/acme/awx-ee:v1.2.0", "ghcr.io/acme/awx-ee:latest")
    assert plan.publish is True


def test_default_branch_push_is_published_as_main() -> None:
    plan = compute_tag_plan(DefaultBranchPush(), **REPO)
    assert plan == TagPlan(tags=("ghcr.io/acme/awx-ee:main",), publish=True)


def test_pull_request_is_tagged_but_never_published() -> None:
    plan = compute_tag_plan(PullRequest(number=42), **REPO)
    assert plan == TagPlan(tags=("ghcr.io/acme/awx-ee:pr-42",), publish=False)


def test_manual_is_not_published() -> None:
    plan = compute_tag_plan(Manual(ref="refs/heads/feature"), **REPO)
    assert plan.publish is False
    assert plan.tags == ("ghcr.io/acme/awx-ee:manual",)


def test_trailing_slash_on_registry_is_ignored() -> None:
    plan = compute_tag_plan(PullRequest(number=7), registry="ghcr.io/", image="awx-ee")
    assert plan.tags == ("ghcr.io/awx-ee:pr-7",)


def test_publish_plan_requires_tags() -> None:
    with pytest.raises(ValueError):
        TagPlan(tags=(), publish=True)


def test_github_release_wins_over_ref() -> None:
    ev = event_from_github(
        event_name="release",
        ref="refs/heads/main",
        payload={"release": {"tag_name": "v2.0.0"}},
    )
    assert ev == Release(tag="v2.0.0")


def test_github_release_without_tag_is_config_error() -> None:
    with pytest.raises(ConfigError):
        event_from_github(event_name="release", ref="refs/tags/x", payload={})


@pytest.mark.parametrize("event_name", ["push", "workflow_dispatch"])
def test_github_default_branch(event_name: str) -> None:
    ev = event_from_github(event_name=event_name, ref="refs/heads/main")
    assert ev == DefaultBranchPush(branch="main")


def test_github_custom_default_branch() -> None:
    ev = event_from_github(event_name="push", ref="refs/heads/devel", default_branch="devel")
    assert ev == DefaultBranchPush(branch="devel")
    assert isinstance(event_from_github(event_name="push", ref="refs/heads/main", default_branch="devel"), Manual)


def test_github_pull_request_number_from_payload() -> None:
    ev = event_from_github(
        event_name="pull_request", ref="refs/pull/42/merge", payload={"number": 42}
    )
    assert ev == PullRequest(number=42)

    ev = event_from_github(
        event_name="pull_request_target",
        ref="refs/heads/feature",
        payload={"pull_request": {"number": "9"}},
    )
    assert ev == PullRequest(number=9)


def test_github_other_branch_is_manual() -> None:
    ev = event_from_github(event_name="workflow_dispatch", ref="refs/heads/feature")
    assert ev == Manual(ref="refs/heads/feature")


def test_github_env_reads_event_payload(tmp_path: Path) -> None:
    payload = tmp_path / "event.json"
    payload.write_text(json.dumps({"release": {"tag_name": "v3.1.4"}}), encoding="utf-8")
    env = {
        "GITHUB_EVENT_NAME": "release",
        "GITHUB_REF": "refs/tags/v3.1.4",
        "GITHUB_EVENT_PATH": str(payload),
    }
    assert event_from_github_env(env) == Release(tag="v3.1.4")


def test_github_env_missing_event_name() -> None:
    with pytest.raises(ConfigError, match="GITHUB_EVENT_NAME"):
        event_from_github_env({})


def test_github_env_unreadable_payload(tmp_path: Path) -> None:
    env = {"GITHUB_EVENT_NAME": "push", "GITHUB_EVENT_PATH": str(tmp_path / "missing.json")}
    with pytest.raises(ConfigError, match="payload"):
        event_from_github_env(env)


def test_event_from_args() -> None:
    assert event_from_args("release", release_tag="v1") == Release(tag="v1")
    assert event_from_args("push", default_branch="main") == DefaultBranchPush()
    assert event_from_args("pull_request", pr_number="12") == PullRequest(number=12)
    assert event_from_args("manual", ref="abc") == Manual(ref="abc")


@pytest.mark.parametrize(
    ("kind", "kw"),
    [
        ("release", {}),
        ("pull_request", {}),
        ("pull_request", {"pr_number": "x"}),
        ("pull_request", {"pr_number": 0}),
        ("tag", {}),
    ],
)
def test_event_from_args_rejects_incomplete_input(kind: str, kw: dict) -> None:
    with pytest.raises(ConfigError):
        event_from_args(kind, **kw)


def test_stage_tags_sets_plan_on_context(options, fake_runner, make_ctx) -> None:
    opts = replace(options, event=Release(tag="v1.0.0"), image_name="acme/awx-ee")
    ctx = make_ctx(opts, fake_runner)

    out = stage_tags(ctx)
    assert out["tags"] == ["ghcr.io/acme/awx-ee:v1.0.0", "ghcr.io/acme/awx-ee:latest"]
    assert out["publish"] is True
    assert ctx.tag_plan is not None and ctx.tag_plan.publish

    events = [e for e in ctx.events.read() if e["type"] == "tags.computed"]
    assert events and events[0]["data"]["trigger"] == "Release"
