from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from awx_ee_pipeline.core import ConfigError
from awx_ee_pipeline.pipeline.types import (
    DefaultBranchPush,
    EventContext,
    Manual,
    PullRequest,
    Release,
)

EVENT_KINDS = ("release", "push", "pull_request", "manual")

_PR_EVENTS = {"pull_request", "pull_request_target"}


def _pr_number(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Pull request number must be an integer, got {value!r}") from e
    if number <= 0:
        raise ConfigError(f"Pull request number must be positive, got {number}")
    return number


def event_from_github(
    *,
    event_name: str,
    ref: str | None,
    payload: Mapping[str, Any] | None = None,
    default_branch: str = "main",
) -> EventContext:
    """
    Classify a GitHub Actions trigger.

    Order matters: a release wins over the ref, and any trigger on the default
    branch (including workflow_dispatch) counts as a default-branch push.
    """
    payload = payload or {}

    if event_name == "release":
        tag = (payload.get("release") or {}).get("tag_name")
        if not tag:
            raise ConfigError("release event without release.tag_name in payload")
        return Release(tag=str(tag))

    if ref == f"refs/heads/{default_branch}":
        return DefaultBranchPush(branch=default_branch)

    if event_name in _PR_EVENTS:
        number = payload.get("number") or (payload.get("pull_request") or {}).get("number")
        return PullRequest(number=_pr_number(number))

    return Manual(ref=ref)


def event_from_github_env(env: Mapping[str, str], *, default_branch: str = "main") -> EventContext:
    """
    Classify from the variables GitHub Actions sets on a runner. The caller
    passes the environment in; this module never reads it on its own.
    """
    event_name = env.get("GITHUB_EVENT_NAME")
    if not event_name:
        raise ConfigError("GITHUB_EVENT_NAME is not set; not running under GitHub Actions?")

    payload: dict[str, Any] = {}
    payload_path = env.get("GITHUB_EVENT_PATH")
    if payload_path:
        try:
            payload = json.loads(Path(payload_path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read GitHub event payload {payload_path}: {e}") from e

    return event_from_github(
        event_name=event_name,
        ref=env.get("GITHUB_REF"),
        payload=payload,
        default_branch=default_branch,
    )


def event_from_args(
    kind: str,
    *,
    release_tag: str | None = None,
    pr_number: Any = None,
    ref: str | None = None,
    default_branch: str = "main",
) -> EventContext:
    if kind == "release":
        if not release_tag:
            raise ConfigError("--event release requires --release-tag")
        return Release(tag=release_tag)
    if kind == "push":
        return DefaultBranchPush(branch=default_branch)
    if kind == "pull_request":
        return PullRequest(number=_pr_number(pr_number))
    if kind == "manual":
        return Manual(ref=ref)
    raise ConfigError(f"Unknown event kind {kind!r}; expected one of {EVENT_KINDS}")
