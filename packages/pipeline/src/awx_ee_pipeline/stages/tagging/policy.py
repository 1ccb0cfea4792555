from __future__ import annotations

from typing import assert_never

from awx_ee_pipeline.pipeline.types import (
    DefaultBranchPush,
    EventContext,
    Manual,
    PullRequest,
    Release,
    TagPlan,
)

LATEST = "latest"
DEFAULT_BRANCH_TAG = "main"
MANUAL_TAG = "manual"


def compute_tag_plan(event: EventContext, *, registry: str, image: str) -> TagPlan:
    """
    Tags to apply and whether to push them. Pure function of its inputs.

      Release(v1.2.0)    -> [<repo>:v1.2.0, <repo>:latest], push
      DefaultBranchPush  -> [<repo>:main], push
      PullRequest(42)    -> [<repo>:pr-42], no push
      Manual             -> [<repo>:manual], no push
    """
    repo = f"{registry.rstrip('/')}/{image}"

    match event:
        case Release(tag=tag):
            return TagPlan(tags=(f"{repo}:{tag}", f"{repo}:{LATEST}"), publish=True)
        case DefaultBranchPush():
            return TagPlan(tags=(f"{repo}:{DEFAULT_BRANCH_TAG}",), publish=True)
        case PullRequest(number=number):
            return TagPlan(tags=(f"{repo}:pr-{number}",), publish=False)
        case Manual():
            return TagPlan(tags=(f"{repo}:{MANUAL_TAG}",), publish=False)
        case _:
            assert_never(event)
