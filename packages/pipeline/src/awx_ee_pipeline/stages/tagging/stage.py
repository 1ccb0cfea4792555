from __future__ import annotations

from typing import Any

from awx_ee_pipeline.pipeline import RunContext
from awx_ee_pipeline.pipeline.events import EventType

from .policy import compute_tag_plan


def stage_tags(ctx: RunContext) -> dict[str, Any]:
    opts = ctx.options
    plan = compute_tag_plan(opts.event, registry=opts.registry, image=opts.image_name)
    ctx.tag_plan = plan

    ctx.emit(
        EventType.TAGS_COMPUTED,
        stage="tags",
        trigger=type(opts.event).__name__,
        tags=list(plan.tags),
        publish=plan.publish,
    )
    return {
        "event": type(opts.event).__name__,
        "tags": list(plan.tags),
        "publish": plan.publish,
    }
