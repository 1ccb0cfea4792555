from __future__ import annotations

from typing import Any

from awx_ee_pipeline.pipeline import Release, RunContext
from awx_ee_pipeline.pipeline.events import EventType

from ..tagging import compute_tag_plan
from .publisher import publish_tags
from .verify import verify_published


def stage_publish(ctx: RunContext) -> dict[str, Any]:
    opts = ctx.options
    log = ctx.stage_logger("publish")

    plan = ctx.tag_plan
    if plan is None:
        plan = compute_tag_plan(opts.event, registry=opts.registry, image=opts.image_name)
        ctx.tag_plan = plan

    if not plan.publish:
        log.info("Publishing disabled for this event", tags=list(plan.tags))
        return {
            "pushed": [],
            "_skipped": f"no publish for {type(opts.event).__name__} events",
        }

    artifact = ctx.require_artifact()

    ctx.emit(
        EventType.PUBLISH_LOGIN,
        stage="publish",
        registry=opts.registry,
        username=opts.credentials.username if opts.credentials else None,
    )

    def _pushed(tag: str) -> None:
        ctx.emit(EventType.PUBLISH_PUSH, stage="publish", tag=tag)
        log.info("Pushed", tag=tag)

    out = publish_tags(
        ctx.engine,
        artifact,
        plan,
        credentials=opts.credentials,
        registry=opts.registry,
        on_push=_pushed,
    )

    ctx.emit(EventType.PUBLISH_FINISH, stage="publish", pushed=list(out.pushed))
    return {**out.to_dict(), "_metrics": {"tags_pushed": len(out.pushed)}}


def stage_verify_published(ctx: RunContext) -> dict[str, Any]:
    opts = ctx.options
    if not isinstance(opts.event, Release):
        return {"_skipped": "only release images are verified"}

    ref = f"{opts.repository}:{opts.event.tag}"
    version = verify_published(ctx.engine, ref)
    first_line = version.strip().splitlines()[0] if version.strip() else ""

    ctx.emit(EventType.VERIFY_FINISH, stage="verify-published", image=ref, ansible=first_line)
    ctx.stage_logger("verify-published").info("Published image verified", image=ref)
    return {"image": ref, "ansible_version": first_line}
