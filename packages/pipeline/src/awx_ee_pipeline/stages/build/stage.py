from __future__ import annotations

from typing import Any

from awx_ee_pipeline.pipeline import RunContext
from awx_ee_pipeline.pipeline.events import EventType

from .builder import build_command, build_image


def stage_build(ctx: RunContext) -> dict[str, Any]:
    opts = ctx.options

    ctx.emit(
        EventType.BUILD_START,
        stage="build",
        image=opts.image_tag,
        runtime=opts.runtime.value,
        cmd=build_command(opts),
    )

    artifact = build_image(ctx.runner, ctx.engine, opts)
    ctx.artifact = artifact

    ctx.emit(
        EventType.BUILD_FINISH,
        stage="build",
        image=artifact.image_ref,
        image_id=artifact.image_id,
    )

    return {
        "image": artifact.image_ref,
        "image_id": artifact.image_id,
        "runtime": artifact.runtime.value,
        "built_at_utc": artifact.built_at_utc,
    }
