from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from awx_ee_pipeline.core import (
    EEPipelineError,
    StageError,
    monotonic_ms,
    stage_error_from_exc,
    utc_now_iso,
)

from .context import RunContext
from .events import EventType
from .types import ArtifactRef


def format_duration_ms(ms: int) -> str:
    """Return a short human-readable duration string."""
    if ms < 1000:
        return f"{ms} ms"
    return f"{ms / 1000:.2f} s"


class Stage(Protocol):
    stage_id: str

    def run(self, ctx: RunContext) -> dict[str, Any] | None: ...


StageFn = Callable[[RunContext], dict[str, Any] | None]


@dataclass(slots=True)
class FunctionStage:
    """
    Adapter that turns a plain function into a Stage.
    """

    stage_id: str
    fn: StageFn

    def run(self, ctx: RunContext) -> dict[str, Any] | None:
        return self.fn(ctx)


@dataclass(slots=True)
class StageResult:
    stage: str
    status: str  # "success" | "failed" | "skipped"
    started_at_utc: str
    finished_at_utc: str
    duration_ms: int

    outputs: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    artifacts: list[ArtifactRef] = field(default_factory=list)
    error: Optional[StageError] = None


def _pop_reserved(
    out: dict[str, Any],
) -> tuple[list[str], dict[str, Any], list[ArtifactRef], str | None]:
    warnings: list[str] = []
    metrics: dict[str, Any] = {}
    artifacts: list[ArtifactRef] = []

    w = out.pop("_warnings", None)
    if isinstance(w, list):
        warnings.extend(str(x) for x in w)

    m = out.pop("_metrics", None)
    if isinstance(m, dict):
        metrics.update(m)

    a = out.pop("_artifacts", None)
    if isinstance(a, list):
        artifacts.extend(a)

    skipped = out.pop("_skipped", None)
    return warnings, metrics, artifacts, (str(skipped) if skipped else None)


def run_stage(
    *,
    ctx: RunContext,
    stage: Stage,
    index: int | None = None,
    total: int | None = None,
) -> StageResult:
    """
    Run one stage and capture its outcome. Stage exceptions become a failed
    StageResult; they are not re-raised.

    Stages return a dict of outputs and may include the reserved keys
    `_warnings`, `_metrics`, `_artifacts` and `_skipped` (a reason string).
    """
    stage_id = stage.stage_id
    log = ctx.stage_logger(stage_id)

    t0 = monotonic_ms()
    started_at = utc_now_iso()
    position = f"{index}/{total}" if index is not None and total is not None else None

    ctx.emit(EventType.STAGE_START, stage=stage_id)
    log.info("Stage starting", position=position)

    try:
        out = stage.run(ctx) or {}
        if not isinstance(out, dict):
            raise TypeError(
                f"Stage {stage_id} returned {type(out).__name__}, expected dict or None"
            )
    except Exception as e:
        err = stage_error_from_exc(e)
        duration = monotonic_ms() - t0

        ctx.emit(
            EventType.STAGE_FAILED,
            stage=stage_id,
            duration_ms=duration,
            exc_type=err.exc_type,
            message=err.message,
            **err.details,
        )
        log.error(
            "Stage failed",
            status="failed",
            position=position,
            duration=format_duration_ms(duration),
            error=err.message,
            exc_type=err.exc_type,
        )
        if not isinstance(e, EEPipelineError):
            log.exception("Stage exception")

        return StageResult(
            stage=stage_id,
            status="failed",
            started_at_utc=started_at,
            finished_at_utc=utc_now_iso(),
            duration_ms=duration,
            error=err,
        )

    out = dict(out)
    warnings, metrics, artifacts, skipped = _pop_reserved(out)
    status = "skipped" if skipped else "success"

    for w in warnings:
        ctx.emit(EventType.STAGE_WARN, stage=stage_id, message=w)
        log.warning(w)

    if metrics:
        ctx.emit(EventType.STAGE_METRICS, stage=stage_id, metrics=metrics)

    duration = monotonic_ms() - t0
    ctx.emit(EventType.STAGE_SUCCESS, stage=stage_id, duration_ms=duration, status=status)

    log_fields: dict[str, object] = {
        "status": status,
        "position": position,
        "duration": format_duration_ms(duration),
        "warnings": len(warnings),
        "outputs": sorted(out.keys()),
    }
    if skipped:
        log_fields["reason"] = skipped
    if artifacts:
        log_fields["artifacts"] = len(artifacts)
    log.info("Stage skipped" if skipped else "Stage succeeded", **log_fields)

    return StageResult(
        stage=stage_id,
        status=status,
        started_at_utc=started_at,
        finished_at_utc=utc_now_iso(),
        duration_ms=duration,
        outputs=out,
        metrics=metrics,
        warnings=warnings,
        artifacts=artifacts,
    )
