from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from awx_ee_pipeline.core import atomic_write_json, to_jsonable

from .stage import StageResult


@dataclass(frozen=True, slots=True)
class RunFailure:
    """First fatal error of a run; decides the run's final status."""

    stage: str
    exc_type: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        return f"{self.stage}: {self.message}"


@dataclass(slots=True)
class RunReport:
    run_id: str
    started_at_utc: str
    finished_at_utc: str
    status: str  # "success" | "failed"
    duration_ms: int

    stages: list[StageResult] = field(default_factory=list)
    failure: Optional[RunFailure] = None
    events_jsonl: Optional[str] = None
    report_json: Optional[str] = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 0 if self.status == "success" else 1

    def stage(self, stage_id: str) -> StageResult | None:
        for s in self.stages:
            if s.stage == stage_id:
                return s
        return None

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(asdict(self))

    def write_json(self, path: Path) -> None:
        atomic_write_json(Path(path), self.to_dict())


def first_failure(stage_results: list[StageResult]) -> RunFailure | None:
    for s in stage_results:
        if s.status == "failed":
            err = s.error
            return RunFailure(
                stage=s.stage,
                exc_type=err.exc_type if err else "Error",
                message=err.message if err else "stage failed",
                details=dict(err.details) if err else {},
            )
    return None


def build_run_report(
    *,
    run_id: str,
    started_at_utc: str,
    finished_at_utc: str,
    duration_ms: int,
    stage_results: list[StageResult],
    events_jsonl: str | None,
    meta: dict[str, Any] | None = None,
) -> RunReport:
    failure = first_failure(stage_results)
    return RunReport(
        run_id=run_id,
        started_at_utc=started_at_utc,
        finished_at_utc=finished_at_utc,
        status="success" if failure is None else "failed",
        duration_ms=duration_ms,
        stages=stage_results,
        failure=failure,
        events_jsonl=events_jsonl,
        meta=meta or {},
    )
