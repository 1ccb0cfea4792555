from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from awx_ee_pipeline.core import (
    CommandRunner,
    ILogger,
    RunProvenance,
    SubprocessRunner,
    configure_logging,
    get_logger,
    monotonic_ms,
    new_run_id,
    utc_now_iso,
)

from .context import RunContext
from .events import EventSink, EventType, make_event
from .report import RunReport, build_run_report
from .stage import FunctionStage, Stage, StageFn, StageResult, format_duration_ms, run_stage
from .types import PipelineOptions


@dataclass(slots=True)
class RunnerConfig:
    stop_on_failure: bool = True


def default_logger() -> ILogger:
    """
    Provide a structlog BoundLogger that satisfies ILogger.
    """
    configure_logging()
    return get_logger("pipeline")


class PipelineRunner:
    """
    Runs stages strictly in order on the calling thread.
    """

    def __init__(
        self,
        *,
        stages: Sequence[Stage],
        cfg: RunnerConfig | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self.stages = list(stages)
        self.cfg = cfg or RunnerConfig()
        self.logger: ILogger = logger or default_logger()

        ids = [s.stage_id for s in self.stages]
        if len(ids) != len(set(ids)):
            dupes = sorted({x for x in ids if ids.count(x) > 1})
            raise ValueError(f"Duplicate stage_id(s): {dupes}")

    @staticmethod
    def fn(stage_id: str, fn: StageFn) -> Stage:
        return FunctionStage(stage_id=stage_id, fn=fn)

    def run(
        self,
        *,
        options: PipelineOptions,
        run_root: Path,
        runner: CommandRunner | None = None,
        run_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> RunReport:
        """
        Execute the pipeline and write, under `run_root/<run_id>/`:
          - events.jsonl
          - run_report.json
        """
        meta = dict(meta or {})
        rid = run_id or new_run_id()
        run_dir = Path(run_root) / rid
        run_dir.mkdir(parents=True, exist_ok=True)

        events_path = run_dir / "events.jsonl"
        sink = EventSink(events_path)

        ctx = RunContext(
            run_id=rid,
            run_root=run_dir,
            options=options,
            runner=runner or SubprocessRunner(),
            logger=self.logger,
            events=sink,
            meta=meta,
        )

        started_at = utc_now_iso()
        t0 = monotonic_ms()

        self.logger.info(
            "Pipeline starting",
            run_id=rid,
            stages=[s.stage_id for s in self.stages],
            image=options.image_tag,
            runtime=options.runtime.value,
        )
        ctx.emit(EventType.RUN_START, options=options.to_dict(), **meta)

        results: list[StageResult] = []
        total = len(self.stages)
        for idx, st in enumerate(self.stages, start=1):
            res = run_stage(ctx=ctx, stage=st, index=idx, total=total)
            results.append(res)

            if res.status == "failed" and self.cfg.stop_on_failure:
                self.logger.error("Stopping on first failure", stage=st.stage_id)
                break

        duration = monotonic_ms() - t0

        report = build_run_report(
            run_id=rid,
            started_at_utc=started_at,
            finished_at_utc=utc_now_iso(),
            duration_ms=duration,
            stage_results=results,
            events_jsonl=str(events_path),
            meta={
                **meta,
                "options": options.to_dict(),
                "provenance": RunProvenance(run_id=rid, started_at_utc=started_at).to_dict(),
            },
        )

        report_json = run_dir / "run_report.json"
        report.report_json = str(report_json)
        report.write_json(report_json)

        ctx.emit(
            EventType.RUN_FINISH,
            status=report.status,
            duration_ms=duration,
            report_json=str(report_json),
        )

        self.logger.info(
            "Run complete",
            duration=format_duration_ms(duration),
            report=str(report_json),
            status=report.status,
        )
        return report
