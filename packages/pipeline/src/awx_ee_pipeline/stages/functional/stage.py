from __future__ import annotations

from typing import Any

from awx_ee_pipeline.core import atomic_write_json
from awx_ee_pipeline.pipeline import RunContext
from awx_ee_pipeline.pipeline.events import EventType

from .runner import raise_for_failures, run_functional_checks
from .types import CheckResult


def stage_functional(ctx: RunContext) -> dict[str, Any]:
    artifact = ctx.require_artifact()
    log = ctx.stage_logger("test")
    log.info("Starting tests", image=artifact.image_ref)

    def _on_result(res: CheckResult) -> None:
        ctx.emit(
            EventType.CHECK_FINISH,
            stage="test",
            check=res.check_id,
            hard=res.hard,
            passed=res.passed,
        )
        fields = {"check": res.check_id, "hard": res.hard}
        if res.passed:
            log.info(f"✓ {res.message}", **fields)
        elif res.hard:
            log.error(f"✗ {res.message}", **fields)
            if res.output:
                log.debug("check output", output=res.output, **fields)
        else:
            log.warning(f"? {res.message}", **fields)

    report = run_functional_checks(
        ctx.engine, artifact.image_ref, ctx.options, on_result=_on_result
    )

    results_path = ctx.run_root / "functional_results.json"
    atomic_write_json(results_path, report.to_dict())
    ctx.record_artifact(stage="test", path=results_path, content_type="application/json")

    raise_for_failures(report)

    log.info("All tests passed! ✓", image=artifact.image_ref)
    return {
        "image": artifact.image_ref,
        "results_path": str(results_path),
        "checks": {r.check_id: r.passed for r in report.results},
        "_warnings": report.warnings,
        "_metrics": {
            "checks": len(report.results),
            "passed": sum(1 for r in report.results if r.passed),
        },
    }
