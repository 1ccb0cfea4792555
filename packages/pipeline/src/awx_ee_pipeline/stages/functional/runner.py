from __future__ import annotations

import dataclasses
from typing import Callable, Sequence

from awx_ee_pipeline.containers import ContainerEngine
from awx_ee_pipeline.core import TestFailure
from awx_ee_pipeline.pipeline.types import PipelineOptions

from .checks import CHECKS
from .types import CheckResult, FunctionalCheck, FunctionalReport


def _run_one(
    check: FunctionalCheck, engine: ContainerEngine, image: str, opts: PipelineOptions
) -> CheckResult:
    try:
        res = check.run(engine, image, opts)
    except Exception as e:
        # a broken check is a failed check; the rest of the battery still runs
        return CheckResult(
            check_id=check.check_id,
            title=check.title,
            hard=check.hard,
            passed=False,
            message=f"{type(e).__name__}: {e}",
        )
    # the battery definition decides hard/soft, not the check body
    return dataclasses.replace(res, check_id=check.check_id, hard=check.hard)


def run_functional_checks(
    engine: ContainerEngine,
    image: str,
    opts: PipelineOptions,
    *,
    checks: Sequence[FunctionalCheck] = CHECKS,
    on_result: Callable[[CheckResult], None] | None = None,
) -> FunctionalReport:
    """
    Run every check in order. A failing check does not stop the others.
    """
    results: list[CheckResult] = []
    for check in checks:
        res = _run_one(check, engine, image, opts)
        results.append(res)
        if on_result is not None:
            on_result(res)
    return FunctionalReport(image=image, results=tuple(results))


def raise_for_failures(report: FunctionalReport) -> None:
    failed = report.failed_checks
    if not failed:
        return
    reasons = "; ".join(
        f"{r.check_id}: {r.message}" for r in report.results if r.fails_run
    )
    raise TestFailure(
        failed,
        f"Functional checks failed on {report.image}: {reasons}",
        warnings=report.warnings,
    )
