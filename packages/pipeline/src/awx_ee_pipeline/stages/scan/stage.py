from __future__ import annotations

from typing import Any

from awx_ee_pipeline.pipeline import RunContext
from awx_ee_pipeline.pipeline.events import EventType

from .scanner import run_scan


def stage_scan(ctx: RunContext) -> dict[str, Any]:
    """
    Vulnerability scan of the built image. Never fails the run.
    """
    artifact = ctx.require_artifact()
    opts = ctx.options
    log = ctx.stage_logger("scan")

    ctx.emit(EventType.SCAN_START, stage="scan", image=artifact.image_ref)

    outcome = run_scan(
        ctx.runner,
        ctx.engine,
        artifact.image_ref,
        report_path=opts.report_path,
        scanner_image=opts.scanner_image,
        fallback_output=ctx.run_root / "trivy-fallback.txt",
    )
    if outcome.method == "fallback":
        ctx.emit(EventType.SCAN_FALLBACK, stage="scan", image=artifact.image_ref)

    warnings = list(outcome.errors)
    artifacts = []
    if outcome.report_path is not None:
        content_type = (
            "application/sarif+json" if outcome.method == "primary" else "text/plain"
        )
        try:
            artifacts.append(
                ctx.record_artifact(
                    stage="scan", path=outcome.report_path, content_type=content_type
                )
            )
        except OSError as e:
            warnings.append(f"Could not record scan report {outcome.report_path}: {e}")

    if outcome.method == "none":
        warnings.append("Security scan failed, continuing without a report")
    elif outcome.method == "primary":
        log.info("Security scan completed", report=str(outcome.report_path), **outcome.summary)
    else:
        log.info("Fallback scan completed", output=str(outcome.report_path))

    ctx.emit(
        EventType.SCAN_FINISH,
        stage="scan",
        method=outcome.method,
        report=str(outcome.report_path) if outcome.report_path else None,
        summary=outcome.summary,
    )

    return {
        "method": outcome.method,
        "report_path": str(outcome.report_path) if outcome.report_path else None,
        "summary": outcome.summary,
        "_warnings": warnings,
        "_artifacts": artifacts,
        "_metrics": {f"findings_{k.lower()}": v for k, v in outcome.summary.items()},
    }
