from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import structlog
from awx_ee_pipeline.containers import ContainerEngine, Volume
from awx_ee_pipeline.core import (
    CommandRunner,
    ScanError,
    atomic_write_text,
    ensure_parent,
)
from awx_ee_pipeline.core.config import FALLBACK_SCAN_SEVERITIES, SCAN_SEVERITIES

log = structlog.get_logger(__name__)

SCANNER = "trivy"
SEVERITY_LEVELS = ("CRITICAL", "HIGH", "MEDIUM", "LOW", "UNKNOWN")

ScanMethod = Literal["primary", "fallback", "none"]


@dataclass(frozen=True, slots=True)
class ScanOutcome:
    method: ScanMethod
    report_path: Path | None = None
    summary: dict[str, int] = field(default_factory=dict)
    errors: tuple[str, ...] = ()


def primary_command(image: str, report_path: Path) -> list[str]:
    return [
        SCANNER,
        "image",
        "--format",
        "sarif",
        "--output",
        str(report_path),
        "--severity",
        ",".join(SCAN_SEVERITIES),
        "--exit-code",
        "0",
        image,
    ]


def scan_primary(runner: CommandRunner, image: str, report_path: Path) -> Path:
    """
    Run the scanner on the host. Its exit code is not consulted: the scan
    counts as having run iff the report file exists afterwards.
    """
    if runner.which(SCANNER) is None:
        raise ScanError(f"{SCANNER} not found on PATH")

    report_path = Path(report_path)
    try:
        ensure_parent(report_path)
        report_path.unlink(missing_ok=True)  # stale reports must not count as success
    except OSError as e:
        raise ScanError(f"Cannot prepare report path {report_path}: {e}") from e

    res = runner.run(primary_command(image, report_path))
    if not report_path.is_file():
        raise ScanError(
            f"{SCANNER} produced no report at {report_path} (exit {res.exit_code}): {res.tail(10)}"
        )
    if not res.ok:
        log.info("scan.nonzero_exit_ignored", exit_code=res.exit_code)
    return report_path


def scan_fallback(
    engine: ContainerEngine, image: str, scanner_image: str, output_path: Path
) -> Path:
    """
    Run the scanner from its container image, table output only.
    """
    tmp = Path("/tmp")
    res = engine.run(
        scanner_image,
        [
            "image",
            image,
            "--format",
            "table",
            "--severity",
            ",".join(FALLBACK_SCAN_SEVERITIES),
        ],
        volumes=[Volume(host=tmp, container=tmp)],
    )
    if not res.ok:
        raise ScanError(
            f"fallback scan via {scanner_image} failed (exit {res.exit_code}): {res.tail(10)}"
        )
    try:
        atomic_write_text(output_path, res.stdout)
    except OSError as e:
        raise ScanError(f"Cannot write fallback report {output_path}: {e}") from e
    return output_path


def summarize_sarif(path: Path) -> dict[str, int]:
    """
    Count findings per severity.

    Trivy puts the severity in each rule's `properties.tags`; results point at
    rules by `ruleId`.
    """
    try:
        doc: dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ScanError(f"Unreadable SARIF report {path}: {e}") from e

    counts: Counter[str] = Counter()
    for run in doc.get("runs") or []:
        rules = ((run.get("tool") or {}).get("driver") or {}).get("rules") or []
        severity_by_rule: dict[str, str] = {}
        for rule in rules:
            tags = (rule.get("properties") or {}).get("tags") or []
            sev = next((t for t in tags if t in SEVERITY_LEVELS), "UNKNOWN")
            severity_by_rule[str(rule.get("id"))] = sev
        for result in run.get("results") or []:
            counts[severity_by_rule.get(str(result.get("ruleId")), "UNKNOWN")] += 1

    return {sev: counts[sev] for sev in SEVERITY_LEVELS if counts[sev]}


def run_scan(
    runner: CommandRunner,
    engine: ContainerEngine,
    image: str,
    *,
    report_path: Path,
    scanner_image: str,
    fallback_output: Path,
) -> ScanOutcome:
    """
    Primary scan, then the containerised fallback. Never raises ScanError;
    failures are returned in `errors`.
    """
    errors: list[str] = []

    try:
        path = scan_primary(runner, image, report_path)
    except ScanError as e:
        log.warning("scan.primary_failed", error=str(e))
        errors.append(str(e))
    else:
        summary: dict[str, int] = {}
        try:
            summary = summarize_sarif(path)
        except ScanError as e:
            errors.append(str(e))
        return ScanOutcome(method="primary", report_path=path, summary=summary, errors=tuple(errors))

    try:
        out = scan_fallback(engine, image, scanner_image, fallback_output)
    except ScanError as e:
        log.error("scan.fallback_failed", error=str(e))
        errors.append(str(e))
        return ScanOutcome(method="none", errors=tuple(errors))

    return ScanOutcome(method="fallback", report_path=out, errors=tuple(errors))
