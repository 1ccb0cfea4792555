from .scanner import ScanOutcome, run_scan, summarize_sarif
from .stage import stage_scan

__all__ = ["stage_scan", "run_scan", "summarize_sarif", "ScanOutcome"]
