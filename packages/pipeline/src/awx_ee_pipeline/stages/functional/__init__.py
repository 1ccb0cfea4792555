from .runner import raise_for_failures, run_functional_checks
from .stage import stage_functional
from .types import CheckResult, FunctionalCheck, FunctionalReport

__all__ = [
    "stage_functional",
    "run_functional_checks",
    "raise_for_failures",
    "CheckResult",
    "FunctionalCheck",
    "FunctionalReport",
]
