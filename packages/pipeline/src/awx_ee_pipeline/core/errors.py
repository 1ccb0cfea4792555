from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from typing import Any, Sequence


class EEPipelineError(RuntimeError):
    """Base error"""

    @property
    def details(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True, slots=True)
class StageError:
    """
    A normalized error record for stage failures.
    """

    exc_type: str
    message: str
    traceback: str
    details: dict[str, Any] = field(default_factory=dict)


def stage_error_from_exc(exc: BaseException) -> StageError:
    details = exc.details if isinstance(exc, EEPipelineError) else {}
    return StageError(
        exc_type=type(exc).__name__,
        message=str(exc),
        traceback=traceback.format_exc(),
        details=dict(details),
    )


class ConfigError(EEPipelineError):
    """
    Malformed execution-environment manifest (missing file, bad YAML, wrong shape).
    Raised before any build is attempted.
    """


class ToolError(EEPipelineError):
    """An external tool is missing or rejected its input"""


class BuildError(EEPipelineError):
    """Image build failed. Never retried."""


class TestFailure(EEPipelineError):
    """
    One or more hard functional checks failed against the built image.
    """

    __test__ = False  # keep pytest from collecting this as a test class

    def __init__(
        self,
        failed_checks: Sequence[str],
        message: str | None = None,
        *,
        warnings: Sequence[str] = (),
    ) -> None:
        self.failed_checks: tuple[str, ...] = tuple(failed_checks)
        self.warnings: tuple[str, ...] = tuple(warnings)
        super().__init__(
            message or f"Functional checks failed: {', '.join(self.failed_checks)}"
        )

    @property
    def details(self) -> dict[str, Any]:
        d: dict[str, Any] = {"failed_checks": list(self.failed_checks)}
        if self.warnings:
            d["warnings"] = list(self.warnings)
        return d


class ScanError(EEPipelineError):
    """Scanner invocation failed. Logged by the scan stage, never fatal."""


class PublishError(EEPipelineError):
    """Registry login or push failed"""

    def __init__(self, message: str, *, tag: str | None = None) -> None:
        self.tag = tag
        super().__init__(message)

    @property
    def details(self) -> dict[str, Any]:
        return {"tag": self.tag} if self.tag is not None else {}
