from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from awx_ee_pipeline.containers import ContainerEngine
from awx_ee_pipeline.pipeline.types import PipelineOptions


@dataclass(frozen=True, slots=True)
class CheckResult:
    check_id: str
    title: str
    hard: bool
    passed: bool
    output: str = ""
    message: str = ""
    warnings: tuple[str, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def fails_run(self) -> bool:
        return self.hard and not self.passed

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["warnings"] = list(self.warnings)
        return d


CheckFn = Callable[[ContainerEngine, str, PipelineOptions], CheckResult]


@dataclass(frozen=True, slots=True)
class FunctionalCheck:
    """
    One smoke check in the battery. Soft checks (hard=False) only ever log.
    """

    check_id: str
    title: str
    hard: bool
    fn: CheckFn

    def run(self, engine: ContainerEngine, image: str, opts: PipelineOptions) -> CheckResult:
        return self.fn(engine, image, opts)


@dataclass(frozen=True, slots=True)
class FunctionalReport:
    image: str
    results: tuple[CheckResult, ...]

    @property
    def failed_checks(self) -> list[str]:
        return [r.check_id for r in self.results if r.fails_run]

    @property
    def passed(self) -> bool:
        return not self.failed_checks

    @property
    def warnings(self) -> list[str]:
        return [w for r in self.results for w in r.warnings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "image": self.image,
            "passed": self.passed,
            "failed_checks": self.failed_checks,
            "results": [r.to_dict() for r in self.results],
        }
