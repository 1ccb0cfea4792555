from .context import RunContext
from .events import EventSink, EventType
from .report import RunFailure, RunReport
from .runner import PipelineRunner, RunnerConfig
from .stage import FunctionStage, Stage, StageFn, StageResult, run_stage
from .types import (
    ArtifactRef,
    BuildArtifact,
    DefaultBranchPush,
    EventContext,
    Manual,
    PipelineOptions,
    PullRequest,
    RegistryCredentials,
    Release,
    TagPlan,
)

__all__ = [
    "RunContext",
    "EventSink",
    "EventType",
    "RunFailure",
    "RunReport",
    "PipelineRunner",
    "RunnerConfig",
    "FunctionStage",
    "Stage",
    "StageFn",
    "StageResult",
    "run_stage",
    "ArtifactRef",
    "BuildArtifact",
    "EventContext",
    "Release",
    "DefaultBranchPush",
    "PullRequest",
    "Manual",
    "PipelineOptions",
    "RegistryCredentials",
    "TagPlan",
]
