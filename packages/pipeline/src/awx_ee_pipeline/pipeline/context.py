from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from awx_ee_pipeline.containers import ContainerEngine
from awx_ee_pipeline.core import CommandRunner, ILogger, sha256_file
from awx_ee_pipeline.manifest import Manifest

from .events import EventSink, EventType, make_event
from .types import ArtifactRef, BuildArtifact, PipelineOptions, TagPlan


@dataclass(slots=True)
class RunContext:
    """
    Context shared across stages for a single pipeline run.

    `options` is immutable and fixed at startup. The remaining slots are filled
    in by stages as the run progresses (manifest by validate, artifact by build,
    tag_plan by tags).
    """

    run_id: str
    run_root: Path
    options: PipelineOptions
    runner: CommandRunner
    logger: ILogger
    events: EventSink

    manifest: Optional[Manifest] = None
    artifact: Optional[BuildArtifact] = None
    tag_plan: Optional[TagPlan] = None

    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def engine(self) -> ContainerEngine:
        return ContainerEngine(runtime=self.options.runtime, runner=self.runner)

    def stage_logger(self, stage: str) -> ILogger:
        return self.logger.bind(stage=stage)

    def emit(self, event: EventType | str, *, stage: str | None = None, **kw: object) -> None:
        event_value = event.value if isinstance(event, EventType) else str(event)
        self.events.emit(
            make_event(event_type=event_value, run_id=self.run_id, stage=stage, **kw)
        )
        # Keep event chatter at debug level to leave console logs readable.
        self.logger.debug(event_value, event_type=event_value, stage=stage, **kw)

    def require_artifact(self) -> BuildArtifact:
        """
        The image under test. Falls back to the configured tag when the
        build stage did not run in this invocation (`test`, `scan`).
        """
        if self.artifact is None:
            self.artifact = BuildArtifact(
                image_ref=self.options.image_tag, runtime=self.options.runtime
            )
        return self.artifact

    def record_artifact(
        self,
        *,
        stage: str,
        path: Path,
        content_type: str | None = None,
    ) -> ArtifactRef:
        p = Path(path)
        digest = sha256_file(p)
        art = ArtifactRef(
            path=str(p), bytes=digest.bytes, sha256=digest.sha256, content_type=content_type
        )
        self.emit(
            EventType.ARTIFACT_WRITTEN,
            stage=stage,
            path=art.path,
            bytes=art.bytes,
            sha256=art.sha256,
            content_type=art.content_type,
        )
        return art
