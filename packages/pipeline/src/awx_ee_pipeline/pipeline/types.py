from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from awx_ee_pipeline.containers import ContainerRuntime
from awx_ee_pipeline.core.config import (
    DEFAULT_IMAGE_TAG,
    DEFAULT_KEY_COLLECTIONS,
    DEFAULT_MANIFEST,
    DEFAULT_PYTHON_PACKAGES,
    DEFAULT_REPORT,
)
from pydantic import SecretStr


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """
    A reference to an artifact produced by a stage.
    """

    path: str
    bytes: int
    sha256: str
    content_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Event:
    """
    Structured event emitted by the pipeline.
    """

    type: str
    ts_utc: str
    run_id: str
    stage: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)


# Trigger that started the run. Closed set; see stages.tagging.policy.


@dataclass(frozen=True, slots=True)
class Release:
    tag: str


@dataclass(frozen=True, slots=True)
class DefaultBranchPush:
    branch: str = "main"


@dataclass(frozen=True, slots=True)
class PullRequest:
    number: int


@dataclass(frozen=True, slots=True)
class Manual:
    ref: Optional[str] = None


EventContext = Union[Release, DefaultBranchPush, PullRequest, Manual]


@dataclass(frozen=True, slots=True)
class TagPlan:
    tags: tuple[str, ...]
    publish: bool

    def __post_init__(self) -> None:
        if self.publish and not self.tags:
            raise ValueError("TagPlan with publish=True needs at least one tag")


@dataclass(frozen=True, slots=True)
class BuildArtifact:
    """Handle to the image built in this run."""

    image_ref: str
    runtime: ContainerRuntime
    image_id: Optional[str] = None
    built_at_utc: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RegistryCredentials:
    username: str
    token: SecretStr


@dataclass(frozen=True, slots=True)
class PipelineOptions:
    """
    Everything a run needs from the outside world, resolved once at startup.
    """

    manifest_path: Path = DEFAULT_MANIFEST
    runtime: ContainerRuntime = ContainerRuntime.PODMAN
    image_tag: str = DEFAULT_IMAGE_TAG
    registry: str = "ghcr.io"
    image_name: str = "awx-ee"
    report_path: Path = DEFAULT_REPORT
    scanner_image: str = "aquasec/trivy:latest"
    builder_verbosity: int = 3
    event: EventContext = field(default_factory=Manual)
    credentials: Optional[RegistryCredentials] = None
    key_collections: tuple[str, ...] = DEFAULT_KEY_COLLECTIONS
    python_packages: tuple[tuple[str, str], ...] = DEFAULT_PYTHON_PACKAGES

    @property
    def context_dir(self) -> Path:
        return self.manifest_path.parent

    @property
    def repository(self) -> str:
        return f"{self.registry.rstrip('/')}/{self.image_name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "manifest_path": str(self.manifest_path),
            "runtime": self.runtime.value,
            "image_tag": self.image_tag,
            "repository": self.repository,
            "report_path": str(self.report_path),
            "event": type(self.event).__name__,
            "has_credentials": self.credentials is not None,
        }
