from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PLATFORM_PREFIX = "platform:"

BUILD_STEP_KEYS: tuple[str, ...] = (
    "prepend_base",
    "append_base",
    "prepend_galaxy",
    "append_galaxy",
    "prepend_builder",
    "append_builder",
    "prepend_final",
    "append_final",
)


class BaseImage(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, examples=["quay.io/centos/centos:stream9"])


class Images(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_image: BaseImage


class PythonInterpreter(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    package_system: Optional[str] = None
    python_path: Optional[str] = None


class PipPackage(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    package_pip: str = Field(..., min_length=1, examples=["ansible-core>=2.17,<2.20"])


class CollectionRequirement(BaseModel):
    """
    One entry of the galaxy `collections:` list.

    Keys other than the common ones are kept as extras so nothing is dropped
    on re-serialization.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = Field(..., min_length=1, examples=["community.vmware"])
    version: Optional[str] = None
    source: Optional[str] = None
    type: Optional[str] = None

    @field_validator("version", mode="before")
    @classmethod
    def _numeric_version(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class GalaxyRequirements(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    collections: tuple[CollectionRequirement, ...] = ()
    roles: tuple[dict[str, Any], ...] = ()
    file: Optional[str] = None


class SystemPackage(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)
    tags: tuple[str, ...] = ()

    @property
    def platforms(self) -> tuple[str, ...]:
        return tuple(
            t[len(PLATFORM_PREFIX):] for t in self.tags if t.startswith(PLATFORM_PREFIX)
        )

    @property
    def excluded_platforms(self) -> tuple[str, ...]:
        prefix = "!" + PLATFORM_PREFIX
        return tuple(t[len(prefix):] for t in self.tags if t.startswith(prefix))

    @property
    def profiles(self) -> tuple[str, ...]:
        return tuple(
            t for t in self.tags if not t.lstrip("!").startswith(PLATFORM_PREFIX)
        )


class SystemRequirements(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    packages: tuple[SystemPackage, ...] = ()
    file: Optional[str] = None

    def for_platform(self, platform: str) -> list[SystemPackage]:
        """Packages selected for `platform`; untagged entries apply everywhere."""
        return [
            p
            for p in self.packages
            if platform not in p.excluded_platforms
            and (not p.platforms or platform in p.platforms)
        ]


class PythonRequirements(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    requirements: tuple[str, ...] = ()
    file: Optional[str] = None

    @model_validator(mode="after")
    def _one_form(self) -> "PythonRequirements":
        if self.file is not None and self.requirements:
            raise ValueError("python dependencies are either a file or inline, not both")
        return self

    def resolve(self, base_dir: Path) -> list[str]:
        """
        Requirement lines, reading the referenced file when there is one.
        Blank lines and comments are dropped.
        """
        if self.file is None:
            lines: list[str] = list(self.requirements)
        else:
            path = Path(base_dir) / self.file
            if not path.is_file():
                return []
            lines = path.read_text(encoding="utf-8").splitlines()
        out: list[str] = []
        for line in lines:
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            # pip only treats whitespace-prefixed '#' as a comment (URL fragments stay)
            s = s.split(" #", 1)[0].split("\t#", 1)[0].strip()
            if s:
                out.append(s)
        return out


class Dependencies(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    python_interpreter: Optional[PythonInterpreter] = None
    ansible_core: Optional[PipPackage] = None
    ansible_runner: Optional[PipPackage] = None
    galaxy: Optional[GalaxyRequirements] = None
    system: Optional[SystemRequirements] = None
    python: Optional[PythonRequirements] = None


class AdditionalBuildSteps(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    prepend_base: tuple[str, ...] = ()
    append_base: tuple[str, ...] = ()
    prepend_galaxy: tuple[str, ...] = ()
    append_galaxy: tuple[str, ...] = ()
    prepend_builder: tuple[str, ...] = ()
    append_builder: tuple[str, ...] = ()
    prepend_final: tuple[str, ...] = ()
    append_final: tuple[str, ...] = ()


class Manifest(BaseModel):
    """
    An execution-environment definition (ansible-builder format, version 3).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: Literal[3] = 3
    images: Images
    dependencies: Dependencies = Field(default_factory=Dependencies)
    additional_build_steps: AdditionalBuildSteps = Field(
        default_factory=AdditionalBuildSteps
    )
    options: Optional[dict[str, Any]] = None
    build_arg_defaults: Optional[dict[str, Any]] = None

    @property
    def base_image(self) -> str:
        return self.images.base_image.name

    def collections(self) -> tuple[CollectionRequirement, ...]:
        galaxy = self.dependencies.galaxy
        return galaxy.collections if galaxy is not None else ()

    def system_packages(self) -> tuple[SystemPackage, ...]:
        system = self.dependencies.system
        return system.packages if system is not None else ()

    def python_requirements(self, base_dir: Path) -> list[str]:
        python = self.dependencies.python
        return python.resolve(base_dir) if python is not None else []
