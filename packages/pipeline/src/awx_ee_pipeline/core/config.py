from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

LogFormat = Literal["json", "console"]
RuntimeName = Literal["podman", "docker"]

DEFAULT_IMAGE_TAG = "awx-ee:test"
DEFAULT_MANIFEST = Path("ee/execution-environment.yml")
DEFAULT_REPORT = Path("trivy-results.sarif")

# (distribution name, import name) probed inside the built image
DEFAULT_PYTHON_PACKAGES: tuple[tuple[str, str], ...] = (
    ("pyvmomi", "pyVim"),
    ("paramiko", "paramiko"),
    ("requests", "requests"),
    ("pyyaml", "yaml"),
    ("ansible", "ansible"),
)

DEFAULT_KEY_COLLECTIONS: tuple[str, ...] = (
    "awx.awx",
    "community.vmware",
    "vmware.vmware",
    "kubernetes.core",
    "amazon.aws",
)

SCAN_SEVERITIES: tuple[str, ...] = ("CRITICAL", "HIGH", "MEDIUM")
FALLBACK_SCAN_SEVERITIES: tuple[str, ...] = ("HIGH", "CRITICAL")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AWX_EE_",
        env_file=".env",
        extra="ignore",
    )

    manifest_path: Path = Field(default=DEFAULT_MANIFEST)
    runtime: RuntimeName = Field(default="podman")
    image_tag: str = Field(default=DEFAULT_IMAGE_TAG)

    registry: str = Field(default="ghcr.io")
    image_name: str = Field(default="awx-ee")
    registry_user: str | None = Field(default=None)
    registry_token: SecretStr | None = Field(default=None)
    default_branch: str = Field(default="main")

    report_path: Path = Field(default=DEFAULT_REPORT)
    scanner_image: str = Field(default="aquasec/trivy:latest")
    builder_verbosity: int = Field(default=3, ge=0, le=3)

    run_root: Path = Field(default=Path("_runs"))
    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()
