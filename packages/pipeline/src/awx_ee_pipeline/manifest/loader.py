from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from awx_ee_pipeline.core import atomic_write_text
from awx_ee_pipeline.core.errors import ConfigError
from pydantic import ValidationError

from .bindep import parse_bindep, render_bindep
from .models import (
    BUILD_STEP_KEYS,
    GalaxyRequirements,
    Manifest,
    PythonRequirements,
    SystemRequirements,
)
from .schema import validate_manifest_structure


_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"


class _ManifestDumper(yaml.SafeDumper):
    """Block scalars for embedded documents, indented sequences."""

    def increase_indent(self, flow: bool = False, indentless: bool = False):
        return super().increase_indent(flow, False)


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.Node:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_ManifestDumper.add_representer(str, _represent_str)


class _GalaxyLoader(yaml.SafeLoader):
    """Keeps numeric-looking scalars as the text written, so `version: 24.10` stays "24.10"."""


_GalaxyLoader.yaml_implicit_resolvers = {
    first: [(tag, rx) for tag, rx in resolvers if tag not in (_INT_TAG, _FLOAT_TAG)]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _is_file_ref(value: str) -> bool:
    """A file reference is a single plain token; anything else is inline content."""
    if "\n" in value:
        return False
    tokens = value.split()
    return len(tokens) == 1 and "[" not in tokens[0]


def _lines(value: str | list[str]) -> list[str]:
    items = value.splitlines() if isinstance(value, str) else list(value)
    return [str(s).strip() for s in items if str(s).strip()]


def _galaxy_from_raw(value: str | dict[str, Any]) -> GalaxyRequirements:
    if isinstance(value, str):
        try:
            doc = yaml.load(value, Loader=_GalaxyLoader)
        except yaml.YAMLError as e:
            raise ConfigError(f"dependencies.galaxy is not valid YAML: {e}") from e
    else:
        doc = value

    if doc is None:
        return GalaxyRequirements()
    if isinstance(doc, str):
        return GalaxyRequirements(file=doc.strip())
    if not isinstance(doc, dict):
        raise ConfigError(
            f"dependencies.galaxy must be a requirements mapping, got {type(doc).__name__}"
        )

    unknown = sorted(set(doc) - {"collections", "roles"})
    if unknown:
        raise ConfigError(f"dependencies.galaxy has unknown keys: {unknown}")

    def _entries(key: str) -> list[dict[str, Any]]:
        raw = doc.get(key) or []
        if not isinstance(raw, list):
            raise ConfigError(f"dependencies.galaxy.{key} must be a list")
        return [{"name": e} if isinstance(e, str) else e for e in raw]

    try:
        return GalaxyRequirements.model_validate(
            {"collections": _entries("collections"), "roles": _entries("roles")}
        )
    except ValidationError as e:
        raise ConfigError(_format_validation("dependencies.galaxy", e)) from e


def _system_from_raw(value: str | list[str]) -> SystemRequirements:
    if isinstance(value, str) and _is_file_ref(value):
        return SystemRequirements(file=value.strip())
    return SystemRequirements(packages=parse_bindep(value))


def _python_from_raw(value: str | list[str]) -> PythonRequirements:
    if isinstance(value, str) and _is_file_ref(value):
        return PythonRequirements(file=value.strip())
    return PythonRequirements(requirements=tuple(_lines(value)))


def _format_validation(prefix: str, err: ValidationError) -> str:
    lines = [f"{prefix} failed validation:"]
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        lines.append(f"- {loc}: {item.get('msg')}")
    return "\n".join(lines)


def parse_manifest(raw: Any) -> Manifest:
    """
    Build a Manifest from an already-parsed YAML mapping.

    Embedded sub-documents (galaxy requirements, bindep lines, pip lines) are
    decoded into structured models here.
    """
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Manifest root must be a mapping, got {type(raw).__name__}"
        )
    validate_manifest_structure(raw)

    data: dict[str, Any] = dict(raw)
    deps = dict(raw.get("dependencies") or {})
    if "galaxy" in deps:
        deps["galaxy"] = _galaxy_from_raw(deps["galaxy"])
    if "system" in deps:
        deps["system"] = _system_from_raw(deps["system"])
    if "python" in deps:
        deps["python"] = _python_from_raw(deps["python"])
    data["dependencies"] = deps

    steps = raw.get("additional_build_steps") or {}
    data["additional_build_steps"] = {k: _lines(v) for k, v in steps.items()}

    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_validation("Manifest", e)) from e


def read_manifest_mapping(path: Path) -> dict[str, Any]:
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Manifest not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Manifest is not valid YAML: {path}: {e}") from e
    if raw is None:
        raise ConfigError(f"Manifest is empty: {path}")
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Manifest root must be a mapping, got {type(raw).__name__}: {path}"
        )
    return raw


def load_manifest(path: Path) -> Manifest:
    return parse_manifest(read_manifest_mapping(path))


def _galaxy_to_raw(galaxy: GalaxyRequirements) -> str:
    if galaxy.file is not None:
        return galaxy.file
    doc: dict[str, Any] = {
        "collections": [c.model_dump(exclude_none=True) for c in galaxy.collections]
    }
    if galaxy.roles:
        doc["roles"] = [dict(r) for r in galaxy.roles]
    return yaml.dump(doc, Dumper=_ManifestDumper, sort_keys=False, explicit_start=True)


def manifest_to_dict(manifest: Manifest) -> dict[str, Any]:
    """
    Serialize back to the on-disk shape (embedded documents as strings).
    """
    out: dict[str, Any] = {
        "version": manifest.version,
        "images": {"base_image": {"name": manifest.images.base_image.name}},
    }

    d = manifest.dependencies
    deps: dict[str, Any] = {}
    if d.python_interpreter is not None:
        deps["python_interpreter"] = d.python_interpreter.model_dump(exclude_none=True)
    if d.ansible_core is not None:
        deps["ansible_core"] = {"package_pip": d.ansible_core.package_pip}
    if d.ansible_runner is not None:
        deps["ansible_runner"] = {"package_pip": d.ansible_runner.package_pip}
    if d.galaxy is not None:
        deps["galaxy"] = _galaxy_to_raw(d.galaxy)
    if d.system is not None:
        deps["system"] = (
            d.system.file if d.system.file is not None else render_bindep(d.system.packages)
        )
    if d.python is not None:
        deps["python"] = (
            d.python.file if d.python.file is not None else list(d.python.requirements)
        )
    if deps:
        out["dependencies"] = deps

    steps = {
        k: list(getattr(manifest.additional_build_steps, k))
        for k in BUILD_STEP_KEYS
        if getattr(manifest.additional_build_steps, k)
    }
    if steps:
        out["additional_build_steps"] = steps

    if manifest.options is not None:
        out["options"] = manifest.options
    if manifest.build_arg_defaults is not None:
        out["build_arg_defaults"] = manifest.build_arg_defaults
    return out


def dump_manifest(manifest: Manifest) -> str:
    return yaml.dump(
        manifest_to_dict(manifest),
        Dumper=_ManifestDumper,
        sort_keys=False,
        explicit_start=True,
        width=4096,
    )


def write_manifest(path: Path, manifest: Manifest) -> None:
    atomic_write_text(Path(path), dump_manifest(manifest))
