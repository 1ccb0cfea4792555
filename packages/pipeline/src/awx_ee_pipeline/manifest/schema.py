from __future__ import annotations

import json
from functools import lru_cache
from importlib.resources import files
from typing import Any, Final, Iterable

from awx_ee_pipeline.core.errors import ConfigError
from jsonschema import Draft202012Validator

PKG: Final[str] = "awx_ee_pipeline.manifest"
SCHEMA_REL: Final[str] = "schema/execution-environment.schema.json"


@lru_cache(maxsize=1)
def manifest_schema() -> dict[str, Any]:
    try:
        raw = files(PKG).joinpath(SCHEMA_REL).read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Missing packaged schema resource: {SCHEMA_REL}") from e
    return json.loads(raw)


@lru_cache(maxsize=1)
def validator() -> Draft202012Validator:
    return Draft202012Validator(manifest_schema())


def format_errors(errors: Iterable[Any]) -> str:
    lines: list[str] = []
    for e in errors:
        path = (
            ".".join(str(p) for p in e.path) if getattr(e, "path", None) else "<root>"
        )
        lines.append(f"- {path}: {e.message}")
    return "\n".join(lines)


def validate_manifest_structure(obj: dict[str, Any]) -> None:
    """
    Validate the raw (as-written) manifest mapping against the shipped schema.
    Raises ConfigError listing every violation.
    """
    errs = sorted(
        validator().iter_errors(obj), key=lambda e: [str(p) for p in e.path]
    )
    if errs:
        raise ConfigError("Manifest structure is invalid:\n" + format_errors(errs))
