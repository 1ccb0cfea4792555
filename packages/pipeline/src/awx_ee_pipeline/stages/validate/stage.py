from __future__ import annotations

from typing import Any

from awx_ee_pipeline.manifest import load_manifest
from awx_ee_pipeline.pipeline import RunContext
from awx_ee_pipeline.pipeline.events import EventType

from .checks import builder_version, introspect, lint_yaml


def stage_validate(ctx: RunContext) -> dict[str, Any]:
    opts = ctx.options
    log = ctx.stage_logger("validate")
    warnings: list[str] = []

    # Structure first; nothing else is worth running on a broken file.
    manifest = load_manifest(opts.manifest_path)
    ctx.manifest = manifest
    log.info("Manifest structure is valid", path=str(opts.manifest_path))

    lint = lint_yaml(ctx.runner, opts.manifest_path)
    if not lint.ran:
        warnings.append("yamllint not installed, skipping YAML lint")
    elif not lint.clean:
        warnings.append(f"YAML lint issues found ({len(lint.findings)}), continuing")
        for finding in lint.findings:
            log.debug("yamllint", finding=finding)

    version = builder_version(ctx.runner)
    ctx.emit(EventType.VALIDATE_TOOL, stage="validate", tool="ansible-builder", version=version)

    introspect(ctx.runner, opts.context_dir)
    log.info("Builder accepted the definition", context_dir=str(opts.context_dir))

    log.debug("Collections", names=[c.name for c in manifest.collections()])

    python_reqs = manifest.python_requirements(opts.context_dir)
    log.info("Python dependencies", count=len(python_reqs))
    for req in python_reqs:
        log.debug("python dependency", requirement=req)

    return {
        "manifest_path": str(opts.manifest_path),
        "base_image": manifest.base_image,
        "builder_version": version,
        "yamllint": "clean" if lint.clean else ("issues" if lint.ran else "skipped"),
        "_warnings": warnings,
        "_metrics": {
            "collections": len(manifest.collections()),
            "system_packages": len(manifest.system_packages()),
            "python_requirements": len(python_reqs),
        },
    }
