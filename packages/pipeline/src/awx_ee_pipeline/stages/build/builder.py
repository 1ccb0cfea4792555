from __future__ import annotations

from awx_ee_pipeline.containers import ContainerEngine
from awx_ee_pipeline.core import BuildError, CommandRunner, utc_now_iso
from awx_ee_pipeline.pipeline.types import BuildArtifact, PipelineOptions

BUILDER = "ansible-builder"


def build_command(opts: PipelineOptions) -> list[str]:
    cmd = [BUILDER, "build"]
    if opts.builder_verbosity:
        cmd.append(f"-v{opts.builder_verbosity}")
    cmd += [
        "--container-runtime",
        opts.runtime.value,
        "-t",
        opts.image_tag,
        # every build starts from scratch
        "--no-cache",
        "-f",
        str(opts.manifest_path),
        "-c",
        str(opts.context_dir / "context"),
    ]
    return cmd


def build_image(
    runner: CommandRunner, engine: ContainerEngine, opts: PipelineOptions
) -> BuildArtifact:
    """
    Single attempt. Any failure is reported with the builder's own output.
    """
    if runner.which(BUILDER) is None:
        raise BuildError(f"{BUILDER} not found. Install it with: pip install {BUILDER}")

    res = runner.run(build_command(opts))
    if not res.ok:
        raise BuildError(
            f"{BUILDER} build failed (exit {res.exit_code}) for {opts.image_tag}:\n{res.tail()}"
        )

    image_id = engine.image_id(opts.image_tag)
    if image_id is None:
        raise BuildError(
            f"Build reported success but image {opts.image_tag} is not present in {engine.executable}"
        )

    return BuildArtifact(
        image_ref=opts.image_tag,
        runtime=opts.runtime,
        image_id=image_id,
        built_at_utc=utc_now_iso(),
    )
