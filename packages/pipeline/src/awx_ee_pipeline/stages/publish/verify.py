from __future__ import annotations

from awx_ee_pipeline.containers import ContainerEngine
from awx_ee_pipeline.core import ToolError


def verify_published(engine: ContainerEngine, ref: str) -> str:
    """Pull a pushed image back from the registry and return its `ansible --version` output."""
    res = engine.pull(ref)
    if not res.ok:
        raise ToolError(f"Pulling published image {ref} failed: {res.tail(5)}")

    res = engine.run(ref, ["ansible", "--version"])
    if not res.ok:
        raise ToolError(f"Published image {ref} cannot run ansible: {res.tail(5)}")
    return res.stdout
