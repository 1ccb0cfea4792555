from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from awx_ee_pipeline.containers import ContainerEngine
from awx_ee_pipeline.core import PublishError
from awx_ee_pipeline.pipeline.types import BuildArtifact, RegistryCredentials, TagPlan


@dataclass(frozen=True, slots=True)
class PublishOutput:
    registry: str
    pushed: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {"registry": self.registry, "pushed": list(self.pushed)}


def publish_tags(
    engine: ContainerEngine,
    artifact: BuildArtifact,
    plan: TagPlan,
    *,
    credentials: Optional[RegistryCredentials],
    registry: str,
    on_push: Callable[[str], None] | None = None,
) -> PublishOutput:
    """
    Log in, then tag and push each planned tag in order.

    The first failing tag aborts the rest; tags already pushed stay pushed.
    """
    if credentials is None:
        raise PublishError(f"No registry credentials for {registry}")

    login = engine.login(registry, username=credentials.username, password=credentials.token)
    if not login.ok:
        raise PublishError(f"Login to {registry} failed: {login.tail(5) or login.exit_code}")

    pushed: list[str] = []
    for tag in plan.tags:
        res = engine.tag(artifact.image_ref, tag)
        if not res.ok:
            raise PublishError(f"Tagging {artifact.image_ref} as {tag} failed: {res.tail(5)}", tag=tag)

        res = engine.push(tag)
        if not res.ok:
            raise PublishError(f"Push of {tag} failed: {res.tail(5)}", tag=tag)

        pushed.append(tag)
        if on_push is not None:
            on_push(tag)

    return PublishOutput(registry=registry, pushed=tuple(pushed))
