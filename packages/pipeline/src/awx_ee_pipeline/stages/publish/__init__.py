from .publisher import PublishOutput, publish_tags
from .stage import stage_publish, stage_verify_published
from .verify import verify_published

__all__ = [
    "PublishOutput",
    "publish_tags",
    "stage_publish",
    "stage_verify_published",
    "verify_published",
]
