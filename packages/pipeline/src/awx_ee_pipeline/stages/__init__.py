from .build import stage_build
from .functional import stage_functional
from .publish import stage_publish, stage_verify_published
from .scan import stage_scan
from .tagging import stage_tags
from .validate import stage_validate

__all__ = [
    "stage_validate",
    "stage_build",
    "stage_functional",
    "stage_scan",
    "stage_tags",
    "stage_publish",
    "stage_verify_published",
]
