from .events import event_from_args, event_from_github, event_from_github_env
from .policy import compute_tag_plan
from .stage import stage_tags

__all__ = [
    "compute_tag_plan",
    "event_from_args",
    "event_from_github",
    "event_from_github_env",
    "stage_tags",
]
