from .stage import stage_validate

__all__ = ["stage_validate"]
