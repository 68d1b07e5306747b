"""Background maintenance jobs."""

from .retention import RetentionSweeper, SweepReport

__all__ = ["RetentionSweeper", "SweepReport"]
