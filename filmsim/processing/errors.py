"""
Exceptions raised by the FilmSim processing core.
"""


class GradingError(Exception):
    """Base exception for color grading operations."""
    pass


class FormatError(GradingError):
    """Raised when a lookup table file cannot be parsed."""
    pass


class DimensionError(GradingError):
    """Raised when a rendered buffer does not match its source dimensions."""
    pass


class RenderCancelled(GradingError):
    """Raised inside a render when a newer snapshot supersedes it.

    Not a failure: the scheduler drops the work silently.
    """
    pass
