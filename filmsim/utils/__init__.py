"""
Utility modules for FilmSim
"""

from .logging import StageTimer, setup_console_logging

__all__ = [
    "StageTimer",
    "setup_console_logging",
]
