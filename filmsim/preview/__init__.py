"""
Interactive preview scheduling for FilmSim

Keeps renders and analyses responsive during continuous edits by dropping
work for snapshots that have already been superseded.
"""

from .models import PreviewConfig, SchedulerTask, TaskKind
from .scheduler import PreviewScheduler

__all__ = [
    "PreviewConfig",
    "SchedulerTask",
    "TaskKind",
    "PreviewScheduler",
]
