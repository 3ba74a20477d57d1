"""
Data models for the FilmSim preview scheduler.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from enum import Enum
import threading
import time
import uuid

from ..processing.models import AdjustmentParams


class TaskKind(Enum):
    """Scheduler lanes; each runs at most one task at a time."""
    RENDER = "render"
    ANALYSIS = "analysis"


@dataclass
class PreviewConfig:
    """Configuration for interactive preview scheduling."""
    # (max_width, max_height); None renders at full resolution
    preview_size: Optional[Tuple[int, int]] = (1200, 800)
    grain_seed: Optional[int] = None             # None draws fresh grain per render
    thread_name_prefix: str = "FilmSim-Preview"

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'PreviewConfig':
        """Build from the 'preview' section of a configuration dictionary."""
        preview = (config or {}).get('preview', {})
        return cls(
            preview_size=(int(preview.get('max_width', 1200)),
                          int(preview.get('max_height', 800))),
            grain_seed=preview.get('grain_seed'),
        )


@dataclass
class SchedulerTask:
    """One render or analysis request and its outcome."""
    kind: TaskKind
    params: AdjustmentParams
    lut: Any = None  # LUT3D (kept loose to avoid a circular import)
    generation: int = 0
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    error: Optional[Exception] = None
    result: Any = None  # PixelBuffer or AnalysisReport
    superseded: bool = False
    cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def is_completed(self) -> bool:
        """Check if task is completed."""
        return self.completed_at is not None

    @property
    def is_failed(self) -> bool:
        """Check if task failed."""
        return self.error is not None

    @property
    def duration(self) -> Optional[float]:
        """Get task duration if completed."""
        if self.started_at and self.completed_at:
            return self.completed_at - self.started_at
        return None

    def should_cancel(self) -> bool:
        return self.cancel_event.is_set()
