"""
Preview scheduler for interactive editing.

Every slider movement submits a new adjustment snapshot. For each image the
scheduler keeps at most one render and one analysis in flight; a snapshot
arriving while one is running waits in a single pending slot (replacing any
older pending snapshot) and asks the running job to stop. Results of stale
snapshots are never published.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

import numpy as np

from .models import PreviewConfig, SchedulerTask, TaskKind
from ..processing.errors import RenderCancelled
from ..processing.models import AdjustmentParams, PixelBuffer
from ..processing.pipeline import Renderer
from ..analysis.engine import AnalysisEngine

logger = logging.getLogger(__name__)

TaskCallback = Callable[[SchedulerTask], None]


class _Lane:
    """Bookkeeping for one kind of work."""

    def __init__(self, kind: TaskKind, work: Callable[[SchedulerTask], Any],
                 callback: Optional[TaskCallback]):
        self.kind = kind
        self.work = work
        self.callback = callback
        self.callback_lock = threading.Lock()
        self.generation = 0
        self.running: Optional[SchedulerTask] = None
        self.pending: Optional[SchedulerTask] = None
        self.latest: Optional[SchedulerTask] = None

    @property
    def is_idle(self) -> bool:
        return self.running is None and self.pending is None


class PreviewScheduler:
    """
    Last-snapshot-wins scheduling of renders and analyses for one image.

    The source buffer is shared read-only by every job; each render
    produces its own output buffer. Callbacks run on worker threads.
    """

    def __init__(self, source: PixelBuffer,
                 renderer: Optional[Renderer] = None,
                 analysis_engine: Optional[AnalysisEngine] = None,
                 config: Optional[PreviewConfig] = None,
                 on_render: Optional[TaskCallback] = None,
                 on_analysis: Optional[TaskCallback] = None):
        """
        Args:
            source: Image being edited
            renderer: Renderer shared with other components
            analysis_engine: Engine for analysis requests
            config: Preview configuration
            on_render: Called with each published render task
            on_analysis: Called with each published analysis task
        """
        self.source = source
        self.config = config or PreviewConfig()
        self._owns_renderer = renderer is None
        self.renderer = renderer or Renderer()
        self.analysis_engine = analysis_engine or AnalysisEngine(renderer=self.renderer)
        self._rng = np.random.default_rng(self.config.grain_seed)

        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._shutdown = False
        self._lanes: Dict[TaskKind, _Lane] = {
            TaskKind.RENDER: _Lane(TaskKind.RENDER, self._render, on_render),
            TaskKind.ANALYSIS: _Lane(TaskKind.ANALYSIS, self._analyze, on_analysis),
        }

        # One worker per lane
        self.executor = ThreadPoolExecutor(
            max_workers=len(self._lanes),
            thread_name_prefix=self.config.thread_name_prefix
        )

        self.stats = {
            'submitted': 0,
            'published': 0,
            'failed': 0,
            'cancelled': 0,
            'superseded': 0,
        }

    # Public API

    def submit_render(self, params: AdjustmentParams, lut=None) -> SchedulerTask:
        """Request a preview render of a snapshot."""
        return self._submit(TaskKind.RENDER, params, lut)

    def submit_analysis(self, params: AdjustmentParams, lut=None) -> SchedulerTask:
        """Request an analysis pass of a snapshot."""
        return self._submit(TaskKind.ANALYSIS, params, lut)

    @property
    def latest_render(self) -> Optional[SchedulerTask]:
        """Most recently published render task."""
        with self._lock:
            return self._lanes[TaskKind.RENDER].latest

    @property
    def latest_analysis(self) -> Optional[SchedulerTask]:
        """Most recently published analysis task."""
        with self._lock:
            return self._lanes[TaskKind.ANALYSIS].latest

    def in_flight(self, kind: TaskKind) -> Optional[SchedulerTask]:
        with self._lock:
            return self._lanes[kind].running

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no work is running or pending.

        Returns:
            False if the timeout expired first
        """
        with self._idle:
            return self._idle.wait_for(
                lambda: all(lane.is_idle for lane in self._lanes.values()),
                timeout=timeout)

    def shutdown(self, wait: bool = True):
        """Cancel outstanding work and stop the worker threads."""
        logger.info("Shutting down PreviewScheduler...")
        with self._lock:
            self._shutdown = True
            for lane in self._lanes.values():
                if lane.pending is not None:
                    self._retire(lane.pending)
                    lane.pending = None
                if lane.running is not None:
                    lane.running.cancel_event.set()
        self.executor.shutdown(wait=wait)
        if self._owns_renderer:
            self.renderer.shutdown()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    # Internals

    def _submit(self, kind: TaskKind, params: AdjustmentParams, lut) -> SchedulerTask:
        if self._shutdown:
            raise RuntimeError("PreviewScheduler is shutting down")

        task = SchedulerTask(kind=kind, params=params, lut=lut)
        with self._lock:
            lane = self._lanes[kind]
            lane.generation += 1
            task.generation = lane.generation
            self.stats['submitted'] += 1

            if lane.running is None:
                self._start(lane, task)
            else:
                if lane.pending is not None:
                    self._retire(lane.pending)
                lane.pending = task
                lane.running.cancel_event.set()
                logger.debug(f"{kind.value} generation {task.generation} pending, "
                             f"cancelling generation {lane.running.generation}")
        return task

    def _retire(self, task: SchedulerTask):
        """Mark a task that will never run or publish."""
        task.superseded = True
        task.cancel_event.set()
        task.completed_at = time.time()
        self.stats['superseded'] += 1

    def _start(self, lane: _Lane, task: SchedulerTask):
        lane.running = task
        self.executor.submit(self._run, lane, task)

    def _run(self, lane: _Lane, task: SchedulerTask):
        task.started_at = time.time()
        result = None
        cancelled = False
        try:
            result = lane.work(task)
        except RenderCancelled:
            cancelled = True
        except Exception as e:
            logger.error(f"{lane.kind.value} generation {task.generation} failed: {e}")
            task.error = e

        with self._lock:
            publish = not cancelled and task.generation == lane.generation
            if publish:
                task.result = result
                lane.latest = task
                self.stats['published'] += 1
                if task.is_failed:
                    self.stats['failed'] += 1
            elif cancelled:
                task.superseded = True
                self.stats['cancelled'] += 1
            else:
                # Finished, but a newer snapshot was submitted meanwhile
                task.superseded = True
                self.stats['superseded'] += 1
            task.completed_at = time.time()

            next_task, lane.pending = lane.pending, None
            lane.running = None
            if next_task is not None and not self._shutdown:
                self._start(lane, next_task)
            self._idle.notify_all()

        if publish:
            self._notify(lane, task)

    def _notify(self, lane: _Lane, task: SchedulerTask):
        """Hand a published task to the lane callback unless a newer one replaced it."""
        if lane.callback is None:
            return
        with lane.callback_lock:
            if lane.latest is not task:
                logger.debug(f"{lane.kind.value} generation {task.generation} "
                             f"replaced before callback")
                return
            try:
                lane.callback(task)
            except Exception as e:
                logger.error(f"{lane.kind.value} callback failed: {e}")

    def _render(self, task: SchedulerTask) -> PixelBuffer:
        return self.renderer.render(
            self.source, task.params, task.lut,
            target_size=self.config.preview_size,
            rng=self._rng,
            should_cancel=task.should_cancel,
        )

    def _analyze(self, task: SchedulerTask):
        return self.analysis_engine.analyze_render(
            self.source, task.params, task.lut,
            should_cancel=task.should_cancel,
        )
