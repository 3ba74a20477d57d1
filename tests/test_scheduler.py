"""
Tests for the last-snapshot-wins preview scheduler.
"""

import threading

import pytest
import numpy as np

from filmsim.preview import PreviewScheduler, PreviewConfig, TaskKind
from filmsim.analysis import AnalysisEngine
from filmsim.analysis.engine import AnalysisReport
from filmsim.processing import AdjustmentParams, PixelBuffer, RenderCancelled


class GatedRenderer:
    """Renderer stand-in that blocks until released and records concurrency."""

    def __init__(self, honor_cancel=False, fail=False):
        self.started = threading.Event()
        self.release = threading.Event()
        self.honor_cancel = honor_cancel
        self.fail = fail
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def render(self, source, params, lut=None, target_size=None, rng=None,
               should_cancel=None):
        with self._lock:
            self.calls.append(params.exposure)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.started.set()
        try:
            self.release.wait(timeout=5)
            if self.fail:
                raise ValueError("bad snapshot")
            if self.honor_cancel and should_cancel is not None and should_cancel():
                raise RenderCancelled("cancelled")
            return PixelBuffer.filled(2, 2, (int(params.exposure * 10), 0, 0))
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def source():
    return PixelBuffer(np.random.default_rng(0).integers(0, 256, (20, 40, 3), dtype=np.uint8))


class Recorder:
    """Collects published tasks and signals each arrival."""

    def __init__(self):
        self.tasks = []
        self.arrived = threading.Event()

    def __call__(self, task):
        self.tasks.append(task)
        self.arrived.set()


def make_scheduler(source, renderer, inline_renderer, **kwargs):
    return PreviewScheduler(source, renderer=renderer,
                            analysis_engine=AnalysisEngine(renderer=inline_renderer),
                            **kwargs)


class TestLastSnapshotWins:
    """Test stale snapshots are never published."""

    def test_stale_result_dropped(self, source, inline_renderer):
        """Test only the newest snapshot is published while older ones are dropped."""
        fake = GatedRenderer()
        published = Recorder()
        scheduler = make_scheduler(source, fake, inline_renderer, on_render=published)
        try:
            first = scheduler.submit_render(AdjustmentParams(exposure=0.1))
            assert fake.started.wait(5)
            second = scheduler.submit_render(AdjustmentParams(exposure=0.2))
            third = scheduler.submit_render(AdjustmentParams(exposure=0.3))

            assert second.superseded
            assert first.cancel_event.is_set()
            assert scheduler.in_flight(TaskKind.RENDER) is first

            fake.release.set()
            assert scheduler.wait_idle(timeout=5)

            assert scheduler.latest_render is third
            assert published.arrived.wait(5)
            assert published.tasks == [third]
            assert first.superseded
            assert first.result is None
            assert fake.calls == [0.1, 0.3]
            assert fake.max_active == 1
            assert scheduler.stats['published'] == 1
            assert scheduler.stats['superseded'] == 2
        finally:
            scheduler.shutdown()

    def test_cancelled_render(self, source, inline_renderer):
        """Test a render that honors cancellation is counted as cancelled."""
        fake = GatedRenderer(honor_cancel=True)
        scheduler = make_scheduler(source, fake, inline_renderer)
        try:
            first = scheduler.submit_render(AdjustmentParams(exposure=0.5))
            assert fake.started.wait(5)
            second = scheduler.submit_render(AdjustmentParams(exposure=0.7))
            fake.release.set()
            assert scheduler.wait_idle(timeout=5)

            assert first.superseded
            assert not first.is_failed
            assert scheduler.stats['cancelled'] == 1
            assert scheduler.latest_render is second
            assert second.result.pixels[0, 0, 0] == 7
            assert second.duration is not None
        finally:
            scheduler.shutdown()

    def test_failure_published_as_error(self, source, inline_renderer):
        """Test a failing render publishes its typed error."""
        fake = GatedRenderer(fail=True)
        fake.release.set()
        published = Recorder()
        scheduler = make_scheduler(source, fake, inline_renderer, on_render=published)
        try:
            task = scheduler.submit_render(AdjustmentParams(exposure=1))
            assert scheduler.wait_idle(timeout=5)
            assert published.arrived.wait(5)
            assert published.tasks == [task]
            assert task.is_failed
            assert isinstance(task.error, ValueError)
            assert task.result is None
            assert scheduler.stats['failed'] == 1
        finally:
            scheduler.shutdown()

    def test_late_callback_for_replaced_result(self, source, inline_renderer):
        """Test a result replaced before its callback ran is not delivered afterwards."""
        fake = GatedRenderer()
        fake.release.set()
        published = Recorder()
        scheduler = make_scheduler(source, fake, inline_renderer, on_render=published)
        try:
            first = scheduler.submit_render(AdjustmentParams(exposure=0.1))
            assert published.arrived.wait(5)
            published.arrived.clear()
            second = scheduler.submit_render(AdjustmentParams(exposure=0.2))
            assert published.arrived.wait(5)
            assert published.tasks == [first, second]

            # Delivery of the older task arriving after the newer one
            scheduler._notify(scheduler._lanes[TaskKind.RENDER], first)
            assert published.tasks == [first, second]
            assert scheduler.latest_render is second
        finally:
            scheduler.shutdown()

    def test_submit_after_shutdown(self, source, inline_renderer):
        """Test the scheduler refuses work once shut down."""
        scheduler = make_scheduler(source, GatedRenderer(), inline_renderer)
        scheduler.shutdown()
        with pytest.raises(RuntimeError):
            scheduler.submit_render(AdjustmentParams())


class TestRealWork:
    """Test the scheduler with the real renderer and analysis engine."""

    def test_preview_render(self, source, inline_renderer):
        """Test previews are downsized to the configured box."""
        config = PreviewConfig(preview_size=(10, 10), grain_seed=3)
        with PreviewScheduler(source, renderer=inline_renderer, config=config) as scheduler:
            task = scheduler.submit_render(AdjustmentParams(exposure=0.5))
            assert scheduler.wait_idle(timeout=10)
            assert scheduler.latest_render is task
            assert task.result.size == (10, 5)
            assert task.is_completed

    def test_analysis(self, source, inline_renderer):
        """Test analysis requests publish a report."""
        done = threading.Event()
        with make_scheduler(source, inline_renderer, inline_renderer,
                            on_analysis=lambda task: done.set()) as scheduler:
            task = scheduler.submit_analysis(AdjustmentParams(contrast=20))
            assert done.wait(10)
            assert scheduler.wait_idle(timeout=10)
            assert isinstance(task.result, AnalysisReport)
            assert task.result.histograms.pixel_count == 800
            assert scheduler.latest_analysis is task

    def test_preview_config_from_dict(self):
        """Test preview settings are read from the configuration."""
        config = PreviewConfig.from_config({'preview': {'max_width': 640, 'max_height': 360,
                                                        'grain_seed': 11}})
        assert config.preview_size == (640, 360)
        assert config.grain_seed == 11
