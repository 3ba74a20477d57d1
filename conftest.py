"""
Shared pytest fixtures for FilmSim.
"""

import pytest

from filmsim.processing import Renderer


@pytest.fixture
def inline_renderer():
    """Renderer that processes every band on the calling thread."""
    renderer = Renderer({'processing': {'max_worker_threads': 1}})
    yield renderer
    renderer.shutdown()
