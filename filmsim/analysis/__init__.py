"""
Image analysis modules for FilmSim

Histograms, waveform monitor, vectorscope, block entropy and RGB scatter
derived from rendered buffers.
"""

from .histograms import HistogramSet, compute_histograms
from .scopes import (
    WaveformTable, VectorscopeField, ScatterSample, PlotPoints,
    compute_waveform, compute_waveforms, compute_vectorscope, sample_scatter,
)
from .entropy import EntropyMap, compute_entropy_map
from .engine import AnalysisEngine, AnalysisReport

__all__ = [
    "HistogramSet",
    "compute_histograms",
    "WaveformTable",
    "VectorscopeField",
    "ScatterSample",
    "PlotPoints",
    "compute_waveform",
    "compute_waveforms",
    "compute_vectorscope",
    "sample_scatter",
    "EntropyMap",
    "compute_entropy_map",
    "AnalysisEngine",
    "AnalysisReport",
]
