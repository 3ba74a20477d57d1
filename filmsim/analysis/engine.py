"""
Analysis engine for FilmSim

Derives every visualization artifact from a rendered buffer in one pass.
Analysis renders go through the same Renderer as preview and export, at
a bounded resolution and without grain or vignette.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

import numpy as np

from ..processing.models import AdjustmentParams, PixelBuffer, RenderMode
from ..processing.pipeline import Renderer, fit_dimensions, resize_pixels
from ..processing.color.lut import LUT3D
from .histograms import HistogramSet, compute_histograms
from .scopes import (
    WaveformTable, VectorscopeField, ScatterSample, PlotPoints,
    compute_waveforms, compute_vectorscope, sample_scatter,
    WAVEFORM_CHANNELS, DEFAULT_SCATTER_BUDGET,
)
from .entropy import EntropyMap, compute_entropy_map, DEFAULT_BLOCK_SIZE

logger = logging.getLogger(__name__)

ALL_COMPONENTS = ('histograms', 'waveforms', 'vectorscope', 'entropy', 'scatter')


@dataclass
class AnalysisReport:
    """Artifacts of one analysis pass. Components not requested stay None."""
    width: int
    height: int
    histograms: Optional[HistogramSet] = None
    waveforms: Dict[str, WaveformTable] = field(default_factory=dict)
    vectorscope: Optional[VectorscopeField] = None
    entropy: Optional[EntropyMap] = None
    scatter: Optional[ScatterSample] = None
    elapsed: float = 0.0

    def summary(self) -> Dict[str, Any]:
        """Scalar digest suitable for logging or JSON output."""
        data: Dict[str, Any] = {
            'width': self.width,
            'height': self.height,
            'elapsed_ms': round(self.elapsed * 1000, 1),
        }
        if self.histograms is not None:
            levels = np.arange(256)
            lum = self.histograms.luminance
            data['mean_luminance'] = float((lum * levels).sum() / lum.sum()) if lum.sum() else 0.0
            data['peak_hue'] = int(np.argmax(self.histograms.hue))
        if self.entropy is not None:
            data['mean_entropy'] = round(self.entropy.mean_entropy, 4)
            data['max_entropy'] = round(self.entropy.max_entropy, 4)
        if self.scatter is not None:
            data['scatter_points'] = len(self.scatter)
        if self.waveforms:
            data['waveform_channels'] = sorted(self.waveforms)
        return data


class AnalysisEngine:
    """
    Computes histograms, waveforms, vectorscope, entropy map and scatter.

    Features:
    - Downscales to a bounded long edge before analysis
    - Optional subset of components per call
    - analyze_render() renders and analyzes through the shared pipeline
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 renderer: Optional[Renderer] = None):
        """
        Initialize analysis engine

        Args:
            config: Configuration dictionary
            renderer: Renderer to use for analyze_render; one is created
                from config when omitted
        """
        config = config or {}
        analysis = config.get('analysis', {})
        self.max_dimension = int(analysis.get('max_dimension', 800))
        self.block_size = int(analysis.get('entropy_block_size', DEFAULT_BLOCK_SIZE))
        self.scatter_budget = int(analysis.get('scatter_budget', DEFAULT_SCATTER_BUDGET))
        self.waveform_channels = tuple(analysis.get('waveform_channels', WAVEFORM_CHANNELS))
        self.waveform_max_rows = int(analysis.get('waveform_max_rows', 400))
        self.renderer = renderer or Renderer(config)

    def _downscale(self, pixels: np.ndarray) -> np.ndarray:
        height, width = pixels.shape[:2]
        if width <= self.max_dimension and height <= self.max_dimension:
            return pixels
        size = fit_dimensions(width, height, self.max_dimension, self.max_dimension)
        logger.debug(f"Downscaling {width}x{height} to {size[0]}x{size[1]} for analysis")
        return resize_pixels(pixels, size)

    def analyze(self, buffer, components: Optional[Iterable[str]] = None) -> AnalysisReport:
        """
        Analyze a rendered buffer.

        Args:
            buffer: PixelBuffer or uint8 array (H, W, 3|4)
            components: Subset of ALL_COMPONENTS; all when omitted

        Returns:
            AnalysisReport
        """
        start = time.perf_counter()
        pixels = buffer.pixels if isinstance(buffer, PixelBuffer) else np.asarray(buffer)
        pixels = self._downscale(pixels)

        wanted = set(components or ALL_COMPONENTS)
        unknown = wanted - set(ALL_COMPONENTS)
        if unknown:
            raise ValueError(f"Unknown analysis components: {sorted(unknown)}")

        report = AnalysisReport(width=pixels.shape[1], height=pixels.shape[0])
        if 'histograms' in wanted:
            report.histograms = compute_histograms(pixels)
        if 'waveforms' in wanted:
            report.waveforms = compute_waveforms(pixels, self.waveform_channels)
        if 'vectorscope' in wanted:
            report.vectorscope = compute_vectorscope(pixels)
        if 'entropy' in wanted:
            report.entropy = compute_entropy_map(pixels, self.block_size)
        if 'scatter' in wanted:
            report.scatter = sample_scatter(pixels, self.scatter_budget)

        report.elapsed = time.perf_counter() - start
        logger.debug(f"Analysis of {report.width}x{report.height} took "
                     f"{report.elapsed * 1000:.1f} ms")
        return report

    def waveform_points(self, waveform: WaveformTable, width: float, height: float,
                        threshold: float = 0.01) -> PlotPoints:
        """Plot coordinates of a waveform, decimated to the configured row count."""
        return waveform.to_points(width, height, threshold=threshold,
                                  max_rows=self.waveform_max_rows)

    def analyze_render(self, source, params: AdjustmentParams,
                       lut: Optional[LUT3D] = None,
                       components: Optional[Iterable[str]] = None,
                       should_cancel=None) -> AnalysisReport:
        """
        Render a snapshot at analysis resolution and analyze it.

        Grain and vignette are skipped; every other stage is identical to
        preview and export.
        """
        rendered = self.renderer.render_for(RenderMode.ANALYSIS, source, params, lut,
                                            should_cancel=should_cancel)
        return self.analyze(rendered, components)
