"""
Scope data for FilmSim: waveform monitor, vectorscope and RGB scatter.

Each scope is computed wholesale from a rendered buffer and knows how to
turn itself into plot coordinates for a canvas of a given size.
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import numpy as np

from .histograms import luma_levels, hsv_bins, HUE_BINS, SATURATION_BINS, LEVEL_BINS

logger = logging.getLogger(__name__)

WAVEFORM_CHANNELS = ('luma', 'red', 'green', 'blue')
_CHANNEL_INDEX = {'red': 0, 'green': 1, 'blue': 2}

DEFAULT_SCATTER_BUDGET = 10000


@dataclass
class PlotPoints:
    """Canvas coordinates with per-point alpha and optional colors."""
    x: np.ndarray
    y: np.ndarray
    alpha: np.ndarray
    colors: Optional[np.ndarray] = None  # (N, 3) uint8

    def __len__(self) -> int:
        return int(self.x.size)


@dataclass
class WaveformTable:
    """Per-row 256-bin intensity distribution of one channel."""
    channel: str
    table: np.ndarray  # (rows, 256), normalized by its global maximum

    @property
    def rows(self) -> int:
        return self.table.shape[0]

    def to_points(self, width: float, height: float, threshold: float = 0.01,
                  max_rows: int = 400) -> PlotPoints:
        """
        Intensity-weighted scatter for a canvas of the given size.

        Rows are decimated to roughly max_rows; bins at or below threshold
        are omitted. Row maps to vertical position, bin to horizontal.
        """
        step = max(1, self.rows // max_rows)
        sampled_rows = np.arange(0, self.rows, step)
        sampled = self.table[sampled_rows]

        row_idx, bin_idx = np.nonzero(sampled > threshold)
        rows = sampled_rows[row_idx]
        return PlotPoints(
            x=bin_idx / (LEVEL_BINS - 1) * width,
            y=rows / self.rows * height,
            alpha=sampled[row_idx, bin_idx],
        )


def _channel_levels(rgb: np.ndarray, channel: str) -> np.ndarray:
    if channel == 'luma':
        return luma_levels(rgb)
    if channel not in _CHANNEL_INDEX:
        raise ValueError(f"Unknown waveform channel: {channel}")
    return rgb[..., _CHANNEL_INDEX[channel]].astype(np.int64)


def compute_waveform(pixels: np.ndarray, channel: str = 'luma') -> WaveformTable:
    """
    Build a waveform table.

    Args:
        pixels: uint8 array (H, W, 3|4)
        channel: 'luma', 'red', 'green' or 'blue'

    Returns:
        WaveformTable with one row per image row
    """
    height = pixels.shape[0]
    levels = _channel_levels(pixels[..., :3], channel)

    flat = (np.arange(height)[:, None] * LEVEL_BINS + levels).reshape(-1)
    table = np.bincount(flat, minlength=height * LEVEL_BINS).reshape(height, LEVEL_BINS)

    peak = table.max() if table.size else 0
    normalized = table / peak if peak > 0 else table.astype(np.float64)
    return WaveformTable(channel=channel, table=normalized)


def compute_waveforms(pixels: np.ndarray,
                      channels: Iterable[str] = WAVEFORM_CHANNELS) -> Dict[str, WaveformTable]:
    return {channel: compute_waveform(pixels, channel) for channel in channels}


@dataclass
class VectorscopeField:
    """Hue x saturation density (360 x 101), normalized by its maximum."""
    density: np.ndarray

    def to_points(self, radius: float) -> PlotPoints:
        """
        Polar plot coordinates relative to the scope centre.

        Hue 0 points straight up; distance grows with saturation.
        Alpha is the density boosted tenfold and capped at 1.
        """
        hue, sat = np.nonzero(self.density > 0)
        angle = hue / HUE_BINS * 2.0 * math.pi - math.pi / 2.0
        distance = sat / 100.0 * radius
        return PlotPoints(
            x=np.cos(angle) * distance,
            y=np.sin(angle) * distance,
            alpha=np.minimum(1.0, self.density[hue, sat] * 10.0),
        )


def compute_vectorscope(pixels: np.ndarray) -> VectorscopeField:
    """Accumulate (hue, saturation) pairs of every pixel."""
    rgb = pixels[..., :3].reshape(-1, 3)
    hue, sat, _ = hsv_bins(rgb, wrap_hue=True)

    counts = np.bincount(hue * SATURATION_BINS + sat,
                         minlength=HUE_BINS * SATURATION_BINS)
    counts = counts.reshape(HUE_BINS, SATURATION_BINS)

    peak = counts.max()
    density = counts / peak if peak > 0 else counts.astype(np.float64)
    return VectorscopeField(density=density)


@dataclass
class ScatterSample:
    """Evenly strided pixel colors for an R-G projection."""
    colors: np.ndarray  # (N, 3) uint8
    stride: int

    def __len__(self) -> int:
        return int(self.colors.shape[0])

    def to_points(self, width: float, height: float) -> PlotPoints:
        rgb = self.colors.astype(np.float64)
        return PlotPoints(
            x=rgb[:, 0] / 255.0 * width,
            y=rgb[:, 1] / 255.0 * height,
            alpha=np.ones(len(self)),
            colors=self.colors,
        )


def sample_scatter(pixels: np.ndarray, budget: int = DEFAULT_SCATTER_BUDGET) -> ScatterSample:
    """
    Take every n-th pixel so that at most `budget` points remain.

    Args:
        pixels: uint8 array (H, W, 3|4)
        budget: Maximum number of points

    Returns:
        ScatterSample
    """
    rgb = pixels[..., :3].reshape(-1, 3)
    stride = max(1, math.ceil(rgb.shape[0] / max(1, budget)))
    return ScatterSample(colors=rgb[::stride].copy(), stride=stride)
