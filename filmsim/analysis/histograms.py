"""
Histogram extraction for FilmSim

Per-channel and luminance histograms share one normalization group; hue,
saturation and value share another, so bars within a group are comparable.
"""

import logging
from dataclasses import dataclass
from typing import Dict

import numpy as np

from ..processing.color.color_math import rgb_to_hsv, LUMA_WEIGHTS

logger = logging.getLogger(__name__)

HUE_BINS = 360
SATURATION_BINS = 101
LEVEL_BINS = 256


def round_half_up(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer with halves going up."""
    return np.floor(values + 0.5).astype(np.int64)


def luma_levels(rgb: np.ndarray) -> np.ndarray:
    """Integer luminance 0-255 for a uint8 RGB array."""
    return np.clip(round_half_up(rgb.astype(np.float64) @ LUMA_WEIGHTS), 0, 255)


def hsv_bins(rgb: np.ndarray, wrap_hue: bool = False):
    """
    Quantize pixels into hue, saturation and value bins.

    Args:
        rgb: uint8 RGB array
        wrap_hue: Fold hues that round up to 360 back onto bin 0 instead
            of clamping them into bin 359

    Returns:
        (hue 0-359, saturation 0-100, value 0-255) integer index arrays
    """
    hsv = rgb_to_hsv(rgb.astype(np.float64) / 255.0)
    hue = round_half_up(hsv[..., 0])
    if wrap_hue:
        hue = hue % HUE_BINS
    else:
        hue = np.clip(hue, 0, HUE_BINS - 1)
    saturation = np.clip(round_half_up(hsv[..., 1] * 100.0), 0, SATURATION_BINS - 1)
    value = np.clip(round_half_up(hsv[..., 2] * 255.0), 0, LEVEL_BINS - 1)
    return hue, saturation, value


def normalize_group(*histograms: np.ndarray):
    """Divide every histogram by the largest bin across the group."""
    peak = max(float(h.max()) if h.size else 0.0 for h in histograms)
    if peak == 0:
        return tuple(h.astype(np.float64) for h in histograms)
    return tuple(h / peak for h in histograms)


@dataclass
class HistogramSet:
    """Normalized histograms of one rendered image."""
    red: np.ndarray          # 256 bins
    green: np.ndarray        # 256 bins
    blue: np.ndarray         # 256 bins
    luminance: np.ndarray    # 256 bins
    hue: np.ndarray          # 360 bins
    saturation: np.ndarray   # 101 bins
    value: np.ndarray        # 256 bins
    pixel_count: int = 0

    def as_dict(self) -> Dict[str, list]:
        return {
            'red': self.red.tolist(),
            'green': self.green.tolist(),
            'blue': self.blue.tolist(),
            'luminance': self.luminance.tolist(),
            'hue': self.hue.tolist(),
            'saturation': self.saturation.tolist(),
            'value': self.value.tolist(),
        }


def compute_histograms(pixels: np.ndarray) -> HistogramSet:
    """
    Compute all histograms of an 8-bit image.

    Args:
        pixels: uint8 array (H, W, 3|4); alpha is ignored

    Returns:
        HistogramSet; the largest bin of each group is exactly 1.0
    """
    rgb = pixels[..., :3].reshape(-1, 3)

    red = np.bincount(rgb[:, 0], minlength=LEVEL_BINS)
    green = np.bincount(rgb[:, 1], minlength=LEVEL_BINS)
    blue = np.bincount(rgb[:, 2], minlength=LEVEL_BINS)
    luminance = np.bincount(luma_levels(rgb), minlength=LEVEL_BINS)

    hue_idx, sat_idx, val_idx = hsv_bins(rgb)
    hue = np.bincount(hue_idx, minlength=HUE_BINS)
    saturation = np.bincount(sat_idx, minlength=SATURATION_BINS)
    value = np.bincount(val_idx, minlength=LEVEL_BINS)

    red, green, blue, luminance = normalize_group(red, green, blue, luminance)
    hue, saturation, value = normalize_group(hue, saturation, value)

    return HistogramSet(
        red=red, green=green, blue=blue, luminance=luminance,
        hue=hue, saturation=saturation, value=value,
        pixel_count=int(rgb.shape[0]),
    )
