"""
HSL color grading stage for FilmSim

Shifts hue, scales saturation and offsets lightness, either globally or
per red/green/blue hue band.
"""

import numpy as np
import logging

from .color_math import rgb_to_hsl, hsl_to_rgb
from ..models import BandHSL, HSLAdjustment

logger = logging.getLogger(__name__)

# Band centres in degrees: red, green, blue
BAND_CENTRES = (0.0, 120.0, 240.0)
BAND_WIDTH = 120.0


def band_weights(hue: np.ndarray) -> np.ndarray:
    """
    Membership of each hue in the red, green and blue bands.

    Triangular weights that fall to zero one band width from the centre;
    they sum to 1 for every hue.

    Args:
        hue: Array of hues in degrees

    Returns:
        Array (..., 3) of band weights
    """
    hue = np.mod(np.asarray(hue, dtype=np.float64), 360.0)
    weights = []
    for centre in BAND_CENTRES:
        distance = np.abs(hue - centre)
        distance = np.minimum(distance, 360.0 - distance)
        weights.append(np.clip(1.0 - distance / BAND_WIDTH, 0.0, 1.0))
    return np.stack(weights, axis=-1)


def _shift_fields(adjustment: HSLAdjustment, hsl: np.ndarray):
    """Per-pixel (hue offset, saturation percent, luminance percent)."""
    if isinstance(adjustment, BandHSL):
        weights = band_weights(hsl[..., 0])
        bands = adjustment.bands
        hue = sum(weights[..., i] * band.hue for i, band in enumerate(bands))
        sat = sum(weights[..., i] * band.saturation for i, band in enumerate(bands))
        # Achromatic pixels belong to no band
        lum = sum(weights[..., i] * band.luminance for i, band in enumerate(bands)) * hsl[..., 1]
        return hue, sat, lum

    return adjustment.hue, adjustment.saturation, adjustment.luminance


def apply_hsl(rgb: np.ndarray, adjustment: HSLAdjustment) -> np.ndarray:
    """
    Apply an HSL adjustment to a float RGB array on the 0-255 scale.

    The result is rounded to whole byte values, as the conversion back
    from HSL produces 8-bit components.

    Args:
        rgb: Array (..., 3), 0-255
        adjustment: GlobalHSL or BandHSL

    Returns:
        Adjusted array (..., 3), 0-255
    """
    hsl = rgb_to_hsl(np.clip(rgb, 0.0, 255.0) / 255.0)
    hue_shift, sat_shift, lum_shift = _shift_fields(adjustment, hsl)

    hue = np.mod(hsl[..., 0] + hue_shift, 360.0)
    sat = np.clip(hsl[..., 1] * (1.0 + np.asarray(sat_shift) / 100.0), 0.0, 1.0)
    lightness = np.clip(hsl[..., 2] + np.asarray(lum_shift) / 100.0, 0.0, 1.0)

    out = hsl_to_rgb(np.stack([hue, sat, lightness], axis=-1))
    return np.floor(out * 255.0 + 0.5)


def is_neutral_hsl(adjustment: HSLAdjustment) -> bool:
    return adjustment is None or adjustment.is_neutral

