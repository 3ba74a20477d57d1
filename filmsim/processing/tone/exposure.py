"""
Tonal stages for FilmSim: exposure, contrast and highlight/shadow recovery.

All functions take and return float RGB arrays on the 0-255 scale and
clamp their results, so out-of-range parameters never raise.
"""

import numpy as np
import logging

from ..color.color_math import luma, smoothstep

logger = logging.getLogger(__name__)

CONTRAST_PIVOT = 128.0

# Luminance ranges masked by the shadow and highlight sliders
SHADOW_RANGE = (0.2, 0.5)
HIGHLIGHT_RANGE = (0.5, 0.8)
TONE_STRENGTH = 0.5


def apply_exposure(rgb: np.ndarray, stops: float) -> np.ndarray:
    """Scale every channel by 2^stops."""
    return np.clip(rgb * (2.0 ** stops), 0.0, 255.0)


def apply_contrast(rgb: np.ndarray, contrast: float) -> np.ndarray:
    """Stretch around mid-gray: (v - 128) * (1 + contrast/100) + 128."""
    factor = 1.0 + contrast / 100.0
    return np.clip((rgb - CONTRAST_PIVOT) * factor + CONTRAST_PIVOT, 0.0, 255.0)


def tone_mask_delta(lum: np.ndarray, highlights: float, shadows: float) -> np.ndarray:
    """
    Luminance offset produced by the highlight and shadow sliders.

    Args:
        lum: Normalized luminance in [0, 1]
        highlights: Highlights slider, percent
        shadows: Shadows slider, percent

    Returns:
        Normalized offset to add to every channel
    """
    shadow_mask = 1.0 - smoothstep(SHADOW_RANGE[0], SHADOW_RANGE[1], lum)
    highlight_mask = smoothstep(HIGHLIGHT_RANGE[0], HIGHLIGHT_RANGE[1], lum)
    return (shadow_mask * (shadows / 100.0) * TONE_STRENGTH +
            highlight_mask * (highlights / 100.0) * TONE_STRENGTH)


def apply_highlights_shadows(rgb: np.ndarray, highlights: float, shadows: float) -> np.ndarray:
    """
    Lift or recover tones selected by a smoothstep luminance mask.

    The same offset is added to all three channels.
    """
    lum = luma(rgb) / 255.0
    delta = tone_mask_delta(lum, highlights, shadows)
    return np.clip(rgb + (delta * 255.0)[..., None], 0.0, 255.0)
