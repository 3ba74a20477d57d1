"""
White balance stage for FilmSim

Compensates a color temperature against the 5500 K neutral reference and
applies a green/magenta tint bias.
"""

import numpy as np
import logging

from .color_math import temperature_to_rgb
from ..models import NEUTRAL_TEMPERATURE

logger = logging.getLogger(__name__)

# Per-unit tint bias; tint is a signed percent
TINT_GREEN_BIAS = 0.1
TINT_RED_BLUE_BIAS = 0.05


def white_balance_multipliers(temperature: float, tint: float = 0.0) -> np.ndarray:
    """
    Compute per-channel white balance multipliers.

    Args:
        temperature: Target color temperature in Kelvin
        tint: Tint in percent, positive shifts toward magenta

    Returns:
        Array [r, g, b] of multipliers; all ones for 5500 K and zero tint
    """
    neutral = temperature_to_rgb(NEUTRAL_TEMPERATURE)
    target = temperature_to_rgb(temperature)
    multipliers = neutral / target

    tint_factor = tint / 100.0
    multipliers[1] -= tint_factor * TINT_GREEN_BIAS
    multipliers[0] += tint_factor * TINT_RED_BLUE_BIAS
    multipliers[2] += tint_factor * TINT_RED_BLUE_BIAS

    return multipliers


def apply_white_balance(rgb: np.ndarray, temperature: float, tint: float = 0.0) -> np.ndarray:
    """
    Apply white balance to a float RGB array on the 0-255 scale.

    Each normalized channel is multiplied and clamped to [0, 1]
    before rescaling.
    """
    multipliers = white_balance_multipliers(temperature, tint)
    normalized = np.clip(rgb / 255.0 * multipliers, 0.0, 1.0)
    return normalized * 255.0


def is_neutral_white_balance(temperature: float, tint: float) -> bool:
    return temperature == NEUTRAL_TEMPERATURE and tint == 0
