"""
Post effects for FilmSim: film grain and vignette.

Both run on 8-bit buffers after sharpening and re-quantize their output.
Grain is the only stochastic stage; its random source is always passed in.
"""

import logging
from typing import Optional

import numpy as np

from .models import GrainSettings, VignetteSettings

logger = logging.getLogger(__name__)


def _quantize(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def apply_grain(pixels: np.ndarray, settings: GrainSettings,
                rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Add achromatic film grain.

    One sample per pixel is drawn uniformly from [-a, a] * 255 with
    a = amount / 100, and the same sample is added to R, G and B.

    Args:
        pixels: uint8 array (H, W, 3|4); never modified
        settings: Grain settings
        rng: Random source; a fresh unseeded generator when omitted

    Returns:
        New uint8 array with alpha copied through
    """
    result = pixels.copy()
    if not settings.is_active:
        return result

    if rng is None:
        rng = np.random.default_rng()

    strength = min(settings.amount, 100.0) / 100.0
    height, width = pixels.shape[:2]
    noise = rng.uniform(-1.0, 1.0, size=(height, width)) * strength * 255.0

    result[..., :3] = _quantize(pixels[..., :3].astype(np.float64) + noise[..., None])
    return result


def vignette_factor(dx, dy, settings: VignetteSettings) -> np.ndarray:
    """
    Brightness multiplier at a normalized offset from the image centre.

    Args:
        dx: Horizontal offset divided by image width
        dy: Vertical offset divided by image height
        settings: Vignette settings

    Returns:
        Factor in [1 - amount/100, 1]; exactly 1 at the centre
    """
    amount = float(np.clip(settings.amount, 0.0, 100.0)) / 100.0
    size = float(np.clip(settings.size, 0.0, 1.0))
    roundness = float(np.clip(settings.roundness, 0.0, 1.0))

    dist = np.hypot(np.asarray(dx, dtype=np.float64), np.asarray(dy, dtype=np.float64))
    radius = size * 0.5

    if radius > 0:
        norm_dist = dist / radius
    else:
        # Zero-size vignette darkens everything but the exact centre
        norm_dist = np.where(dist > 0, 1.0, 0.0)

    falloff = np.power(np.minimum(1.0, norm_dist), roundness * 2.0 + 0.5)
    return 1.0 - falloff * amount


def vignette_map(width: int, height: int, settings: VignetteSettings) -> np.ndarray:
    """Per-pixel vignette factors, shape (height, width)."""
    xs = (np.arange(width, dtype=np.float64) - width / 2.0) / width
    ys = (np.arange(height, dtype=np.float64) - height / 2.0) / height
    return vignette_factor(xs[None, :], ys[:, None], settings)


def apply_vignette(pixels: np.ndarray, settings: VignetteSettings) -> np.ndarray:
    """
    Darken toward the corners.

    Args:
        pixels: uint8 array (H, W, 3|4); never modified
        settings: Vignette settings

    Returns:
        New uint8 array with alpha copied through
    """
    result = pixels.copy()
    if not settings.is_active:
        return result

    height, width = pixels.shape[:2]
    factors = vignette_map(width, height, settings)
    result[..., :3] = _quantize(pixels[..., :3].astype(np.float64) * factors[..., None])
    return result
