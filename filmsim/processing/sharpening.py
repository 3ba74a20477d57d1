"""
Unsharp mask sharpening for FilmSim.

Operates on 8-bit buffers: the blurred copy is rounded to whole byte values
before the mask is formed, and the output is rounded and clamped.
"""

import math
import logging

import numpy as np
from scipy import ndimage

logger = logging.getLogger(__name__)


def kernel_size(radius: float) -> int:
    """Odd kernel side for a blur radius: max(3, 2*ceil(2*radius) + 1)."""
    return max(3, 2 * math.ceil(radius * 2) + 1)


def gaussian_kernel(radius: float) -> np.ndarray:
    """
    Build a normalized square Gaussian kernel.

    Args:
        radius: Blur radius in pixels; sigma is radius / 2

    Returns:
        2D kernel whose weights sum to 1
    """
    size = kernel_size(radius)
    half = size // 2
    sigma = radius / 2.0

    offsets = np.arange(-half, half + 1, dtype=np.float64)
    xx, yy = np.meshgrid(offsets, offsets)
    kernel = np.exp(-(xx ** 2 + yy ** 2) / (2.0 * sigma ** 2))
    return kernel / kernel.sum()


def gaussian_blur(channel: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """
    Blur one channel.

    Samples outside the image contribute nothing to the weighted sum;
    the remaining weights are not renormalized.
    """
    return ndimage.correlate(channel.astype(np.float64), kernel,
                             mode='constant', cval=0.0)


def unsharp_mask(pixels: np.ndarray, amount: float, radius: float) -> np.ndarray:
    """
    Sharpen an 8-bit image.

    output = clamp(round(original + amount/100 * (original - blurred)))

    Args:
        pixels: uint8 array (H, W, 3) or (H, W, 4); never modified
        amount: Strength, 0-100
        radius: Blur radius in pixels

    Returns:
        New uint8 array; alpha is copied through unchanged
    """
    result = pixels.copy()
    if amount <= 0 or radius <= 0:
        return result

    kernel = gaussian_kernel(radius)
    strength = amount / 100.0
    logger.debug(f"Unsharp mask: amount={amount}, radius={radius}, kernel={kernel.shape[0]}")

    for c in range(3):
        original = pixels[..., c].astype(np.float64)
        blurred = np.floor(gaussian_blur(original, kernel) + 0.5)
        sharpened = np.floor(original + strength * (original - blurred) + 0.5)
        result[..., c] = np.clip(sharpened, 0, 255).astype(np.uint8)

    return result
