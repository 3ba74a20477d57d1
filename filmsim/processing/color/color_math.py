"""
Color math for FilmSim

Vectorized color-space conversions. Every function takes array-like input
whose last axis holds the three channels, so the same code serves a single
pixel and a whole image. RGB is normalized to [0, 1]; hue is in degrees.
"""

import numpy as np
import logging

logger = logging.getLogger(__name__)

# Rec. 601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

# Valid range of the Kelvin approximation used by temperature_to_rgb
MIN_TEMPERATURE = 2000.0
MAX_TEMPERATURE = 40000.0


def luma(rgb: np.ndarray) -> np.ndarray:
    """Weighted luminance of the last axis (same scale as the input)."""
    return np.asarray(rgb, dtype=np.float64) @ LUMA_WEIGHTS


def smoothstep(edge0: float, edge1: float, x: np.ndarray) -> np.ndarray:
    """Hermite step between edge0 and edge1."""
    t = np.clip((np.asarray(x, dtype=np.float64) - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def _hue_degrees(r, g, b, c_max, delta):
    """Hue shared by the HSL and HSV models."""
    safe = np.where(delta == 0, 1.0, delta)

    h = np.where(
        c_max == r,
        (g - b) / safe + np.where(g < b, 6.0, 0.0),
        np.where(c_max == g, (b - r) / safe + 2.0, (r - g) / safe + 4.0)
    )
    return np.where(delta == 0, 0.0, h * 60.0)


def rgb_to_hsl(rgb) -> np.ndarray:
    """
    Convert RGB to HSL.

    Args:
        rgb: Array (..., 3) in [0, 1]

    Returns:
        Array (..., 3) holding hue in [0, 360), saturation and lightness in [0, 1]
    """
    rgb = np.asarray(rgb, dtype=np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    c_max = np.maximum(np.maximum(r, g), b)
    c_min = np.minimum(np.minimum(r, g), b)
    delta = c_max - c_min
    lightness = (c_max + c_min) / 2.0

    denom = np.where(lightness > 0.5, 2.0 - c_max - c_min, c_max + c_min)
    saturation = np.where(delta == 0, 0.0, delta / np.where(denom == 0, 1.0, denom))

    hue = _hue_degrees(r, g, b, c_max, delta)
    return np.stack([hue, saturation, lightness], axis=-1)


def _hue_to_channel(p, q, t):
    t = np.where(t < 0, t + 1.0, t)
    t = np.where(t > 1, t - 1.0, t)
    return np.select(
        [t < 1.0 / 6.0, t < 0.5, t < 2.0 / 3.0],
        [p + (q - p) * 6.0 * t, q, p + (q - p) * (2.0 / 3.0 - t) * 6.0],
        default=p
    )


def hsl_to_rgb(hsl) -> np.ndarray:
    """
    Convert HSL back to RGB.

    Args:
        hsl: Array (..., 3) of hue degrees, saturation, lightness

    Returns:
        Array (..., 3) of RGB in [0, 1]
    """
    hsl = np.asarray(hsl, dtype=np.float64)
    h = np.mod(hsl[..., 0], 360.0) / 360.0
    s = hsl[..., 1]
    l = hsl[..., 2]

    q = np.where(l < 0.5, l * (1.0 + s), l + s - l * s)
    p = 2.0 * l - q

    r = _hue_to_channel(p, q, h + 1.0 / 3.0)
    g = _hue_to_channel(p, q, h)
    b = _hue_to_channel(p, q, h - 1.0 / 3.0)

    achromatic = s == 0
    rgb = np.stack([
        np.where(achromatic, l, r),
        np.where(achromatic, l, g),
        np.where(achromatic, l, b),
    ], axis=-1)
    return rgb


def rgb_to_hsv(rgb) -> np.ndarray:
    """
    Convert RGB to HSV.

    Returns:
        Array (..., 3) holding hue in [0, 360), saturation and value in [0, 1]
    """
    rgb = np.asarray(rgb, dtype=np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    c_max = np.maximum(np.maximum(r, g), b)
    c_min = np.minimum(np.minimum(r, g), b)
    delta = c_max - c_min

    saturation = np.where(c_max == 0, 0.0, delta / np.where(c_max == 0, 1.0, c_max))
    hue = _hue_degrees(r, g, b, c_max, delta)
    return np.stack([hue, saturation, c_max], axis=-1)


def hsv_to_rgb(hsv) -> np.ndarray:
    """Convert HSV (hue degrees, saturation, value) to RGB in [0, 1]."""
    hsv = np.asarray(hsv, dtype=np.float64)
    h = np.mod(hsv[..., 0], 360.0) / 60.0
    s = hsv[..., 1]
    v = hsv[..., 2]

    sector = np.floor(h).astype(np.int64) % 6
    f = h - np.floor(h)
    p = v * (1.0 - s)
    q = v * (1.0 - f * s)
    t = v * (1.0 - (1.0 - f) * s)

    conditions = [sector == i for i in range(6)]
    r = np.select(conditions, [v, q, p, p, t, v])
    g = np.select(conditions, [t, v, v, q, p, p])
    b = np.select(conditions, [p, p, t, v, v, q])
    return np.stack([r, g, b], axis=-1)


def srgb_to_linear(values) -> np.ndarray:
    """Decode sRGB transfer function, input and output in [0, 1]."""
    c = np.asarray(values, dtype=np.float64)
    return np.where(c <= 0.04045, c / 12.92, np.power((c + 0.055) / 1.055, 2.4))


def linear_to_srgb(values) -> np.ndarray:
    """Encode linear light with the sRGB transfer function."""
    c = np.clip(np.asarray(values, dtype=np.float64), 0.0, None)
    return np.where(c <= 0.0031308, c * 12.92, 1.055 * np.power(c, 1.0 / 2.4) - 0.055)


def temperature_to_rgb(kelvin: float) -> np.ndarray:
    """
    Approximate the normalized RGB color of a black body.

    Uses the Tanner Helland curve fit. The input is clamped to
    [MIN_TEMPERATURE, MAX_TEMPERATURE] so every channel stays positive.

    Args:
        kelvin: Color temperature in Kelvin

    Returns:
        Array [r, g, b] with each channel in [0, 1]
    """
    t = float(np.clip(kelvin, MIN_TEMPERATURE, MAX_TEMPERATURE)) / 100.0

    if t <= 66:
        r = 1.0
        g = (99.4708025861 * np.log(t) - 161.1195681661) / 255.0
        if t <= 19:
            b = 0.0
        else:
            b = (138.5177312231 * np.log(t - 10) - 305.0447927307) / 255.0
    else:
        r = 329.698727446 * np.power(t - 60, -0.1332047592) / 255.0
        g = 288.1221695283 * np.power(t - 60, -0.0755148492) / 255.0
        b = 1.0

    return np.clip(np.array([r, g, b], dtype=np.float64), 0.0, 1.0)
