"""
Color processing modules for FilmSim

Includes color-space math, white balance, HSL grading and 3D LUTs.
"""

from .white_balance import apply_white_balance, white_balance_multipliers
from .color_grading import apply_hsl, band_weights
from .lut import LUT3D, parse_cube, load_cube, write_cube

__all__ = [
    "apply_white_balance",
    "white_balance_multipliers",
    "apply_hsl",
    "band_weights",
    "LUT3D",
    "parse_cube",
    "load_cube",
    "write_cube",
]
