"""
Pixel processing core for FilmSim

Adjustment models, the render pipeline and its stages.
"""

from .errors import GradingError, FormatError, DimensionError, RenderCancelled
from .models import (
    AdjustmentParams, PixelBuffer, RenderMode,
    GlobalHSL, BandHSL, HSLShift,
    GrainSettings, VignetteSettings, SharpenSettings,
)
from .pipeline import Renderer, render, active_stages

__all__ = [
    "GradingError",
    "FormatError",
    "DimensionError",
    "RenderCancelled",
    "AdjustmentParams",
    "PixelBuffer",
    "RenderMode",
    "GlobalHSL",
    "BandHSL",
    "HSLShift",
    "GrainSettings",
    "VignetteSettings",
    "SharpenSettings",
    "Renderer",
    "render",
    "active_stages",
]
