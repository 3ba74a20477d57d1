"""
FilmSim: non-destructive color grading engine

Renders parametric adjustments and film simulation LUTs onto raster images
for preview and export, and derives histograms, scopes and entropy maps
from the result.
"""

__version__ = "0.1.0"

# Core imports for easy access
from .config import load_config
from .processing import AdjustmentParams, PixelBuffer, Renderer, render
from .processing.color.lut import LUT3D, parse_cube, load_cube
from .analysis import AnalysisEngine
from .simulations import SimulationCatalog

__all__ = [
    "load_config",
    "AdjustmentParams",
    "PixelBuffer",
    "Renderer",
    "render",
    "LUT3D",
    "parse_cube",
    "load_cube",
    "AnalysisEngine",
    "SimulationCatalog",
]
