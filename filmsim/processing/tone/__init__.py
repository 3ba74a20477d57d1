"""
Tonal adjustment modules for FilmSim
"""

from .tone_curve import ToneCurve, evaluate_curve
from .exposure import apply_exposure, apply_contrast, apply_highlights_shadows

__all__ = [
    "ToneCurve",
    "evaluate_curve",
    "apply_exposure",
    "apply_contrast",
    "apply_highlights_shadows",
]
