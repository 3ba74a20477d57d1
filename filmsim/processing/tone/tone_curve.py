"""
Piecewise-linear tone curve for FilmSim
"""

import logging
from typing import Iterable, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

IDENTITY_TOLERANCE = 0.001


def evaluate_curve(points: Sequence[Tuple[float, float]], x) -> np.ndarray:
    """
    Evaluate a piecewise-linear curve.

    Args:
        points: Control points sorted ascending by x
        x: Normalized input, scalar or array; clamped to [0, 1]

    Returns:
        Curve output with the same shape as x. Inputs left of the first
        point or right of the last take that point's y. A control point's
        x maps exactly to its y.
    """
    xs = np.array([p[0] for p in points], dtype=np.float64)
    ys = np.array([p[1] for p in points], dtype=np.float64)
    v = np.clip(np.asarray(x, dtype=np.float64), 0.0, 1.0)

    # First segment [xs[k-1], xs[k]] with xs[k] >= v
    k = np.searchsorted(xs, v, side='left')
    inner = np.clip(k, 1, len(xs) - 1)
    x0, x1 = xs[inner - 1], xs[inner]
    y0, y1 = ys[inner - 1], ys[inner]

    span = x1 - x0
    t = np.where(span == 0, 0.0, (v - x0) / np.where(span == 0, 1.0, span))
    result = np.where(span == 0, y0, y0 + (y1 - y0) * t)

    # Exact hits and flat extrapolation
    result = np.where(xs[np.minimum(k, len(xs) - 1)] == v,
                      ys[np.minimum(k, len(xs) - 1)], result)
    result = np.where(k == 0, ys[0], result)
    result = np.where(k == len(xs), ys[-1], result)
    return result


class ToneCurve:
    """Control points sorted for evaluation."""

    def __init__(self, points: Iterable[Tuple[float, float]]):
        self.points = tuple(sorted(((float(x), float(y)) for x, y in points),
                                   key=lambda p: p[0]))
        if len(self.points) < 2:
            raise ValueError("A tone curve needs at least 2 control points")

    @property
    def is_identity(self) -> bool:
        """True for the two-point (0,0)-(1,1) curve."""
        if len(self.points) != 2:
            return False
        (x0, y0), (x1, y1) = self.points
        return all(abs(a - b) < IDENTITY_TOLERANCE
                   for a, b in ((x0, 0.0), (y0, 0.0), (x1, 1.0), (y1, 1.0)))

    def evaluate(self, x) -> np.ndarray:
        return evaluate_curve(self.points, x)

    def __call__(self, x) -> np.ndarray:
        return self.evaluate(x)

    def apply(self, rgb: np.ndarray) -> np.ndarray:
        """
        Apply the curve to each channel of a float array on the 0-255 scale.
        """
        return np.clip(self.evaluate(rgb / 255.0), 0.0, 1.0) * 255.0

    def __repr__(self) -> str:
        return f"ToneCurve({list(self.points)})"
