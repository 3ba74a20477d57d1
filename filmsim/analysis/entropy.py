"""
Block entropy map for FilmSim

Measures local texture: the image is cut into fixed-size blocks, each
block's grayscale Shannon entropy is computed, and the entropies are
summarized in a 100-bin histogram.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy import stats

from .histograms import round_half_up

logger = logging.getLogger(__name__)

ENTROPY_BINS = 100
DEFAULT_BLOCK_SIZE = 8


@dataclass
class EntropyMap:
    """Per-block entropies and their normalized distribution."""
    block_size: int
    entropies: np.ndarray   # (block_rows, block_cols), bits
    histogram: np.ndarray   # 100 bins, normalized by maximum

    @property
    def max_entropy(self) -> float:
        return float(self.entropies.max()) if self.entropies.size else 0.0

    @property
    def mean_entropy(self) -> float:
        return float(self.entropies.mean()) if self.entropies.size else 0.0


def grayscale_levels(pixels: np.ndarray) -> np.ndarray:
    """Unweighted channel mean, rounded to 0-255."""
    rgb = pixels[..., :3].astype(np.float64)
    return np.clip(round_half_up(rgb.sum(axis=-1) / 3.0), 0, 255)


def block_entropies(gray: np.ndarray, block_size: int) -> np.ndarray:
    """
    Shannon entropy (base 2) of every complete block.

    Partial blocks at the right and bottom edges are ignored.
    """
    rows = gray.shape[0] // block_size
    cols = gray.shape[1] // block_size
    if rows == 0 or cols == 0:
        return np.zeros((rows, cols), dtype=np.float64)

    cropped = gray[:rows * block_size, :cols * block_size]
    blocks = cropped.reshape(rows, block_size, cols, block_size).transpose(0, 2, 1, 3)
    blocks = blocks.reshape(rows * cols, block_size * block_size)

    offsets = np.arange(rows * cols)[:, None] * 256
    counts = np.bincount((blocks + offsets).reshape(-1), minlength=rows * cols * 256)
    counts = counts.reshape(rows * cols, 256)

    entropies = stats.entropy(counts, base=2, axis=1)
    return entropies.reshape(rows, cols)


def compute_entropy_map(pixels: np.ndarray, block_size: int = DEFAULT_BLOCK_SIZE) -> EntropyMap:
    """
    Build the entropy map of an 8-bit image.

    Args:
        pixels: uint8 array (H, W, 3|4)
        block_size: Block side in pixels

    Returns:
        EntropyMap; when every block has zero entropy they all land in bin 0
    """
    entropies = block_entropies(grayscale_levels(pixels), block_size)
    histogram = np.zeros(ENTROPY_BINS, dtype=np.float64)

    if entropies.size:
        peak = entropies.max()
        if peak > 0:
            idx = np.minimum(ENTROPY_BINS - 1, round_half_up(entropies / peak * (ENTROPY_BINS - 1)))
        else:
            idx = np.zeros(entropies.shape, dtype=np.int64)
        histogram = np.bincount(idx.reshape(-1), minlength=ENTROPY_BINS).astype(np.float64)
        histogram /= histogram.max()
    else:
        logger.debug(f"Image smaller than one {block_size}x{block_size} block, entropy map empty")

    return EntropyMap(block_size=block_size, entropies=entropies, histogram=histogram)
