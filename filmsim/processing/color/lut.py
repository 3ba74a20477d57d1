"""
3D lookup tables for FilmSim

Parses Adobe/Resolve ".cube" text into a flat grid, detects identity
tables and samples them with trilinear interpolation.

Grid layout: N^3 RGB triples, red varying fastest, then green, then blue,
so node (r, g, b) lives at flat offset (b*N^2 + g*N + r) * 3.
"""

import re
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from ..errors import FormatError

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_TOLERANCE = 0.001

_SIZE_PATTERN = re.compile(r'^LUT_3D_SIZE\b\s*(.*)$')
_TITLE_PATTERN = re.compile(r'^TITLE\s+"?([^"]*)"?')
_DATA_START = set('0123456789.-+')


class LUT3D:
    """
    A cubic color lookup table.

    Values are stored as given by the file; sampling clamps its inputs
    and the pipeline clamps its outputs.
    """

    def __init__(self, size: int, data, title: Optional[str] = None):
        """
        Args:
            size: Grid side N
            data: Flat sequence of N^3 * 3 floats, R fastest
            title: Optional display title
        """
        if size < 2:
            raise FormatError(f"LUT size must be at least 2, got {size}")

        values = np.array(data, dtype=np.float64).reshape(-1)
        expected = size ** 3 * 3
        if values.size != expected:
            raise FormatError(
                f"LUT of size {size} needs {expected} values, got {values.size}")

        self.size = size
        self.data = values
        self.data.flags.writeable = False
        self.title = title
        self._identity_cache: Dict[float, bool] = {}

    @classmethod
    def identity(cls, size: int, title: Optional[str] = None) -> 'LUT3D':
        """Generate a table whose every node maps to its own coordinate."""
        b, g, r = np.indices((size, size, size), dtype=np.float64)
        grid = np.stack([r, g, b], axis=-1) / (size - 1)
        return cls(size, grid.reshape(-1), title=title)

    @property
    def grid(self) -> np.ndarray:
        """Read-only (N, N, N, 3) view indexed [b, g, r]."""
        n = self.size
        return self.data.reshape(n, n, n, 3)

    def node(self, r: int, g: int, b: int) -> np.ndarray:
        """Stored value of one grid node."""
        offset = (b * self.size * self.size + g * self.size + r) * 3
        return self.data[offset:offset + 3]

    def is_identity(self, tolerance: float = DEFAULT_IDENTITY_TOLERANCE) -> bool:
        """
        Check whether every node maps to its normalized coordinate.

        Args:
            tolerance: Maximum absolute deviation per component

        Returns:
            True if the table is a no-op within tolerance
        """
        if tolerance not in self._identity_cache:
            expected = LUT3D.identity(self.size).data
            deviation = np.abs(self.data - expected)
            self._identity_cache[tolerance] = bool(np.all(deviation <= tolerance))
        return self._identity_cache[tolerance]

    def to_grid_coordinates(self, values) -> np.ndarray:
        """
        Map normalized channel values to fractional grid coordinates.

        Inputs are clamped to [0, 1] and sampled at texel centres:
        scaled = v * (N-1)/N + 1/(2N), coordinate = scaled * (N-1).
        """
        n = self.size
        v = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)
        scaled = v * ((n - 1) / n) + 1.0 / (2 * n)
        return scaled * (n - 1)

    def interpolate(self, ri, gi, bi) -> np.ndarray:
        """
        Trilinear interpolation at fractional grid coordinates.

        Blends along red, then green, then blue. At integer coordinates the
        stored node value is returned exactly.

        Args:
            ri, gi, bi: Grid coordinates in [0, N-1], scalars or arrays

        Returns:
            Array (..., 3) of interpolated values
        """
        n = self.size
        grid = self.grid
        coords = []
        for axis in (ri, gi, bi):
            c = np.clip(np.asarray(axis, dtype=np.float64), 0.0, n - 1)
            i0 = np.floor(c).astype(np.intp)
            i1 = np.minimum(i0 + 1, n - 1)
            coords.append((i0, i1, (c - i0)[..., None]))

        (r0, r1, fr), (g0, g1, fg), (b0, b1, fb) = coords

        # Along red
        c00 = grid[b0, g0, r0] * (1 - fr) + grid[b0, g0, r1] * fr
        c10 = grid[b0, g1, r0] * (1 - fr) + grid[b0, g1, r1] * fr
        c01 = grid[b1, g0, r0] * (1 - fr) + grid[b1, g0, r1] * fr
        c11 = grid[b1, g1, r0] * (1 - fr) + grid[b1, g1, r1] * fr

        # Along green
        c0 = c00 * (1 - fg) + c10 * fg
        c1 = c01 * (1 - fg) + c11 * fg

        # Along blue
        return c0 * (1 - fb) + c1 * fb

    def sample(self, r, g, b) -> np.ndarray:
        """
        Look up normalized RGB values.

        Args:
            r, g, b: Channel values in [0, 1] (clamped), scalars or arrays

        Returns:
            Array (..., 3) of mapped values
        """
        return self.interpolate(self.to_grid_coordinates(r),
                                self.to_grid_coordinates(g),
                                self.to_grid_coordinates(b))

    def apply(self, rgb: np.ndarray) -> np.ndarray:
        """
        Map a float RGB array on the 0-255 scale through the table.

        Returns:
            Mapped array (..., 3), 0-255, clamped
        """
        normalized = np.asarray(rgb, dtype=np.float64) / 255.0
        mapped = self.sample(normalized[..., 0], normalized[..., 1], normalized[..., 2])
        return np.clip(mapped * 255.0, 0.0, 255.0)

    def __repr__(self) -> str:
        return f"LUT3D(size={self.size}, title={self.title!r})"


def parse_cube(text: str, title: Optional[str] = None) -> LUT3D:
    """
    Parse ".cube" text.

    A line "LUT_3D_SIZE N" declares the grid side. Lines starting with a
    number hold data triples; only the first three values are used.
    Comments, TITLE, DOMAIN_MIN/MAX and other keywords are skipped.
    Without a size declaration the side is inferred as the cube root of
    the triple count.

    Args:
        text: File contents
        title: Title to use when the text has no TITLE line

    Returns:
        Parsed LUT3D

    Raises:
        FormatError: On an invalid size, non-numeric data, a short data
            line, no data, or a triple count that does not match N^3
    """
    size: Optional[int] = None
    values = []

    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue

        size_match = _SIZE_PATTERN.match(line)
        if size_match:
            declared = size_match.group(1).split()
            try:
                size = int(declared[0])
            except (IndexError, ValueError):
                raise FormatError(f"Invalid LUT_3D_SIZE on line {line_number}: {line!r}")
            if size < 2:
                raise FormatError(f"LUT_3D_SIZE must be at least 2, got {size}")
            continue

        title_match = _TITLE_PATTERN.match(line)
        if title_match:
            title = title_match.group(1).strip() or title
            continue

        if line[0] not in _DATA_START:
            continue

        tokens = line.split()
        if len(tokens) < 3:
            raise FormatError(f"Expected 3 values on line {line_number}, got {len(tokens)}")
        try:
            values.extend(float(token) for token in tokens[:3])
        except ValueError:
            raise FormatError(f"Non-numeric value on line {line_number}: {line!r}")

    count = len(values) // 3
    if count == 0:
        raise FormatError("No LUT data found")

    if size is None:
        size = int(round(count ** (1.0 / 3.0)))
        if size ** 3 != count:
            raise FormatError(f"Cannot infer LUT size: {count} entries is not a perfect cube")
        logger.debug(f"Inferred LUT size {size} from {count} entries")
    elif count != size ** 3:
        raise FormatError(f"LUT size mismatch: expected {size ** 3} entries, got {count}")

    return LUT3D(size, values, title=title)


def load_cube(path: Union[str, Path]) -> LUT3D:
    """
    Load a ".cube" file.

    Raises:
        FormatError: If the file content is malformed
        OSError: If the file cannot be read
    """
    path = Path(path)
    text = path.read_text(encoding='utf-8', errors='replace')
    lut = parse_cube(text, title=path.stem)
    logger.debug(f"Loaded {lut} from {path}")
    return lut


def format_cube(lut: LUT3D) -> str:
    """Serialize a LUT3D to ".cube" text."""
    lines = []
    if lut.title:
        lines.append(f'TITLE "{lut.title}"')
    lines.append(f"LUT_3D_SIZE {lut.size}")
    lines.append("DOMAIN_MIN 0.0 0.0 0.0")
    lines.append("DOMAIN_MAX 1.0 1.0 1.0")
    for r, g, b in lut.data.reshape(-1, 3):
        lines.append(f"{r:.6f} {g:.6f} {b:.6f}")
    return "\n".join(lines) + "\n"


def write_cube(lut: LUT3D, path: Union[str, Path]) -> Path:
    """Write a LUT3D to disk and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_cube(lut), encoding='utf-8')
    logger.info(f"Wrote {lut.size}^3 LUT to {path}")
    return path
