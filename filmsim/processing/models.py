"""
Data models for the FilmSim processing core.

Adjustment snapshots are immutable: every edit produces a new
AdjustmentParams, and the renderer never mutates the one it is given.
"""

from dataclasses import dataclass, field, asdict, replace as dc_replace
from typing import Any, Dict, Optional, Tuple, Union
from enum import Enum
import logging

import numpy as np

logger = logging.getLogger(__name__)

NEUTRAL_TEMPERATURE = 5500.0
IDENTITY_CURVE = ((0.0, 0.0), (1.0, 1.0))

# Aliases accepted by AdjustmentParams.from_dict for recipes exported
# by the web editor.
_FIELD_ALIASES = {
    'wbTemp': 'temperature',
    'wbTint': 'tint',
    'curvePoints': 'curve',
}


class RenderMode(Enum):
    """Why a render is being produced."""
    PREVIEW = "preview"       # Bounded resolution for interactive display
    EXPORT = "export"         # Full source resolution
    ANALYSIS = "analysis"     # Bounded resolution, post effects skipped


@dataclass(frozen=True)
class HSLShift:
    """Hue/saturation/luminance shift"""
    hue: float = 0.0          # degrees, wraps mod 360
    saturation: float = 0.0   # -100 to +100 percent
    luminance: float = 0.0    # -100 to +100 percent

    @property
    def is_neutral(self) -> bool:
        return self.hue % 360 == 0 and self.saturation == 0 and self.luminance == 0


@dataclass(frozen=True)
class GlobalHSL(HSLShift):
    """A single HSL shift applied to every pixel."""

    kind = "global"


@dataclass(frozen=True)
class BandHSL:
    """Separate HSL shifts for the red, green and blue hue bands."""
    red: HSLShift = field(default_factory=HSLShift)
    green: HSLShift = field(default_factory=HSLShift)
    blue: HSLShift = field(default_factory=HSLShift)

    kind = "band"

    @property
    def is_neutral(self) -> bool:
        return self.red.is_neutral and self.green.is_neutral and self.blue.is_neutral

    @property
    def bands(self) -> Tuple[HSLShift, HSLShift, HSLShift]:
        return (self.red, self.green, self.blue)


HSLAdjustment = Union[GlobalHSL, BandHSL]


@dataclass(frozen=True)
class GrainSettings:
    """Film grain parameters"""
    amount: float = 0.0  # 0-100
    size: float = 1.0    # Accepted for recipe compatibility, see DESIGN.md

    @property
    def is_active(self) -> bool:
        return self.amount > 0


@dataclass(frozen=True)
class VignetteSettings:
    """Radial vignette parameters"""
    amount: float = 0.0     # 0-100
    size: float = 0.5       # 0-1, radius of the untouched centre
    roundness: float = 0.5  # 0-1, falloff exponent control

    @property
    def is_active(self) -> bool:
        return self.amount > 0


@dataclass(frozen=True)
class SharpenSettings:
    """Unsharp mask parameters"""
    amount: float = 0.0  # 0-100
    radius: float = 1.0  # pixels

    @property
    def is_active(self) -> bool:
        return self.amount > 0 and self.radius > 0


@dataclass(frozen=True)
class AdjustmentParams:
    """
    Immutable snapshot of every adjustment applied by a render.

    The defaults are the neutral values: rendering with a default
    instance returns the source unchanged.
    """
    # Basic adjustments
    exposure: float = 0.0                    # stops
    contrast: float = 0.0                    # -100 to +100
    temperature: float = NEUTRAL_TEMPERATURE  # Kelvin, 2000-10000
    tint: float = 0.0                        # -100 to +100
    highlights: float = 0.0                  # -100 to +100
    shadows: float = 0.0                     # -100 to +100

    # Tone curve control points (x, y) in [0, 1]^2, any order
    curve: Tuple[Tuple[float, float], ...] = IDENTITY_CURVE

    hsl: HSLAdjustment = field(default_factory=GlobalHSL)
    grain: GrainSettings = field(default_factory=GrainSettings)
    vignette: VignetteSettings = field(default_factory=VignetteSettings)
    sharpen: SharpenSettings = field(default_factory=SharpenSettings)

    def __post_init__(self):
        points = tuple((float(x), float(y)) for x, y in self.curve)
        if len(points) < 2:
            raise ValueError("Tone curve needs at least 2 control points")
        object.__setattr__(self, 'curve', points)

    def replace(self, **changes) -> 'AdjustmentParams':
        """Return a copy with the given fields replaced."""
        return dc_replace(self, **changes)

    def merged(self, overrides: Optional[Dict[str, Any]]) -> 'AdjustmentParams':
        """
        Overlay a partial parameter mapping onto this snapshot.

        Nested grain/vignette/sharpen mappings are merged key by key;
        curve and hsl are replaced wholesale.

        Args:
            overrides: Partial mapping in the from_dict format

        Returns:
            New AdjustmentParams
        """
        if not overrides:
            return self

        data = self.to_dict()
        for key, value in _normalize_keys(overrides).items():
            if key in ('grain', 'vignette', 'sharpen') and isinstance(value, dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return AdjustmentParams.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain Python types (YAML/JSON friendly)."""
        if isinstance(self.hsl, BandHSL):
            hsl = {name: asdict(band) for name, band in
                   zip(('red', 'green', 'blue'), self.hsl.bands)}
        else:
            hsl = asdict(self.hsl)

        return {
            'exposure': self.exposure,
            'contrast': self.contrast,
            'temperature': self.temperature,
            'tint': self.tint,
            'highlights': self.highlights,
            'shadows': self.shadows,
            'curve': [list(point) for point in self.curve],
            'hsl': hsl,
            'grain': asdict(self.grain),
            'vignette': asdict(self.vignette),
            'sharpen': asdict(self.sharpen),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'AdjustmentParams':
        """
        Build a snapshot from a (possibly partial) mapping.

        Missing keys take their neutral defaults. Curve points may be
        given as [x, y] pairs or {'x': .., 'y': ..} mappings.
        """
        data = _normalize_keys(data or {})
        kwargs: Dict[str, Any] = {}

        for name in ('exposure', 'contrast', 'temperature', 'tint',
                     'highlights', 'shadows'):
            if name in data and data[name] is not None:
                kwargs[name] = float(data[name])

        if data.get('curve'):
            kwargs['curve'] = tuple(_parse_point(p) for p in data['curve'])

        if data.get('hsl'):
            kwargs['hsl'] = _parse_hsl(data['hsl'])

        if data.get('grain'):
            kwargs['grain'] = GrainSettings(**_floats(data['grain'], GrainSettings))
        if data.get('vignette'):
            kwargs['vignette'] = VignetteSettings(**_floats(data['vignette'], VignetteSettings))
        if data.get('sharpen'):
            kwargs['sharpen'] = SharpenSettings(**_floats(data['sharpen'], SharpenSettings))

        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            logger.debug(f"Ignoring unknown adjustment keys: {sorted(unknown)}")

        return cls(**kwargs)


def _normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {_FIELD_ALIASES.get(key, key): value for key, value in data.items()}


def _parse_point(point) -> Tuple[float, float]:
    if isinstance(point, dict):
        return float(point['x']), float(point['y'])
    x, y = point
    return float(x), float(y)


def _floats(values: Dict[str, Any], settings_cls) -> Dict[str, float]:
    allowed = settings_cls.__dataclass_fields__
    return {key: float(value) for key, value in values.items() if key in allowed}


def _parse_hsl(values: Dict[str, Any]) -> HSLAdjustment:
    if any(band in values for band in ('red', 'green', 'blue')):
        bands = {band: HSLShift(**_floats(values.get(band) or {}, HSLShift))
                 for band in ('red', 'green', 'blue')}
        return BandHSL(**bands)
    return GlobalHSL(**_floats(values, GlobalHSL))


@dataclass(eq=False)
class PixelBuffer:
    """
    Interleaved 8-bit image buffer.

    Wraps a (height, width, channels) uint8 array holding RGB or RGBA
    samples, rows top to bottom.
    """
    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError(
                f"Expected an (H, W, 3) or (H, W, 4) array, got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 samples, got {pixels.dtype}")
        self.pixels = pixels

    @classmethod
    def filled(cls, width: int, height: int, color: Tuple[int, ...]) -> 'PixelBuffer':
        """Create a buffer of uniform color (3 or 4 components)."""
        pixels = np.empty((height, width, len(color)), dtype=np.uint8)
        pixels[...] = np.asarray(color, dtype=np.uint8)
        return cls(pixels)

    @classmethod
    def from_bytes(cls, data: bytes, width: int, height: int,
                   channels: int = 4) -> 'PixelBuffer':
        """Wrap a row-major interleaved byte string."""
        expected = width * height * channels
        if len(data) != expected:
            raise ValueError(f"Expected {expected} bytes, got {len(data)}")
        pixels = np.frombuffer(data, dtype=np.uint8).reshape(height, width, channels)
        return cls(pixels.copy())

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def channels(self) -> int:
        return self.pixels.shape[2]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        return self.width, self.height

    @property
    def has_alpha(self) -> bool:
        return self.channels == 4

    @property
    def rgb(self) -> np.ndarray:
        """View of the color channels."""
        return self.pixels[..., :3]

    @property
    def alpha(self) -> Optional[np.ndarray]:
        return self.pixels[..., 3] if self.has_alpha else None

    def copy(self) -> 'PixelBuffer':
        return PixelBuffer(self.pixels.copy())

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def equals(self, other: 'PixelBuffer') -> bool:
        """Exact sample-by-sample equality."""
        return self.pixels.shape == other.pixels.shape and \
            bool(np.array_equal(self.pixels, other.pixels))
