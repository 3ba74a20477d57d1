"""
Render pipeline for FilmSim

One implementation of the adjustment chain shared by interactive preview,
export and analysis. Stage order:

1. White balance        5. Highlights/shadows
2. Exposure             6. HSL
3. Contrast             7. 3D LUT
4. Tone curve

followed by unsharp masking and, unless skipped, grain and vignette.
Stages whose parameters are neutral are skipped; skipping only saves
time, it never changes the output.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import cv2
import numpy as np

from .errors import DimensionError, RenderCancelled
from .models import AdjustmentParams, PixelBuffer, RenderMode
from .color.lut import LUT3D, DEFAULT_IDENTITY_TOLERANCE
from .color.white_balance import apply_white_balance, is_neutral_white_balance
from .color.color_grading import apply_hsl, is_neutral_hsl
from .tone.tone_curve import ToneCurve
from .tone.exposure import apply_exposure, apply_contrast, apply_highlights_shadows
from .sharpening import unsharp_mask
from .effects import apply_grain, apply_vignette
from ..utils.logging import StageTimer

logger = logging.getLogger(__name__)

PIXEL_STAGES = (
    'white_balance', 'exposure', 'contrast', 'tone_curve',
    'highlights_shadows', 'hsl', 'lut',
)
SPATIAL_STAGES = ('sharpen',)
POST_STAGES = ('grain', 'vignette')

DEFAULT_PREVIEW_SIZE = (1200, 800)
DEFAULT_ANALYSIS_SIZE = 800

CancelCheck = Callable[[], bool]


def lut_is_active(lut: Optional[LUT3D],
                  tolerance: float = DEFAULT_IDENTITY_TOLERANCE) -> bool:
    """A LUT is applied only if present and not an identity table."""
    return lut is not None and not lut.is_identity(tolerance)


def active_stages(params: AdjustmentParams, lut: Optional[LUT3D] = None,
                  skip_post_effects: bool = False,
                  lut_tolerance: float = DEFAULT_IDENTITY_TOLERANCE) -> List[str]:
    """
    List the stages a snapshot activates, in execution order.

    Args:
        params: Adjustment snapshot
        lut: Optional lookup table
        skip_post_effects: Leave out grain and vignette
        lut_tolerance: Identity tolerance for the LUT

    Returns:
        Stage names
    """
    checks = {
        'white_balance': not is_neutral_white_balance(params.temperature, params.tint),
        'exposure': params.exposure != 0,
        'contrast': params.contrast != 0,
        'tone_curve': not ToneCurve(params.curve).is_identity,
        'highlights_shadows': params.highlights != 0 or params.shadows != 0,
        'hsl': not is_neutral_hsl(params.hsl),
        'lut': lut_is_active(lut, lut_tolerance),
        'sharpen': params.sharpen.is_active,
        'grain': params.grain.is_active and not skip_post_effects,
        'vignette': params.vignette.is_active and not skip_post_effects,
    }
    order = PIXEL_STAGES + SPATIAL_STAGES + POST_STAGES
    return [name for name in order if checks[name]]


def apply_pixel_stages(rgb: np.ndarray, params: AdjustmentParams,
                       stages: List[str], lut: Optional[LUT3D] = None) -> np.ndarray:
    """
    Run the per-pixel stages on a float RGB array (0-255 scale).

    Args:
        rgb: Array (..., 3); not modified
        params: Adjustment snapshot
        stages: Active stage names from active_stages()
        lut: Lookup table, required when 'lut' is active

    Returns:
        Adjusted float array, not yet quantized
    """
    out = rgb
    if 'white_balance' in stages:
        out = apply_white_balance(out, params.temperature, params.tint)
    if 'exposure' in stages:
        out = apply_exposure(out, params.exposure)
    if 'contrast' in stages:
        out = apply_contrast(out, params.contrast)
    if 'tone_curve' in stages:
        out = ToneCurve(params.curve).apply(out)
    if 'highlights_shadows' in stages:
        out = apply_highlights_shadows(out, params.highlights, params.shadows)
    if 'hsl' in stages:
        out = apply_hsl(out, params.hsl)
    if 'lut' in stages:
        out = lut.apply(out)
    return out


def quantize(values: np.ndarray) -> np.ndarray:
    """Round half to even and clamp to bytes."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def fit_dimensions(width: int, height: int, max_width: int,
                   max_height: int) -> Tuple[int, int]:
    """
    Fit an image inside a bounding box, keeping its aspect ratio.

    Never upscales.

    Returns:
        (width, height)
    """
    aspect = width / height
    new_width = min(width, max_width)
    new_height = new_width / aspect
    if new_height > max_height:
        new_height = max_height
        new_width = new_height * aspect
    return max(1, int(round(new_width))), max(1, int(round(new_height)))


def resize_pixels(pixels: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Resize to (width, height) with area interpolation."""
    width, height = size
    if (pixels.shape[1], pixels.shape[0]) == (width, height):
        return pixels
    return cv2.resize(pixels, (width, height), interpolation=cv2.INTER_AREA)


def _as_buffer(source: Union[PixelBuffer, np.ndarray]) -> PixelBuffer:
    if isinstance(source, PixelBuffer):
        return source
    return PixelBuffer(np.asarray(source))


class Renderer:
    """
    Applies adjustment snapshots to pixel buffers.

    Per-pixel stages run over horizontal row bands on a thread pool; the
    convolution stage always reads the completed per-pixel result. The
    source buffer is never written to and every call returns a new buffer.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize renderer

        Args:
            config: Configuration dictionary (see filmsim.config)
        """
        config = config or {}
        processing = config.get('processing', {})
        preview = config.get('preview', {})
        analysis = config.get('analysis', {})
        simulations = config.get('simulations', {})

        self.max_workers = int(processing.get('max_worker_threads', 4))
        self.band_rows = max(1, int(processing.get('band_rows', 256)))
        self.preview_size = (int(preview.get('max_width', DEFAULT_PREVIEW_SIZE[0])),
                             int(preview.get('max_height', DEFAULT_PREVIEW_SIZE[1])))
        self.analysis_size = int(analysis.get('max_dimension', DEFAULT_ANALYSIS_SIZE))
        self.lut_tolerance = float(simulations.get('identity_tolerance',
                                                   DEFAULT_IDENTITY_TOLERANCE))

        self._executor = None
        if self.max_workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="FilmSim-Render"
            )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    def shutdown(self):
        """Release the band worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def target_size_for(self, mode: RenderMode) -> Optional[Tuple[int, int]]:
        """Bounding box used for a render mode; None means full resolution."""
        if mode == RenderMode.PREVIEW:
            return self.preview_size
        if mode == RenderMode.ANALYSIS:
            return (self.analysis_size, self.analysis_size)
        return None

    def render_for(self, mode: RenderMode, source, params: AdjustmentParams,
                   lut: Optional[LUT3D] = None,
                   rng: Optional[np.random.Generator] = None,
                   should_cancel: Optional[CancelCheck] = None) -> PixelBuffer:
        """Render with the resolution and effect set of a render mode."""
        return self.render(
            source, params, lut,
            target_size=self.target_size_for(mode),
            skip_post_effects=(mode == RenderMode.ANALYSIS),
            rng=rng,
            should_cancel=should_cancel,
        )

    def render(self, source, params: AdjustmentParams,
               lut: Optional[LUT3D] = None,
               target_size: Optional[Tuple[int, int]] = None,
               skip_post_effects: bool = False,
               rng: Optional[np.random.Generator] = None,
               should_cancel: Optional[CancelCheck] = None) -> PixelBuffer:
        """
        Render an adjustment snapshot.

        Args:
            source: PixelBuffer or uint8 array (H, W, 3|4); read only
            params: Adjustment snapshot
            lut: Optional lookup table; identity tables are ignored
            target_size: (max_width, max_height) box to downsize into first,
                or None for full resolution
            skip_post_effects: Leave out grain and vignette (analysis renders)
            rng: Random source for grain
            should_cancel: Polled between stages and bands; a True result
                aborts the render with RenderCancelled

        Returns:
            New PixelBuffer

        Raises:
            RenderCancelled: If should_cancel reported True
            DimensionError: If a stage changed the buffer dimensions
        """
        timer = StageTimer("render", logger)
        source = _as_buffer(source)

        def checkpoint():
            if should_cancel is not None and should_cancel():
                raise RenderCancelled("Render superseded by a newer snapshot")

        working = source.pixels
        if target_size is not None:
            with timer.stage('resize'):
                size = fit_dimensions(source.width, source.height, *target_size)
                working = resize_pixels(working, size)

        stages = active_stages(params, lut, skip_post_effects, self.lut_tolerance)
        logger.debug(f"Rendering {working.shape[1]}x{working.shape[0]} "
                     f"with stages: {stages or 'none'}")

        checkpoint()
        pixel_stages = [s for s in stages if s in PIXEL_STAGES]
        with timer.stage('adjustments'):
            if pixel_stages:
                result = self._run_pixel_stages(working, params, pixel_stages, lut, checkpoint)
            else:
                result = working.copy()

        if 'sharpen' in stages:
            checkpoint()
            with timer.stage('sharpen'):
                result = unsharp_mask(result, params.sharpen.amount, params.sharpen.radius)

        if 'grain' in stages:
            checkpoint()
            with timer.stage('grain'):
                result = apply_grain(result, params.grain, rng)

        if 'vignette' in stages:
            checkpoint()
            with timer.stage('vignette'):
                result = apply_vignette(result, params.vignette)

        if result.shape != working.shape:
            logger.error(f"Rendered shape {result.shape} does not match source {working.shape}")
            raise DimensionError(
                f"Rendered shape {result.shape} does not match source {working.shape}")

        timer.log_summary()
        return PixelBuffer(result)

    def _run_pixel_stages(self, pixels: np.ndarray, params: AdjustmentParams,
                          stages: List[str], lut: Optional[LUT3D],
                          checkpoint: Callable[[], None]) -> np.ndarray:
        """Process row bands independently and assemble the output."""
        result = pixels.copy()
        height = pixels.shape[0]
        bands = [(top, min(top + self.band_rows, height))
                 for top in range(0, height, self.band_rows)]

        def process_band(band):
            top, bottom = band
            checkpoint()
            rgb = pixels[top:bottom, :, :3].astype(np.float64)
            result[top:bottom, :, :3] = quantize(apply_pixel_stages(rgb, params, stages, lut))

        if self._executor is None or len(bands) == 1:
            for band in bands:
                process_band(band)
        else:
            # Consume the iterator so worker exceptions surface here
            list(self._executor.map(process_band, bands))

        return result


_inline_renderer = Renderer({'processing': {'max_worker_threads': 1}})


def render(source, params: Optional[AdjustmentParams] = None,
           lut: Optional[LUT3D] = None, **kwargs) -> PixelBuffer:
    """
    Render on the calling thread.

    Convenience wrapper around Renderer.render for scripts and tests.
    """
    return _inline_renderer.render(source, params or AdjustmentParams(), lut, **kwargs)
