"""
Image file I/O for FilmSim

Thin adapters between image files and PixelBuffer. Decoding produces RGBA;
encoding writes PNG (with alpha) or JPEG (alpha dropped).
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

from ..processing.models import PixelBuffer

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    'png': 'PNG',
    'jpeg': 'JPEG',
    'jpg': 'JPEG',
}
DEFAULT_JPEG_QUALITY = 92


def load_image(path: Union[str, Path]) -> PixelBuffer:
    """
    Decode an image file into an RGBA buffer.

    Args:
        path: Any format Pillow can read

    Returns:
        PixelBuffer with 4 channels
    """
    path = Path(path)
    with Image.open(path) as img:
        rgba = img.convert('RGBA')
        pixels = np.array(rgba, dtype=np.uint8)
    logger.debug(f"Loaded {path.name}: {pixels.shape[1]}x{pixels.shape[0]}")
    return PixelBuffer(pixels)


def resolve_format(path: Path, image_format: Optional[str] = None) -> str:
    """Pick the Pillow format name from an explicit name or the file suffix."""
    key = (image_format or path.suffix.lstrip('.') or 'png').lower()
    if key not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {key}")
    return EXPORT_FORMATS[key]


def save_image(buffer: PixelBuffer, path: Union[str, Path],
               image_format: Optional[str] = None,
               quality: int = DEFAULT_JPEG_QUALITY) -> Path:
    """
    Encode a buffer to disk.

    Args:
        buffer: Rendered buffer
        path: Output file
        image_format: 'png' or 'jpeg'; inferred from the suffix when omitted
        quality: JPEG quality 1-100

    Returns:
        Path written
    """
    path = Path(path)
    pil_format = resolve_format(path, image_format)
    path.parent.mkdir(parents=True, exist_ok=True)

    img = Image.fromarray(np.ascontiguousarray(buffer.pixels))

    if pil_format == 'JPEG':
        img.convert('RGB').save(path, format='JPEG', quality=quality, optimize=True)
    else:
        img.save(path, format=pil_format)

    logger.info(f"Saved {buffer.width}x{buffer.height} {pil_format} to {path}")
    return path
