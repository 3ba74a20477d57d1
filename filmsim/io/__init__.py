"""
File I/O for FilmSim: images and adjustment recipes
"""

from .image_io import load_image, save_image
from .recipes import Recipe

__all__ = [
    "load_image",
    "save_image",
    "Recipe",
]
