"""
Image utility functions
"""

from pathlib import Path
from typing import Tuple
from urllib.parse import urlparse, unquote

from PIL import Image

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.gif', '.tiff', '.webp'}


def resolve_image_source(src: str) -> Path:
    """Turn a filesystem path or file:// URL into a Path"""
    parsed = urlparse(src)
    if parsed.scheme == 'file':
        return Path(unquote(parsed.path))
    # Windows drive letters parse as a one-letter scheme
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ValueError(f"Unsupported image source scheme: {parsed.scheme}")
    return Path(src)


def decode_image(src: str) -> Tuple[int, int]:
    """
    Fully decode an image and return its (width, height).

    Raises FileNotFoundError for missing files and PIL errors for
    undecodable data.
    """
    path = resolve_image_source(src)
    with Image.open(path) as img:
        img.load()
        return img.size
