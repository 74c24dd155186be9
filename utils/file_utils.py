"""
File operation utilities
"""

from pathlib import Path
from typing import List

from utils.image_utils import IMAGE_EXTENSIONS


def get_image_files(directory: str, recursive: bool = True) -> List[str]:
    """Get all image files in directory, sorted by path"""
    path = Path(directory)
    pattern = '**/*' if recursive else '*'

    image_files = [
        f for f in path.glob(pattern)
        if f.is_file() and f.suffix.lower() in IMAGE_EXTENSIONS
    ]

    return sorted(str(f) for f in image_files)
