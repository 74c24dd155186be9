# tests/conftest.py

import pytest
from PIL import Image


class FakeClock:
    """Manually advanced millisecond clock"""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock(1000.0)


@pytest.fixture
def sample_images(tmp_path):
    """Create small test images"""
    images = []
    for i in range(3):
        img_path = tmp_path / f"test_image_{i}.png"
        Image.new('RGB', (32, 24), color=(i * 40, 100, 200)).save(img_path)
        images.append(str(img_path))
    return images
