"""
Pytest fixtures for SnapStag tests
"""

import numpy as np
import pytest

from snapstag import Image, PixelFormat


def solid(width: int, height: int, color: tuple[int, ...], scale: float = 1.0) -> Image:
    """Create a solid image, RGB or RGBA depending on the color's length."""
    data = np.full((height, width, len(color)), color, dtype=np.uint8)
    return Image(data, scale=scale)


@pytest.fixture(name="solid")
def solid_fixture():
    """Factory for solid images."""
    return solid


@pytest.fixture
def black_image() -> Image:
    """Opaque black 10x10 image."""
    return solid(10, 10, (0, 0, 0))


@pytest.fixture
def white_image() -> Image:
    """Opaque white 10x10 image."""
    return solid(10, 10, (255, 255, 255))


@pytest.fixture
def clear_image() -> Image:
    """Fully transparent black 10x10 RGBA image."""
    return solid(10, 10, (0, 0, 0, 0))


@pytest.fixture
def noise_image() -> Image:
    """Deterministic 64x64 RGB noise, hard to compress losslessly as JPEG."""
    rng = np.random.default_rng(42)
    data = rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
    return Image(data, pixel_format=PixelFormat.RGB)


@pytest.fixture
def gradient_image() -> Image:
    """Horizontal RGB gradient 100x40."""
    data = np.zeros((40, 100, 3), dtype=np.uint8)
    for x in range(100):
        data[:, x] = [int(x * 2.55), 255 - int(x * 2.55), 128]
    return Image(data)
