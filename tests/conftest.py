"""
Shared fixtures: synthetic screenshots built with numpy/Pillow
"""

import io

import numpy as np
import pytest
from PIL import Image

from screenlens.models.image_model import PixelBuffer


def encode_png(arr):
    """Encode an (h, w, 3|4) uint8 array as PNG bytes"""
    buf = io.BytesIO()
    Image.fromarray(np.asarray(arr, dtype=np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


def to_buffer(rgb):
    """Wrap an (h, w, 3) uint8 array as an opaque RGBA PixelBuffer"""
    h, w, _ = rgb.shape
    rgba = np.full((h, w, 4), 255, dtype=np.uint8)
    rgba[:, :, :3] = rgb
    return PixelBuffer(rgba)


def white(width, height):
    return np.full((height, width, 3), 255, dtype=np.uint8)


@pytest.fixture
def solid_rgb():
    return np.full((120, 160, 3), (40, 120, 200), dtype=np.uint8)


@pytest.fixture
def two_squares_rgb():
    """Two black 20x20 squares on white at (30, 40) and (140, 50)"""
    img = white(200, 100)
    img[40:60, 30:50] = 0
    img[50:70, 140:160] = 0
    return img


@pytest.fixture
def grid_rgb():
    """Dense grid of 1px lines every 20px (chart axes/gridlines)"""
    img = white(200, 200)
    img[10::20, :] = 0
    img[:, 10::20] = 0
    return img


@pytest.fixture
def noise_rgb():
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(200, 200, 3), dtype=np.uint8)
