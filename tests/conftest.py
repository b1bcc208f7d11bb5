from io import BytesIO

import numpy as np
import pytest
from PIL import Image as PILImage


def make_plan_pixels(width, height, rect=None, background=0, foreground=255):
    """RGBA canvas filled with *background*, with an optional filled rectangle (x, y, w, h)."""
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :, :3] = background
    pixels[:, :, 3] = 255
    if rect is not None:
        x, y, w, h = rect
        pixels[y:y + h, x:x + w, :3] = foreground
    return pixels


def encode_png(pixels):
    buffer = BytesIO()
    PILImage.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_png(data):
    with PILImage.open(BytesIO(data)) as img:
        return np.asarray(img.convert("RGBA")).copy()


@pytest.fixture
def plan_pixels():
    """1000x800 black image with a centred 600x400 white rectangle."""
    return make_plan_pixels(1000, 800, rect=(200, 200, 600, 400))


@pytest.fixture
def plan_png(plan_pixels):
    return encode_png(plan_pixels)


@pytest.fixture
def small_plan_pixels():
    """300x240 black image with a 180x120 white rectangle at (60, 60)."""
    return make_plan_pixels(300, 240, rect=(60, 60, 180, 120))


@pytest.fixture
def small_plan_png(small_plan_pixels):
    return encode_png(small_plan_pixels)
