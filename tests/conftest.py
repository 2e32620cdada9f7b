"""
Shared synthetic fixtures for the refinement engine tests
"""

import numpy as np
import pytest

from garment.models import MaskPolygon
from utils.raster_image import RasterImage


def make_rgba(width, height, alpha=255, color=(255, 255, 255)):
    """Solid RGBA raster"""
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :, :3] = color
    pixels[:, :, 3] = alpha
    return RasterImage(pixels)


def rectangle(x0, y0, x1, y1):
    return [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]


@pytest.fixture
def blob_image():
    """40x40 mask with a transparent 4px border band and an irregular opaque blob"""
    rng = np.random.default_rng(7)
    alpha = np.zeros((40, 40), dtype=np.uint8)
    alpha[8:32, 6:34] = 255
    noise = rng.random((40, 40)) < 0.15
    alpha[noise] = 0
    alpha[:4, :] = 0
    alpha[-4:, :] = 0
    alpha[:, :4] = 0
    alpha[:, -4:] = 0
    return make_rgba(40, 40).with_alpha(alpha)


@pytest.fixture
def speck_image():
    """512x512 fully opaque mask with one 5x5 transparent speck at (100, 100)"""
    image = make_rgba(512, 512)
    image.pixels[100:105, 100:105, 3] = 0
    return image


@pytest.fixture
def box_garment():
    """Axis-aligned garment outline with points on the shoulder line"""
    return MaskPolygon("garment", [(100, 100), (300, 100), (300, 160), (300, 400), (100, 400), (100, 160)])


@pytest.fixture
def canvas_garment():
    """Garment covering most of the 512 canvas, in pixel coordinates"""
    return MaskPolygon("garment", rectangle(50, 50, 462, 462))
