"""
Tests for mask encoding helpers
"""

import io

from PIL import Image

from mask.mask_utils import (
    ENGINE_KEY,
    ENGINE_NAME,
    build_metrics_pnginfo,
    check_mask_content,
    encode_mask_png,
    read_mask_metrics,
)
from utils.raster_image import RasterImage

from conftest import make_rgba


def test_check_mask_content():
    empty = make_rgba(10, 10, alpha=0)
    assert not check_mask_content(empty)
    assert not check_mask_content(empty, threshold=0)

    sparse = empty.copy()
    sparse.pixels[0, :3, 3] = 255
    assert not check_mask_content(sparse)
    assert check_mask_content(sparse, threshold=1)


def test_metrics_round_trip():
    image = make_rgba(8, 8)
    metrics = {"symmetry": 0.91, "fallback_fields": []}

    png = encode_mask_png(image, metrics)

    assert read_mask_metrics(png) == metrics
    assert RasterImage.from_bytes(png) == image


def test_png_without_metrics():
    assert read_mask_metrics(encode_mask_png(make_rgba(4, 4))) is None


def test_unreadable_png_returns_none():
    assert read_mask_metrics(b"definitely not a png") is None


def test_pnginfo_carries_engine_name():
    info = build_metrics_pnginfo({"a": 1}, extra={"job": "42"})
    png = make_rgba(4, 4).to_png_bytes(pnginfo=info)
    with Image.open(io.BytesIO(png)) as img:
        assert img.text[ENGINE_KEY] == ENGINE_NAME
        assert img.text["job"] == "42"
