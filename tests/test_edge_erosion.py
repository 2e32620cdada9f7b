"""
Tests for safety erosion of rendered masks
"""

import numpy as np
import pytest

from mask.edge_erosion import (
    EdgeErosionProcessor,
    apply_safety_erosion,
    count_components,
    erosion_kernel_size,
    largest_enclosed_hole,
)
from utils.errors import ConfigError

from conftest import make_rgba


def square_mask(size=64, inner=(16, 48)):
    image = make_rgba(size, size, alpha=0)
    image.pixels[inner[0]:inner[1], inner[0]:inner[1], 3] = 255
    return image


@pytest.mark.parametrize("pixels,size", [(2.5, 6), (1, 3), (0.4, 2), (3, 7)])
def test_kernel_size(pixels, size):
    assert erosion_kernel_size(pixels) == size


def test_non_positive_erosion_raises():
    with pytest.raises(ConfigError):
        erosion_kernel_size(0)


def test_erosion_shrinks_mask():
    image = square_mask()

    report = EdgeErosionProcessor().apply(image)

    assert 0 < report.eroded_pixels < report.original_pixels == 32 * 32
    assert report.erosion_ratio == pytest.approx(report.eroded_pixels / report.original_pixels)
    assert report.topology_preserved
    assert report.image.alpha()[32, 32] == 255
    assert report.image.alpha()[16, 16] == 0
    assert image.alpha()[16, 16] == 255


def test_overaggressive_erosion_is_flagged():
    report = EdgeErosionProcessor({"erosion_pixels": 3, "iterations": 3}).apply(square_mask(inner=(24, 40)))
    assert not report.passed
    assert any("area" in w or "components" in w for w in report.warnings)


def test_hole_helpers():
    image = square_mask()
    image.pixels[30:33, 30:33, 3] = 0

    assert largest_enclosed_hole(image) == 9
    assert count_components(image.opaque_mask()) == 1


def test_circular_alias_and_per_call_config():
    processor = EdgeErosionProcessor({"kernel_shape": "circular"})
    report = processor.apply(square_mask(), {"smoothing_enabled": False, "hole_filling": {"enabled": False}})
    assert report.applied_config["kernel_shape"] == "circular"
    assert report.applied_config["hole_filling"]["max_hole_size"] == 25
    assert report.holes_filled == 0


def test_apply_safety_erosion_returns_image():
    eroded = apply_safety_erosion(square_mask(), erosion_pixels=1)
    assert eroded.opaque_pixel_count() < 32 * 32
    assert set(np.unique(eroded.alpha())) <= {0, 255}
