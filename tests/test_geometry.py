"""
Tests for polygon geometry helpers
"""

import pytest

from utils.geometry import (
    bounds_overlap,
    centroid,
    expand_polygon,
    is_normalized,
    is_self_intersecting,
    polygon_area,
    polygon_bounds,
    scale_polygon,
    shoulder_band,
    translate_polygon,
)

from conftest import rectangle


def test_bounds_and_area():
    square = rectangle(10, 20, 30, 50)
    assert polygon_bounds(square) == (10, 20, 30, 50)
    assert polygon_area(square) == 600
    assert polygon_area(list(reversed(square))) == 600
    assert polygon_area([(0, 0), (1, 1)]) == 0.0
    assert centroid(square) == (20, 35)


def test_bounds_overlap_is_inclusive():
    assert bounds_overlap((0, 0, 10, 10), (10, 10, 20, 20))
    assert not bounds_overlap((0, 0, 10, 10), (10.5, 0, 20, 10))


def test_expand_scale_translate():
    square = rectangle(0, 0, 10, 10)
    expanded = expand_polygon(square, 2 ** 0.5)
    assert expanded[0] == pytest.approx((-1.0, -1.0))
    assert expand_polygon(square, 0) == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
    assert polygon_bounds(scale_polygon(square, 0.5)) == (2.5, 2.5, 7.5, 7.5)
    assert translate_polygon(square, 1, -1)[2] == (11, 9)


def test_self_intersection():
    assert is_self_intersecting([(0, 0), (10, 10), (10, 0), (0, 10)])
    assert not is_self_intersecting(rectangle(0, 0, 10, 10))
    assert not is_self_intersecting([(0, 0), (5, 0), (10, 0), (10, 10), (0, 10)])


def test_is_normalized():
    assert is_normalized([rectangle(0, 0, 1, 1)])
    assert not is_normalized([rectangle(0, 0, 1, 1), [(2, 0)]])
    assert not is_normalized([[], []])


def test_shoulder_band():
    points = [(0, 0), (10, 0), (10, 20), (10, 100), (0, 100), (0, 25)]
    assert shoulder_band(points) == [2, 5]
