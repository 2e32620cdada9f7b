"""
# geometry.py - v1.1760100000
# Created: Tuesday, October 6, 2026
Polygon helpers shared by the preserve-zone guard, the symmetry analyzer and
the compositor. All functions take plain sequences of (x, y) pairs and never
modify their input.
"""

import math
from typing import List, Sequence, Tuple

Point = Tuple[float, float]
Bounds = Tuple[float, float, float, float]


def polygon_bounds(points: Sequence[Point]) -> Bounds:
    """
    Axis-aligned bounding box of a point list

    Returns:
        (min_x, min_y, max_x, max_y); all zeros for an empty list
    """
    if len(points) == 0:
        return 0.0, 0.0, 0.0, 0.0
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return min(xs), min(ys), max(xs), max(ys)


def bounds_overlap(a: Bounds, b: Bounds) -> bool:
    """Inclusive bounding-box overlap test (touching boxes overlap)"""
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]


def centroid(points: Sequence[Point]) -> Point:
    """Vertex centroid (mean of the points), (0, 0) for an empty list"""
    if len(points) == 0:
        return 0.0, 0.0
    sum_x = sum(p[0] for p in points)
    sum_y = sum(p[1] for p in points)
    return sum_x / len(points), sum_y / len(points)


def polygon_area(points: Sequence[Point]) -> float:
    """Shoelace area, 0 for fewer than three points"""
    if len(points) < 3:
        return 0.0
    area = 0.0
    for i in range(len(points)):
        j = (i + 1) % len(points)
        area += points[i][0] * points[j][1]
        area -= points[j][0] * points[i][1]
    return abs(area) / 2.0


def expand_polygon(points: Sequence[Point], buffer: float) -> List[Point]:
    """
    Push every point outward from the centroid by a fixed distance

    Points sitting exactly on the centroid are left where they are.
    """
    points = [(float(x), float(y)) for x, y in points]
    if not points or buffer == 0:
        return points

    cx, cy = centroid(points)
    expanded = []
    for x, y in points:
        dx = x - cx
        dy = y - cy
        length = math.hypot(dx, dy)
        if length == 0:
            expanded.append((x, y))
            continue
        expanded.append((x + dx / length * buffer, y + dy / length * buffer))
    return expanded


def scale_polygon(points: Sequence[Point], factor: float) -> List[Point]:
    """Scale points toward (factor < 1) or away from their own centroid"""
    if not points:
        return []
    cx, cy = centroid(points)
    return [(cx + (x - cx) * factor, cy + (y - cy) * factor) for x, y in points]


def translate_polygon(points: Sequence[Point], dx: float, dy: float) -> List[Point]:
    return [(x + dx, y + dy) for x, y in points]


def _segments_intersect(p1, p2, p3, p4) -> bool:
    def orient(a, b, c):
        value = (b[1] - a[1]) * (c[0] - b[0]) - (b[0] - a[0]) * (c[1] - b[1])
        if abs(value) < 1e-12:
            return 0
        return 1 if value > 0 else 2

    o1 = orient(p1, p2, p3)
    o2 = orient(p1, p2, p4)
    o3 = orient(p3, p4, p1)
    o4 = orient(p3, p4, p2)
    # Proper crossings only; collinear touching is not treated as self-intersection
    return o1 != o2 and o3 != o4 and 0 not in (o1, o2, o3, o4)


def is_self_intersecting(points: Sequence[Point]) -> bool:
    """
    Check whether any two non-adjacent edges of the closed polygon cross

    O(n^2) over the edges, which is fine for segmentation outlines of a few
    hundred points.
    """
    n = len(points)
    if n < 4:
        return False
    edges = [(points[i], points[(i + 1) % n]) for i in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            # Adjacent edges share a vertex
            if j == i + 1 or (i == 0 and j == n - 1):
                continue
            if _segments_intersect(edges[i][0], edges[i][1], edges[j][0], edges[j][1]):
                return True
    return False


def is_normalized(point_sets: Sequence[Sequence[Point]]) -> bool:
    """True when every coordinate of every point set lies in [0, 1]"""
    seen = False
    for points in point_sets:
        for x, y in points:
            seen = True
            if x < 0.0 or x > 1.0 or y < 0.0 or y > 1.0:
                return False
    return seen


def shoulder_band(points: Sequence[Point], line_fraction: float = 0.2,
                  band_fraction: float = 0.1) -> List[int]:
    """
    Indices of the points lying near the shoulder line of an outline

    The shoulder line sits line_fraction of the bounding-box height below the
    top; points within band_fraction of the height of it are in the band.
    """
    _, min_y, _, max_y = polygon_bounds(points)
    height = max_y - min_y
    line_y = min_y + height * line_fraction
    band = height * band_fraction
    return [i for i, (_, y) in enumerate(points) if abs(y - line_y) <= band]
