"""
# mask_analysis.py - v1.1760600000
# Updated: Sunday, October 11, 2026
# Changes in this version:
# - Replaced video keyframe analysis with garment mask quality analysis
# - Sobel edge analysis over the luminance of RGB rasters (cv2.Sobel, interior only)
# - Bilateral symmetry scoring from polygon halves and sleeve areas
# - Polygon metrics raise MetricComputationFailure; compute_quality_metrics
#   is the single place that substitutes neutral fallback values

Mask analysis utilities for the refinement engine.
Contains read-only analysis of rasters and polygons; nothing here modifies
its inputs.
"""

import math
import traceback
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from garment.models import (
    MaskPolygon,
    QualityMetrics,
    FALLBACK_SYMMETRY,
    FALLBACK_EDGE_ROUGHNESS_PX,
    FALLBACK_SHOULDER_WIDTH_RATIO,
    FALLBACK_NECK_INNER_RATIO,
)
from utils.errors import MetricComputationFailure
from utils.geometry import centroid, polygon_area, polygon_bounds, shoulder_band
from utils.raster_image import RasterImage

EDGE_THRESHOLD = 0.1
SYMMETRY_DISTANCE_SCALE = 50.0


@dataclass
class EdgeReport:
    edge_pixels: List[Tuple[int, int, float]] = field(default_factory=list)
    average_roughness: float = 0.0
    edge_intensity: float = 0.0
    smoothness_score: float = 1.0

    @property
    def edge_pixel_count(self) -> int:
        return len(self.edge_pixels)


def luminance(image: RasterImage) -> np.ndarray:
    """Mean of R, G and B as a float64 plane"""
    return image.rgb().astype(np.float64).sum(axis=2) / 3.0


def analyze_edges(image: RasterImage) -> EdgeReport:
    """
    Sobel edge analysis of an image

    Luminance is the mean of R/G/B. Gradient magnitude is computed for every
    interior pixel and normalized by 255; pixels above EDGE_THRESHOLD are
    edge pixels.

    Args:
        image: Input raster (read only)

    Returns:
        EdgeReport with edge pixels in raster order and summary scores
    """
    height, width = image.height, image.width
    if height < 3 or width < 3:
        return EdgeReport()

    gray = luminance(image)
    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)[1:-1, 1:-1]
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)[1:-1, 1:-1]

    strength = np.sqrt(gx * gx + gy * gy) / 255.0
    ys, xs = np.nonzero(strength > EDGE_THRESHOLD)
    values = strength[ys, xs]

    edge_pixels = [(int(x) + 1, int(y) + 1, float(s)) for y, x, s in zip(ys, xs, values)]
    average_roughness = float(values.mean()) if len(values) else 0.0
    edge_intensity = len(edge_pixels) / float(width * height)

    return EdgeReport(
        edge_pixels=edge_pixels,
        average_roughness=average_roughness,
        edge_intensity=edge_intensity,
        smoothness_score=max(0.0, 1.0 - average_roughness),
    )


class EdgeAnalyzer:
    """Gradient-based edge detection with optional progress output"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def analyze_edges(self, image: RasterImage) -> EdgeReport:
        report = analyze_edges(image)
        if self.verbose:
            print(f"Edge analysis completed: {report.edge_pixel_count} edge pixels")
            print(f"  Average roughness: {report.average_roughness:.3f}")
            print(f"  Edge intensity: {report.edge_intensity:.3f}")
            print(f"  Smoothness score: {report.smoothness_score:.3f}")
        return report


def _area_ratio(area_a: float, area_b: float) -> float:
    larger = max(area_a, area_b)
    if larger == 0:
        return 1.0
    return min(area_a, area_b) / larger


def bilateral_symmetry(garment: MaskPolygon, left_sleeve: Optional[MaskPolygon] = None,
                       right_sleeve: Optional[MaskPolygon] = None) -> float:
    """
    Left/right symmetry score of a garment outline

    The boundary points are split at the horizontal center of the bounding
    box (points on the line go to both halves) and the right half is mirrored
    onto the left. The score combines centroid displacement
    (max(0, 1 - d / 50)), the shoelace area ratio of the halves and, when both
    sleeves are given, their area ratio, weighted 0.4 / 0.4 / 0.2. The result
    is clamped to [0.5, 1.0].

    Args:
        garment: Garment outline polygon
        left_sleeve: Optional left sleeve polygon
        right_sleeve: Optional right sleeve polygon

    Returns:
        Symmetry score in [0.5, 1.0]

    Raises:
        MetricComputationFailure: If the garment polygon has no points
    """
    points = garment.points
    if not points:
        raise MetricComputationFailure("Garment polygon has no points")

    min_x, _, max_x, _ = polygon_bounds(points)
    center_x = (min_x + max_x) / 2.0

    left_half = [p for p in points if p[0] <= center_x]
    right_half = [p for p in points if p[0] >= center_x]
    mirrored_right = [(2.0 * center_x - x, y) for x, y in right_half]

    left_cx, left_cy = centroid(left_half)
    right_cx, right_cy = centroid(mirrored_right)
    distance = math.hypot(left_cx - right_cx, left_cy - right_cy)
    position_score = max(0.0, 1.0 - distance / SYMMETRY_DISTANCE_SCALE)

    area_score = _area_ratio(polygon_area(left_half), polygon_area(mirrored_right))

    sleeve_score = 1.0
    if left_sleeve is not None and right_sleeve is not None:
        sleeve_score = _area_ratio(polygon_area(left_sleeve.points), polygon_area(right_sleeve.points))

    overall = position_score * 0.4 + area_score * 0.4 + sleeve_score * 0.2
    return max(0.5, min(1.0, overall))


class SymmetryAnalyzer:
    """Bilateral shape comparison for garment polygon sets"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def bilateral_symmetry(self, garment: MaskPolygon, left_sleeve: Optional[MaskPolygon] = None,
                           right_sleeve: Optional[MaskPolygon] = None) -> float:
        score = bilateral_symmetry(garment, left_sleeve, right_sleeve)
        if self.verbose:
            print(f"Bilateral symmetry: {score * 100:.1f}%")
        return score

    def analyze(self, polygons: Sequence[MaskPolygon]) -> float:
        """Score the first garment polygon of a set, using sleeve_l/sleeve_r when present"""
        garment = find_polygon(polygons, "garment")
        if garment is None:
            raise MetricComputationFailure("No garment polygon found")
        return self.bilateral_symmetry(
            garment,
            find_polygon(polygons, "sleeve_l"),
            find_polygon(polygons, "sleeve_r"),
        )


def find_polygon(polygons: Sequence[MaskPolygon], name: str) -> Optional[MaskPolygon]:
    for polygon in polygons:
        if polygon.name == name:
            return polygon
    return None


def edge_roughness(garment: MaskPolygon) -> float:
    """
    Boundary roughness in pixels from the turning angles of the outline

    The mean absolute turning angle between consecutive edges (0 for a
    straight run) is scaled by 10 and clamped to [0.1, 10.0].
    """
    points = garment.points
    if len(points) < 3:
        raise MetricComputationFailure("Edge roughness needs at least three points")

    total_turn = 0.0
    segments = 0
    count = len(points)
    for i in range(count):
        p1 = points[i]
        p2 = points[(i + 1) % count]
        p3 = points[(i + 2) % count]
        v1 = (p2[0] - p1[0], p2[1] - p1[1])
        v2 = (p3[0] - p2[0], p3[1] - p2[1])
        len1 = math.hypot(*v1)
        len2 = math.hypot(*v2)
        if len1 == 0 or len2 == 0:
            continue
        cosine = (v1[0] * v2[0] + v1[1] * v2[1]) / (len1 * len2)
        total_turn += math.acos(max(-1.0, min(1.0, cosine)))
        segments += 1

    if segments == 0:
        raise MetricComputationFailure("Garment outline has no non-degenerate segments")

    return max(0.1, min(10.0, total_turn / segments * 10.0))


def shoulder_width_ratio(garment: MaskPolygon) -> float:
    """
    Width of the shoulder line relative to the full garment width

    The shoulder line sits 20% down from the top of the bounding box; points
    within 10% of the garment height of that line define its extent. Clamped
    to [0.2, 0.8].
    """
    points = garment.points
    min_x, _, max_x, _ = polygon_bounds(points)
    total_width = max_x - min_x
    if total_width == 0:
        raise MetricComputationFailure("Garment polygon has zero width")

    shoulder_xs = [points[i][0] for i in shoulder_band(points)]
    if len(shoulder_xs) < 2:
        raise MetricComputationFailure("Not enough points near the shoulder line")

    ratio = (max(shoulder_xs) - min(shoulder_xs)) / total_width
    return max(0.2, min(0.8, ratio))


def neck_inner_ratio(garment: MaskPolygon, neck: Optional[MaskPolygon]) -> float:
    """Neck opening area relative to the garment area, clamped to [0.02, 0.30]"""
    if neck is None:
        raise MetricComputationFailure("No neck polygon available")
    garment_area = polygon_area(garment.points)
    if garment_area == 0:
        raise MetricComputationFailure("Garment polygon has zero area")
    ratio = polygon_area(neck.points) / garment_area
    return max(0.02, min(0.30, ratio))


def compute_quality_metrics(polygons: Sequence[MaskPolygon], verbose: bool = False) -> QualityMetrics:
    """
    Compute the final quality metrics of a refined polygon set

    Each metric is computed independently. Any metric that raises is replaced
    by its neutral fallback constant and listed in fallback_fields. This is
    the only place fallback metric values are substituted.

    Args:
        polygons: Refined polygon set
        verbose: Whether to print the computed metrics

    Returns:
        QualityMetrics, never raises
    """
    garment = find_polygon(polygons, "garment")
    if garment is None or len(garment.points) < 3:
        if verbose:
            print("No usable garment polygon found, using fallback metrics")
        return QualityMetrics.fallback()

    neck = find_polygon(polygons, "neck")
    left_sleeve = find_polygon(polygons, "sleeve_l")
    right_sleeve = find_polygon(polygons, "sleeve_r")

    calculations = (
        ("symmetry", FALLBACK_SYMMETRY, lambda: bilateral_symmetry(garment, left_sleeve, right_sleeve)),
        ("edge_roughness_px", FALLBACK_EDGE_ROUGHNESS_PX, lambda: edge_roughness(garment)),
        ("shoulder_width_ratio", FALLBACK_SHOULDER_WIDTH_RATIO, lambda: shoulder_width_ratio(garment)),
        ("neck_inner_ratio", FALLBACK_NECK_INNER_RATIO, lambda: neck_inner_ratio(garment, neck)),
    )

    values = {}
    fallback_fields = []
    for name, fallback, calculate in calculations:
        try:
            values[name] = float(calculate())
        except MetricComputationFailure as e:
            if verbose:
                print(f"Metric {name} unavailable ({e}), using fallback {fallback}")
            values[name] = fallback
            fallback_fields.append(name)
        except Exception as e:
            print(f"Error calculating {name}: {str(e)}")
            traceback.print_exc()
            values[name] = fallback
            fallback_fields.append(name)

    metrics = QualityMetrics(fallback_fields=fallback_fields, **values)

    if verbose:
        print("Quality metrics calculated:")
        print(f"  Symmetry: {metrics.symmetry * 100:.1f}%")
        print(f"  Edge roughness: {metrics.edge_roughness_px:.1f}px")
        print(f"  Shoulder width ratio: {metrics.shoulder_width_ratio:.3f}")
        print(f"  Neck inner ratio: {metrics.neck_inner_ratio:.3f}")

    return metrics
