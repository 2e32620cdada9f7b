"""
# hollow_compositor.py - v1.1760800000
# Updated: Tuesday, October 13, 2026
# Changes in this version:
# - Punching writes (0, 0, 0, 0) directly so cut-outs are always binary
# - preserve_* regions are restored to their pre-punch pixels afterwards
# - Each applied region reports whether it came from a polygon, a style
#   template or the default geometry

Renders the garment silhouette mask and punches hollow regions (neckline,
sleeve openings, armholes, front opening, custom regions) into it.

Canonical template geometry is defined on a 512x512 canvas and scaled to the
configured canvas size. Drawing uses OpenCV fill primitives on a private
numpy buffer; the returned RasterImage is never shared with the caller's data.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from garment.models import MaskPolygon, HollowRegionRequest
from garment.style_hints import NecklineStyle, SleeveConfiguration, StyleHints
from utils.geometry import is_normalized
from utils.raster_image import RasterImage

CANONICAL_SIZE = 512

SOLID = (255, 255, 255, 255)
CUT_OUT = (0, 0, 0, 0)

# Shapes are ("ellipse", cx, cy, ax, ay), ("rect", x, y, w, h) or ("poly", [(x, y), ...])
NECKLINE_TEMPLATES = {
    NecklineStyle.V_NECK: [("poly", [(226, 80), (256, 120), (286, 80), (281, 70), (231, 70)])],
    NecklineStyle.SCOOP: [("ellipse", 256, 95, 35, 25)],
    NecklineStyle.BOAT: [("rect", 206, 80, 100, 15)],
    NecklineStyle.HIGH_NECK: [("ellipse", 256, 80, 20, 15)],
    NecklineStyle.OFF_SHOULDER: [("ellipse", 256, 100, 60, 30)],
    NecklineStyle.CREW: [("ellipse", 256, 80, 30, 20)],
}
DEFAULT_NECKLINE = [("ellipse", 256, 80, 60, 40)]

SLEEVE_TEMPLATES = {
    SleeveConfiguration.SHORT: [("ellipse", 150, 200, 25, 35), ("ellipse", 362, 200, 25, 35)],
    SleeveConfiguration.LONG: [("ellipse", 120, 320, 20, 25), ("ellipse", 392, 320, 20, 25)],
    SleeveConfiguration.THREE_QUARTER: [("ellipse", 135, 280, 22, 30), ("ellipse", 377, 280, 22, 30)],
    SleeveConfiguration.CAP: [("ellipse", 160, 180, 20, 25), ("ellipse", 352, 180, 20, 25)],
}
DEFAULT_SLEEVES = [("ellipse", 80, 180, 35, 60), ("ellipse", 432, 180, 35, 60)]

DEFAULT_ARMHOLES = [("ellipse", 120, 160, 25, 45), ("ellipse", 392, 160, 25, 45)]

CUSTOM_REGIONS = (
    (("pocket",), "pocket", [("rect", 200, 280, 50, 40)]),
    (("waist", "hem"), "hem_opening", [("rect", 150, 450, 212, 30)]),
)
DEFAULT_CUSTOM_REGION = [("rect", 220, 250, 72, 60)]

SOURCE_POLYGON = "polygon"
SOURCE_PROCEDURAL = "procedural"
SOURCE_DEFAULT = "default"


@dataclass
class RegionOutcome:
    region_type: str
    applied: bool
    source: Optional[str] = None
    template: Optional[str] = None
    polygon_names: List[str] = field(default_factory=list)


@dataclass
class CompositeResult:
    image: RasterImage
    hollow_region_count: int = 0
    processed_regions: List[str] = field(default_factory=list)
    solid_regions: List[str] = field(default_factory=list)
    outcomes: List[RegionOutcome] = field(default_factory=list)
    protected_pixels_restored: int = 0

    @property
    def sources(self) -> Dict[str, str]:
        """Region type -> source of the applied geometry"""
        return {o.region_type: o.source for o in self.outcomes if o.applied}

    @property
    def templates(self) -> Dict[str, str]:
        """Region type -> template name, for procedural and default regions"""
        return {o.region_type: o.template for o in self.outcomes if o.applied and o.template}

    def to_dict(self):
        return {
            "hollow_region_count": self.hollow_region_count,
            "processed_regions": list(self.processed_regions),
            "solid_regions": list(self.solid_regions),
            "sources": self.sources,
            "templates": self.templates,
            "protected_pixels_restored": self.protected_pixels_restored,
        }


def _matches_neckline(polygon: MaskPolygon) -> bool:
    return "neck" in polygon.name or polygon.is_hole


def _matches_sleeves(polygon: MaskPolygon) -> bool:
    return "sleeve" in polygon.name or "arm" in polygon.name


def _matches_armholes(polygon: MaskPolygon) -> bool:
    return "armhole" in polygon.name or polygon.name in ("sleeve_l", "sleeve_r")


def _matches_front_opening(polygon: MaskPolygon) -> bool:
    return any(token in polygon.name for token in ("front", "placket", "opening"))


POLYGON_MATCHERS = {
    "neckline": _matches_neckline,
    "sleeves": _matches_sleeves,
    "armholes": _matches_armholes,
    "front_opening": _matches_front_opening,
}


class HollowRegionCompositor:
    """
    Polygon-to-raster compositor for garment masks
    """

    def __init__(self, canvas_size: int = CANONICAL_SIZE, verbose: bool = False):
        """
        Initialize the compositor

        Args:
            canvas_size: Width and height of the rendered mask
            verbose: Whether to print progress
        """
        self.canvas_size = int(canvas_size)
        self.template_scale = self.canvas_size / float(CANONICAL_SIZE)
        self.verbose = verbose

    # ------------------------------------------------------------------
    # Drawing primitives
    # ------------------------------------------------------------------

    def _to_pixels(self, points: Sequence[Tuple[float, float]], scale: float) -> np.ndarray:
        pts = np.round(np.asarray(points, dtype=np.float64) * scale).astype(np.int32)
        return pts.reshape((-1, 1, 2))

    def _fill_polygon(self, canvas: np.ndarray, points, scale: float, color) -> bool:
        if len(points) < 3:
            return False
        cv2.fillPoly(canvas, [self._to_pixels(points, scale)], color)
        return True

    def _draw_shapes(self, canvas: np.ndarray, shapes, color) -> None:
        s = self.template_scale
        for shape in shapes:
            kind = shape[0]
            if kind == "ellipse":
                _, cx, cy, ax, ay = shape
                cv2.ellipse(canvas, (int(round(cx * s)), int(round(cy * s))),
                            (int(round(ax * s)), int(round(ay * s))), 0, 0, 360, color, -1)
            elif kind == "rect":
                _, x, y, w, h = shape
                x0, y0 = int(round(x * s)), int(round(y * s))
                x1, y1 = int(round((x + w) * s)) - 1, int(round((y + h) * s)) - 1
                cv2.rectangle(canvas, (x0, y0), (x1, y1), color, -1)
            else:
                self._fill_polygon(canvas, shape[1], s, color)

    # ------------------------------------------------------------------
    # Region handling
    # ------------------------------------------------------------------

    def _punch_polygons(self, canvas, polygons, matcher, scale) -> List[str]:
        used = []
        for polygon in polygons:
            if (polygon.name == "garment" and not polygon.is_hole) or polygon.is_preserve:
                continue
            if matcher(polygon) and self._fill_polygon(canvas, polygon.points, scale, CUT_OUT):
                used.append(polygon.name)
        return used

    def _apply_region(self, canvas: np.ndarray, polygons: Sequence[MaskPolygon],
                      request: HollowRegionRequest, hints: StyleHints, scale: float) -> RegionOutcome:
        region_type = request.region_type
        outcome = RegionOutcome(region_type=region_type, applied=False)

        matcher = POLYGON_MATCHERS.get(region_type)
        if matcher is not None:
            used = self._punch_polygons(canvas, polygons, matcher, scale)
            if used:
                outcome.applied = True
                outcome.source = SOURCE_POLYGON
                outcome.polygon_names = used
                return outcome

        if region_type == "neckline":
            style = hints.neckline_style
            if style in NECKLINE_TEMPLATES:
                self._draw_shapes(canvas, NECKLINE_TEMPLATES[style], CUT_OUT)
                outcome.source, outcome.template = SOURCE_PROCEDURAL, style.value
            else:
                self._draw_shapes(canvas, DEFAULT_NECKLINE, CUT_OUT)
                outcome.source, outcome.template = SOURCE_DEFAULT, "default_neckline"
            outcome.applied = True

        elif region_type == "sleeves":
            config = hints.sleeve_configuration
            if config == SleeveConfiguration.SLEEVELESS:
                outcome.template = config.value
            elif config in SLEEVE_TEMPLATES:
                self._draw_shapes(canvas, SLEEVE_TEMPLATES[config], CUT_OUT)
                outcome.applied = True
                outcome.source, outcome.template = SOURCE_PROCEDURAL, config.value
            else:
                self._draw_shapes(canvas, DEFAULT_SLEEVES, CUT_OUT)
                outcome.applied = True
                outcome.source, outcome.template = SOURCE_DEFAULT, "default_sleeves"

        elif region_type == "armholes":
            self._draw_shapes(canvas, DEFAULT_ARMHOLES, CUT_OUT)
            outcome.applied = True
            outcome.source, outcome.template = SOURCE_DEFAULT, "default_armholes"

        elif region_type == "other" and request.inner_description:
            description = request.inner_description.lower()
            for keywords, name, shapes in CUSTOM_REGIONS:
                if any(k in description for k in keywords):
                    self._draw_shapes(canvas, shapes, CUT_OUT)
                    outcome.source, outcome.template = SOURCE_PROCEDURAL, name
                    break
            else:
                self._draw_shapes(canvas, DEFAULT_CUSTOM_REGION, CUT_OUT)
                outcome.source, outcome.template = SOURCE_DEFAULT, "custom"
            outcome.applied = True

        # front_opening without polygons and "other" without a description stay solid
        return outcome

    def _restore_preserve_zones(self, canvas: np.ndarray, before: np.ndarray,
                                polygons: Sequence[MaskPolygon], scale: float) -> int:
        zone_plane = np.zeros((self.canvas_size, self.canvas_size), dtype=np.uint8)
        for polygon in polygons:
            if polygon.is_preserve:
                self._fill_polygon(zone_plane, polygon.points, scale, 255)

        changed = np.any(canvas != before, axis=2) & (zone_plane > 0)
        restored = int(np.count_nonzero(changed))
        if restored:
            canvas[changed] = before[changed]
        return restored

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def rasterize(self, polygons: Sequence[MaskPolygon],
                  hollow_region_requests: Sequence[HollowRegionRequest] = (),
                  style_hints: Optional[StyleHints] = None,
                  normalized: Optional[bool] = None) -> CompositeResult:
        """
        Render the garment mask and punch the requested hollow regions

        Args:
            polygons: Polygon set; `garment` non-hole polygons are filled solid
            hollow_region_requests: Requests processed in order
            style_hints: Style descriptors for the procedural templates
            normalized: Whether polygon coordinates are 0-1; detected when None

        Returns:
            CompositeResult with the RGBA mask and per-region diagnostics
        """
        hints = style_hints or StyleHints()
        if normalized is None:
            normalized = is_normalized([p.points for p in polygons])
        scale = float(self.canvas_size) if normalized else 1.0

        if self.verbose:
            print(f"Creating silhouette mask from {len(polygons)} polygons, "
                  f"{len(hollow_region_requests)} hollow region requests")

        canvas = np.zeros((self.canvas_size, self.canvas_size, 4), dtype=np.uint8)
        for polygon in polygons:
            if polygon.name == "garment" and not polygon.is_hole:
                self._fill_polygon(canvas, polygon.points, scale, SOLID)

        before = canvas.copy()
        result = CompositeResult(image=None)

        for request in hollow_region_requests:
            if not request.keep_hollow:
                result.solid_regions.append(request.region_type)
                if self.verbose:
                    print(f"Keeping {request.region_type} solid (keep_hollow: false)")
                continue

            outcome = self._apply_region(canvas, polygons, request, hints, scale)
            result.outcomes.append(outcome)
            if outcome.applied:
                result.hollow_region_count += 1
                result.processed_regions.append(request.region_type)
                if self.verbose:
                    print(f"Applied hollow region: {request.region_type} ({outcome.source}"
                          f"{', ' + outcome.template if outcome.template else ''})")
                    if request.inner_visible:
                        print(f"Inner visible for {request.region_type}: "
                              f"{request.inner_description or 'none'}")

        result.protected_pixels_restored = self._restore_preserve_zones(canvas, before, polygons, scale)
        if self.verbose and result.protected_pixels_restored:
            print(f"Restored {result.protected_pixels_restored} pixels inside preserve zones")

        result.image = RasterImage(canvas)
        return result


def rasterize(polygons: Sequence[MaskPolygon], hollow_region_requests: Sequence[HollowRegionRequest] = (),
              style_hints: Optional[StyleHints] = None, canvas_size: int = CANONICAL_SIZE) -> CompositeResult:
    """Render a mask with a default-configured compositor"""
    return HollowRegionCompositor(canvas_size).rasterize(polygons, hollow_region_requests, style_hints)
