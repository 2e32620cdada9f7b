"""
# preserve_zones.py - v1.1760700000
# Updated: Monday, October 12, 2026
# Changes in this version:
# - Holes that still overlap a critical zone after shrinking are moved clear
#   of it along the cheapest axis, so the non-overlap guarantee always holds
# - Buffers are given in raster pixels and scaled for normalized coordinates
# - Added preserve_zones_from_analysis for upstream preservation_rules

Protected regions (labels, logos, hardware) that mask punching must never
alter. Each zone becomes a protective `preserve_<type>` polygon; critical
label/logo/brand zones additionally push hole polygons out of their way.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from garment.models import MaskPolygon, PreserveZone, PRESERVE_PREFIX, IMPORTANCE_LEVELS
from utils.geometry import (
    Bounds,
    bounds_overlap,
    expand_polygon,
    polygon_bounds,
    scale_polygon,
    translate_polygon,
)

BUFFER_BY_IMPORTANCE = {"critical": 10.0, "important": 5.0, "nice_to_have": 0.0}
CRITICAL_ZONE_TYPES = ("label", "logo", "brand")

SHRINK_FACTOR = 0.9
MAX_SHRINK_STEPS = 5
# Separation left between a moved hole and the zone, in raster pixels
CLEARANCE = 1.0


def zone_buffer(zone: PreserveZone, unit_scale: float = 1.0) -> float:
    """Expansion distance for a zone in polygon coordinate units"""
    return BUFFER_BY_IMPORTANCE.get(zone.importance, 0.0) * unit_scale


def is_guarding_zone(zone: PreserveZone) -> bool:
    """Critical label/logo/brand zones actively displace hole polygons"""
    return zone.is_critical and zone.type in CRITICAL_ZONE_TYPES


@dataclass
class ZoneProtectionResult:
    polygons: List[MaskPolygon]
    protective_polygons: List[MaskPolygon] = field(default_factory=list)
    shrunk_holes: List[str] = field(default_factory=list)
    moved_holes: List[str] = field(default_factory=list)
    skipped_zones: List[str] = field(default_factory=list)


def _escape_moves(hole: Bounds, zone: Bounds, clearance: float):
    """Candidate (dx, dy) moves that put the hole box strictly outside the zone box"""
    moves = [
        (zone[2] - hole[0] + clearance, 0.0),
        (-(hole[2] - zone[0] + clearance), 0.0),
        (0.0, zone[3] - hole[1] + clearance),
        (0.0, -(hole[3] - zone[1] + clearance)),
    ]
    return sorted(moves, key=lambda m: abs(m[0]) + abs(m[1]))


def _shifted(bounds: Bounds, dx: float, dy: float) -> Bounds:
    return bounds[0] + dx, bounds[1] + dy, bounds[2] + dx, bounds[3] + dy


class PreserveZoneGuard:
    """
    Expands protected regions and keeps hole polygons clear of critical ones
    """

    def __init__(self, unit_scale: float = 1.0, verbose: bool = False):
        """
        Initialize the guard

        Args:
            unit_scale: Size of one raster pixel in polygon coordinates
                (1.0 for pixel polygons, 1 / canvas_size for normalized ones)
            verbose: Whether to print progress
        """
        self.unit_scale = unit_scale
        self.verbose = verbose

    def _clear_hole(self, hole: MaskPolygon, zone_bounds: Bounds,
                    all_zone_bounds: Sequence[Bounds], result: ZoneProtectionResult) -> MaskPolygon:
        points = hole.points
        steps = 0
        while steps < MAX_SHRINK_STEPS and bounds_overlap(polygon_bounds(points), zone_bounds):
            points = scale_polygon(points, SHRINK_FACTOR)
            steps += 1
        if steps and hole.name not in result.shrunk_holes:
            result.shrunk_holes.append(hole.name)

        hole_bounds = polygon_bounds(points)
        if bounds_overlap(hole_bounds, zone_bounds):
            moves = _escape_moves(hole_bounds, zone_bounds, CLEARANCE * self.unit_scale)
            dx, dy = moves[0]
            for candidate_dx, candidate_dy in moves:
                shifted = _shifted(hole_bounds, candidate_dx, candidate_dy)
                if not any(bounds_overlap(shifted, other) for other in all_zone_bounds):
                    dx, dy = candidate_dx, candidate_dy
                    break
            points = translate_polygon(points, dx, dy)
            if hole.name not in result.moved_holes:
                result.moved_holes.append(hole.name)
            if self.verbose:
                print(f"Moved hole {hole.name} by ({dx:.2f}, {dy:.2f}) to clear a protected zone")

        return MaskPolygon(hole.name, points, hole.is_hole)

    def protect(self, polygons: Sequence[MaskPolygon], zones: Sequence[PreserveZone]) -> ZoneProtectionResult:
        """
        Apply preserve zones to a polygon set

        Args:
            polygons: Input polygons (not modified)
            zones: Preserve zones

        Returns:
            ZoneProtectionResult with the new polygon list
        """
        result = ZoneProtectionResult(polygons=[p.copy() for p in polygons])
        guarding_bounds = []

        for zone in zones:
            if len(zone.region) < 3:
                result.skipped_zones.append(zone.type)
                if self.verbose:
                    print(f"Skipping {zone.type} zone: region needs at least three points")
                continue

            if self.verbose:
                print(f"Protecting {zone.type} zone with {zone.protection} level")

            protective = MaskPolygon(
                f"{PRESERVE_PREFIX}{zone.type}",
                expand_polygon(zone.region, zone_buffer(zone, self.unit_scale)),
                is_hole=False,
            )
            result.polygons.append(protective)
            result.protective_polygons.append(protective)
            if is_guarding_zone(zone):
                guarding_bounds.append(polygon_bounds(protective.points))

        if not guarding_bounds:
            return result

        # Moving a hole away from one zone can push it into another, so repeat
        # until a full pass makes no change
        for _ in range(len(guarding_bounds) + 1):
            changed = False
            for index, polygon in enumerate(result.polygons):
                if not polygon.is_hole:
                    continue
                for zone_bounds in guarding_bounds:
                    if bounds_overlap(polygon_bounds(polygon.points), zone_bounds):
                        polygon = self._clear_hole(polygon, zone_bounds, guarding_bounds, result)
                        result.polygons[index] = polygon
                        changed = True
            if not changed:
                break

        return result


def apply_preserve_zones(polygons: Sequence[MaskPolygon], zones: Sequence[PreserveZone],
                         unit_scale: float = 1.0) -> List[MaskPolygon]:
    """
    Append protective polygons for each zone and clear holes from critical ones

    Args:
        polygons: Input polygons (not modified)
        zones: Preserve zones
        unit_scale: Size of one raster pixel in polygon coordinates

    Returns:
        New polygon list: the input polygons (holes possibly shrunk or moved,
        never removed) followed by one preserve_<type> polygon per zone
    """
    return PreserveZoneGuard(unit_scale).protect(polygons, zones).polygons


def _region_from_bbox(bbox: Sequence[Any], scale: float) -> List[tuple]:
    """
    Rectangle corners from a [x_min, y_min, x_max, y_max] box, or the points
    themselves when a polygon is given
    """
    if len(bbox) == 4 and all(isinstance(v, (int, float)) for v in bbox):
        x0, y0, x1, y1 = (float(v) * scale for v in bbox)
        return [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
    return [(float(x) * scale, float(y) * scale) for x, y in bbox]


def preserve_zones_from_analysis(analysis: Optional[Dict[str, Any]],
                                 scale: float = 1.0) -> List[PreserveZone]:
    """
    Build preserve zones from the preservation_rules of a garment analysis

    Each rule needs a string `element`. `priority` becomes the importance
    (unknown priorities count as nice_to_have); critical rules get absolute
    protection and everything else proportional. `region_bbox_norm` is scaled
    by `scale` so zones share the coordinate space of the polygons.

    Args:
        analysis: Consolidated analysis dictionary
        scale: Multiplier applied to the normalized boxes

    Returns:
        List of PreserveZone, possibly with empty regions
    """
    zones = []
    rules = (analysis or {}).get("preservation_rules") or []
    if not isinstance(rules, list):
        return zones

    for rule in rules:
        if not isinstance(rule, dict) or not isinstance(rule.get("element"), str):
            continue
        priority = rule.get("priority") or "nice_to_have"
        if priority not in IMPORTANCE_LEVELS:
            priority = "nice_to_have"
        bbox = rule.get("region_bbox_norm")
        zones.append(PreserveZone(
            type=rule["element"],
            region=_region_from_bbox(bbox, scale) if bbox else [],
            protection="absolute" if priority == "critical" else "proportional",
            importance=priority,
        ))
    return zones
