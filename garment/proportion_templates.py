"""
# proportion_templates.py - v1.1760700000
# Updated: Monday, October 12, 2026
# Changes in this version:
# - Added validate_proportions to report measured ratios against the standards
# - apply_template accepts an optional shoulder width correction rule
# - Unknown categories resolve to the top template

Anatomical proportion standards per garment category.
Templates are immutable; template_for() always returns one of the four
built-in templates.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from garment.models import MaskPolygon
from garment.style_hints import StyleHints
from utils.errors import ConfigError
from utils.geometry import centroid, polygon_area, polygon_bounds, shoulder_band

RATIO_NAMES = (
    "neck_to_shoulder",
    "shoulder_width",
    "armhole_depth",
    "sleeve_symmetry",
    "hemline_level",
    "placket_alignment",
)

CATEGORIES = ("top", "bottom", "dress", "outerwear")


@dataclass(frozen=True)
class RatioStandard:
    min: float
    max: float
    ideal: float

    def __post_init__(self):
        if self.min > self.max:
            raise ConfigError(f"Ratio standard min {self.min} exceeds max {self.max}")

    @property
    def applicable(self) -> bool:
        """A zero ideal marks a ratio that does not exist for the category"""
        return self.ideal > 0

    def contains(self, value: float, tolerance: float = 0.0) -> bool:
        return self.min * (1.0 - tolerance) <= value <= self.max * (1.0 + tolerance)


@dataclass(frozen=True)
class ProportionTemplate:
    category: str
    standards: Dict[str, RatioStandard]
    adjustment_weights: Dict[str, float]
    neckline_style: str = "crew"
    sleeve_configuration: str = "long"
    silhouette: str = "fitted"

    def __post_init__(self):
        for name in RATIO_NAMES:
            if name not in self.standards:
                raise ConfigError(f"Template {self.category} is missing the {name} standard")
            weight = self.adjustment_weights.get(name)
            if weight is None or not 0.0 <= weight <= 1.0:
                raise ConfigError(f"Adjustment weight for {name} must be in [0, 1], got {weight}")

    def standard(self, name: str) -> RatioStandard:
        return self.standards[name]

    def weight(self, name: str) -> float:
        return self.adjustment_weights[name]


ADJUSTMENT_WEIGHTS = {
    "neck_to_shoulder": 0.8,
    "shoulder_width": 1.0,
    "armhole_depth": 0.7,
    "sleeve_symmetry": 1.0,
    "hemline_level": 0.9,
    "placket_alignment": 0.8,
}

_ALIGNED = RatioStandard(0.95, 1.0, 0.98)
_ABSENT = RatioStandard(0.0, 0.0, 0.0)

PROPORTION_STANDARDS = {
    "top": {
        "neck_to_shoulder": RatioStandard(0.12, 0.18, 0.15),
        "shoulder_width": RatioStandard(0.35, 0.55, 0.45),
        "armhole_depth": RatioStandard(0.15, 0.25, 0.20),
        "sleeve_symmetry": _ALIGNED,
        "hemline_level": _ALIGNED,
        "placket_alignment": _ALIGNED,
    },
    "bottom": {
        "neck_to_shoulder": _ABSENT,
        "shoulder_width": RatioStandard(0.30, 0.50, 0.40),
        "armhole_depth": _ABSENT,
        "sleeve_symmetry": _ABSENT,
        "hemline_level": _ALIGNED,
        "placket_alignment": _ALIGNED,
    },
    "dress": {
        "neck_to_shoulder": RatioStandard(0.10, 0.20, 0.15),
        "shoulder_width": RatioStandard(0.30, 0.50, 0.40),
        "armhole_depth": RatioStandard(0.12, 0.22, 0.17),
        "sleeve_symmetry": _ALIGNED,
        "hemline_level": _ALIGNED,
        "placket_alignment": _ALIGNED,
    },
    "outerwear": {
        "neck_to_shoulder": RatioStandard(0.14, 0.22, 0.18),
        "shoulder_width": RatioStandard(0.40, 0.60, 0.50),
        "armhole_depth": RatioStandard(0.18, 0.28, 0.23),
        "sleeve_symmetry": _ALIGNED,
        "hemline_level": _ALIGNED,
        "placket_alignment": _ALIGNED,
    },
}


def template_for(category: Union[str, StyleHints, None]) -> ProportionTemplate:
    """
    Look up the proportion template for a garment category

    Args:
        category: Category name or StyleHints; unknown values fall back to "top"

    Returns:
        Immutable ProportionTemplate
    """
    hints = category if isinstance(category, StyleHints) else None
    name = hints.category_generic if hints else category
    name = str(name or "top").strip().lower()
    if name not in CATEGORIES:
        name = "top"

    if hints is None:
        return ProportionTemplate(
            category=name,
            standards=dict(PROPORTION_STANDARDS[name]),
            adjustment_weights=dict(ADJUSTMENT_WEIGHTS),
        )
    return ProportionTemplate(
        category=name,
        standards=dict(PROPORTION_STANDARDS[name]),
        adjustment_weights=dict(ADJUSTMENT_WEIGHTS),
        neckline_style=hints.neckline_style.value,
        sleeve_configuration=hints.sleeve_configuration.value,
        silhouette=hints.silhouette,
    )


# ----------------------------------------------------------------------
# Measurement
# ----------------------------------------------------------------------

def _find(polygons: Sequence[MaskPolygon], name: str) -> Optional[MaskPolygon]:
    for polygon in polygons:
        if polygon.name == name and len(polygon.points) >= 3:
            return polygon
    return None


def measure_ratios(polygons: Sequence[MaskPolygon]) -> Dict[str, float]:
    """
    Measure the six template ratios from a polygon set

    Ratios that need a polygon which is not present are omitted.

    Returns:
        Dictionary ratio name -> measured value
    """
    garment = _find(polygons, "garment")
    if garment is None:
        return {}

    min_x, min_y, max_x, max_y = polygon_bounds(garment.points)
    width = max_x - min_x
    height = max_y - min_y
    if width <= 0 or height <= 0:
        return {}

    ratios = {}
    band = shoulder_band(garment.points)
    if len(band) >= 2:
        xs = [garment.points[i][0] for i in band]
        ratios["shoulder_width"] = (max(xs) - min(xs)) / width

    neck = _find(polygons, "neck")
    if neck is not None:
        neck_min_x, _, neck_max_x, _ = polygon_bounds(neck.points)
        ratios["neck_to_shoulder"] = (neck_max_x - neck_min_x) / width

    left = _find(polygons, "sleeve_l")
    right = _find(polygons, "sleeve_r")
    armholes = [p for p in (_find(polygons, "armhole_l"), _find(polygons, "armhole_r")) if p is not None]
    if armholes:
        depths = [polygon_bounds(p.points)[3] - polygon_bounds(p.points)[1] for p in armholes]
        ratios["armhole_depth"] = sum(depths) / len(depths) / height

    if left is not None and right is not None:
        area_l = polygon_area(left.points)
        area_r = polygon_area(right.points)
        larger = max(area_l, area_r)
        ratios["sleeve_symmetry"] = min(area_l, area_r) / larger if larger > 0 else 1.0

    hem = _find(polygons, "hem")
    if hem is not None:
        _, hem_min_y, _, hem_max_y = polygon_bounds(hem.points)
        ratios["hemline_level"] = max(0.0, 1.0 - (hem_max_y - hem_min_y) / height)

    placket = _find(polygons, "placket")
    if placket is not None:
        placket_cx, _ = centroid(placket.points)
        offset = abs(placket_cx - (min_x + max_x) / 2.0)
        ratios["placket_alignment"] = max(0.0, 1.0 - offset / (width / 2.0))

    return ratios


@dataclass
class RatioMeasurement:
    name: str
    value: float
    standard: RatioStandard
    deviation: float
    within_tolerance: bool


@dataclass
class ProportionReport:
    category: str
    tolerance: float
    measurements: List[RatioMeasurement] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return all(m.within_tolerance for m in self.measurements)

    @property
    def violations(self) -> List[str]:
        return [m.name for m in self.measurements if not m.within_tolerance]

    def to_dict(self):
        return {
            "category": self.category,
            "tolerance": self.tolerance,
            "is_valid": self.is_valid,
            "measurements": {
                m.name: {"value": m.value, "ideal": m.standard.ideal, "deviation": m.deviation,
                         "within_tolerance": m.within_tolerance}
                for m in self.measurements
            },
        }


def validate_proportions(polygons: Sequence[MaskPolygon], template: ProportionTemplate,
                         tolerance: float = 0.1) -> ProportionReport:
    """
    Compare measured ratios against a template

    Args:
        polygons: Polygon set to measure (not modified)
        template: Template holding the standards
        tolerance: Relative slack applied to the min/max bounds

    Returns:
        ProportionReport listing every measurable, applicable ratio
    """
    if tolerance < 0:
        raise ConfigError(f"tolerance must not be negative, got {tolerance}")

    report = ProportionReport(category=template.category, tolerance=tolerance)
    measured = measure_ratios(polygons)
    for name in RATIO_NAMES:
        standard = template.standard(name)
        if name not in measured or not standard.applicable:
            continue
        value = measured[name]
        report.measurements.append(RatioMeasurement(
            name=name,
            value=value,
            standard=standard,
            deviation=abs(value - standard.ideal) / standard.ideal,
            within_tolerance=standard.contains(value, tolerance),
        ))
    return report


# ----------------------------------------------------------------------
# Correction
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class ShoulderWidthCorrection:
    """
    Pull the shoulder line of the garment outline toward the ideal width

    The shoulder band points are scaled horizontally about the band center.
    The template weight scales the correction and max_adjustment caps the
    relative change in band width.
    """

    max_adjustment: float = 0.1

    def apply(self, polygon: MaskPolygon, template: ProportionTemplate) -> MaskPolygon:
        standard = template.standard("shoulder_width")
        if not standard.applicable:
            return polygon.copy()

        points = polygon.points
        min_x, _, max_x, _ = polygon_bounds(points)
        width = max_x - min_x
        band = shoulder_band(points)
        if width <= 0 or len(band) < 2:
            return polygon.copy()

        xs = [points[i][0] for i in band]
        band_width = max(xs) - min(xs)
        if band_width <= 0 or standard.contains(band_width / width):
            return polygon.copy()

        target = standard.ideal * width
        desired = band_width + (target - band_width) * template.weight("shoulder_width")
        factor = desired / band_width
        factor = max(1.0 - self.max_adjustment, min(1.0 + self.max_adjustment, factor))

        center_x = (max(xs) + min(xs)) / 2.0
        adjusted = list(points)
        for i in band:
            x, y = points[i]
            adjusted[i] = (center_x + (x - center_x) * factor, y)
        return MaskPolygon(polygon.name, adjusted, polygon.is_hole)


def apply_template(polygons: Sequence[MaskPolygon], template: ProportionTemplate,
                   correction: Optional[ShoulderWidthCorrection] = None) -> List[MaskPolygon]:
    """
    Apply proportion-driven point adjustment

    Without a correction rule this is a pass-through copy. The output always
    has the same polygon count, order and per-polygon point count as the input.

    Args:
        polygons: Input polygons (not modified)
        template: Proportion template for the garment category
        correction: Optional correction rule applied to garment outlines

    Returns:
        New list of polygons
    """
    adjusted = []
    for polygon in polygons:
        if correction is not None and polygon.name == "garment" and not polygon.is_hole \
                and len(polygon.points) >= 3:
            adjusted.append(correction.apply(polygon, template))
        else:
            adjusted.append(polygon.copy())
    return adjusted
