"""
# models.py - v1.1760100000
# Created: Tuesday, October 6, 2026
Records exchanged between the upstream segmentation/analysis collaborators
and the refinement engine.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from utils.errors import ConfigError

Point = Tuple[float, float]

PRESERVE_PREFIX = "preserve_"

PROTECTION_LEVELS = ("absolute", "proportional", "minimal")
IMPORTANCE_LEVELS = ("critical", "important", "nice_to_have")

REGION_TYPES = ("neckline", "sleeves", "armholes", "front_opening", "other")


@dataclass
class MaskPolygon:
    """Named closed boundary in the shared mask coordinate space"""

    name: str
    points: List[Point]
    is_hole: bool = False

    def __post_init__(self):
        self.points = [(float(x), float(y)) for x, y in self.points]

    @property
    def is_preserve(self) -> bool:
        return self.name.startswith(PRESERVE_PREFIX)

    def copy(self) -> "MaskPolygon":
        return MaskPolygon(self.name, list(self.points), self.is_hole)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MaskPolygon":
        """
        Build a polygon from the upstream JSON shape

        Accepts both `pts`/`isHole` (segmentation service) and
        `points`/`is_hole` keys.
        """
        points = data.get("points", data.get("pts"))
        if points is None:
            raise ConfigError(f"Polygon {data.get('name')!r} has no points")
        is_hole = data.get("is_hole", data.get("isHole", False))
        return cls(name=str(data.get("name", "garment")), points=points, is_hole=bool(is_hole))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "pts": [list(p) for p in self.points], "isHole": self.is_hole}


@dataclass
class PreserveZone:
    """Region (label, logo, hardware) that mask punching must leave untouched"""

    type: str
    region: List[Point]
    protection: str = "proportional"
    importance: str = "nice_to_have"

    def __post_init__(self):
        self.type = self.type.lower()
        self.region = [(float(x), float(y)) for x, y in self.region]
        if self.protection not in PROTECTION_LEVELS:
            raise ConfigError(f"Unknown protection level: {self.protection}")
        if self.importance not in IMPORTANCE_LEVELS:
            raise ConfigError(f"Unknown importance level: {self.importance}")

    @property
    def is_critical(self) -> bool:
        return self.importance == "critical"


@dataclass
class HollowRegionRequest:
    """Request to keep a garment opening transparent (or explicitly solid)"""

    region_type: str
    keep_hollow: bool = True
    inner_visible: bool = False
    inner_description: Optional[str] = None
    edge_sampling_notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HollowRegionRequest":
        region_type = str(data.get("region_type", "other")).lower()
        if region_type not in REGION_TYPES:
            region_type = "other"
        return cls(
            region_type=region_type,
            keep_hollow=bool(data.get("keep_hollow", True)),
            inner_visible=bool(data.get("inner_visible", False)),
            inner_description=data.get("inner_description"),
            edge_sampling_notes=data.get("edge_sampling_notes"),
        )


FALLBACK_SYMMETRY = 0.88
FALLBACK_EDGE_ROUGHNESS_PX = 2.2
FALLBACK_SHOULDER_WIDTH_RATIO = 0.45
FALLBACK_NECK_INNER_RATIO = 0.12

METRIC_FIELDS = ("symmetry", "edge_roughness_px", "shoulder_width_ratio", "neck_inner_ratio")


@dataclass
class QualityMetrics:
    symmetry: float = FALLBACK_SYMMETRY
    edge_roughness_px: float = FALLBACK_EDGE_ROUGHNESS_PX
    shoulder_width_ratio: float = FALLBACK_SHOULDER_WIDTH_RATIO
    neck_inner_ratio: float = FALLBACK_NECK_INNER_RATIO
    fallback_fields: List[str] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return bool(self.fallback_fields)

    @classmethod
    def fallback(cls) -> "QualityMetrics":
        """Neutral metrics used whenever the real ones cannot be computed"""
        return cls(fallback_fields=list(METRIC_FIELDS))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["is_fallback"] = self.is_fallback
        return data



@dataclass
class StageRecord:
    """Outcome of one orchestrator stage, kept for diagnostics"""

    stage: str
    succeeded: bool
    elapsed: float = 0.0
    detail: str = ""
    extras: Dict[str, Any] = field(default_factory=dict)
