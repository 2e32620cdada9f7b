"""
# mask_refinement.py - v1.1760900000
# Updated: Wednesday, October 14, 2026
# Changes in this version:
# - Stages run through a single wrapper that times them and degrades
#   unexpected failures to pass-through with a diagnostic
# - Preserve zones are re-applied to the source raster after smoothing
# - Optional safety erosion of the rendered mask
# - Metrics are embedded in the encoded mask PNG

Mask refinement pipeline.

ProportionCorrect -> ZoneProtect -> EdgeRefine -> HollowComposite -> MetricsCompute

The orchestrator holds configuration and stateless services only; every call
works on private copies of its inputs, so one instance can serve concurrent
refinements.
"""

import base64
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import cv2
import numpy as np

from core.refinement_config import merge_config
from garment.models import (
    MaskPolygon,
    PreserveZone,
    HollowRegionRequest,
    QualityMetrics,
    StageRecord,
    PRESERVE_PREFIX,
)
from garment.preserve_zones import PreserveZoneGuard
from garment.proportion_templates import (
    ProportionReport,
    ShoulderWidthCorrection,
    apply_template,
    template_for,
    validate_proportions,
)
from garment.style_hints import StyleHints
from mask.color_analysis import ColorAnalyzer, ColorReport
from mask.edge_erosion import EdgeErosionProcessor, ErosionReport
from mask.hollow_compositor import CompositeResult, HollowRegionCompositor
from mask.mask_analysis import compute_quality_metrics
from mask.mask_enhancement import BilateralSmoother, HoleFiller
from mask.mask_utils import encode_mask_png
from utils.errors import ConfigError, GeometryWarning, RefinementWarning, StageDegradedWarning
from utils.geometry import is_normalized, is_self_intersecting
from utils.raster_image import RasterImage

STAGE_PROPORTION = "ProportionCorrect"
STAGE_ZONES = "ZoneProtect"
STAGE_EDGES = "EdgeRefine"
STAGE_COMPOSITE = "HollowComposite"
STAGE_EROSION = "SafetyErosion"
STAGE_METRICS = "MetricsCompute"

ImageInput = Union[RasterImage, bytes, str, None]


@dataclass
class RefinementResult:
    polygons: List[MaskPolygon]
    mask: RasterImage
    metrics: QualityMetrics
    mask_png: bytes = b""
    diagnostics: List[RefinementWarning] = field(default_factory=list)
    stages: List[StageRecord] = field(default_factory=list)
    composite: Optional[CompositeResult] = None
    refined_source: Optional[RasterImage] = None
    color_report: Optional[ColorReport] = None
    proportion_report: Optional[ProportionReport] = None
    erosion_report: Optional[ErosionReport] = None
    processing_time: float = 0.0

    @property
    def mask_data_uri(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.mask_png).decode("ascii")

    @property
    def degraded(self) -> bool:
        return any(not stage.succeeded for stage in self.stages)

    def stage(self, name: str) -> Optional[StageRecord]:
        for record in self.stages:
            if record.stage == name:
                return record
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "polygons": [p.to_dict() for p in self.polygons],
            "metrics": self.metrics.to_dict(),
            "composite": self.composite.to_dict() if self.composite else None,
            "color": self.color_report.to_dict() if self.color_report else None,
            "proportions": self.proportion_report.to_dict() if self.proportion_report else None,
            "erosion": self.erosion_report.to_dict() if self.erosion_report else None,
            "diagnostics": [str(d) for d in self.diagnostics],
            "stages": [{"stage": s.stage, "succeeded": s.succeeded, "elapsed": s.elapsed,
                        "detail": s.detail} for s in self.stages],
            "processing_time": self.processing_time,
        }


def load_source_image(source: ImageInput) -> Optional[RasterImage]:
    """
    Accept a RasterImage, encoded image bytes or a data URI

    Raises:
        ConfigError: If the input cannot be decoded
    """
    if source is None or isinstance(source, RasterImage):
        return source
    try:
        if isinstance(source, (bytes, bytearray)):
            return RasterImage.from_bytes(bytes(source))
        if isinstance(source, str):
            return RasterImage.from_data_uri(source)
    except (OSError, ValueError) as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"Could not decode source image: {str(e)}") from e
    raise ConfigError(f"Unsupported source image type: {type(source).__name__}")


class MaskRefinementOrchestrator:
    """
    Composes the refinement stages into the public refine() operation
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, verbose: bool = False):
        """
        Initialize the orchestrator

        Args:
            config: Overrides of DEFAULT_REFINEMENT_CONFIG (validated here)
            verbose: Whether to print progress for every stage
        """
        self.config = merge_config(config)
        self.verbose = verbose

        edge_cfg = self.config["edge_refinement"]
        hole_cfg = self.config["hole_filling"]
        erosion_cfg = {k: v for k, v in self.config["edge_erosion"].items() if k != "enabled"}

        self.smoother = BilateralSmoother(edge_cfg["smoothing_intensity"], verbose=verbose)
        self.hole_filler = HoleFiller(hole_cfg["min_size"], hole_cfg["max_size"], hole_cfg["connectivity"],
                                      whiten=hole_cfg["whiten"], verbose=verbose)
        self.color_analyzer = ColorAnalyzer(verbose=verbose)
        self.compositor = HollowRegionCompositor(self.config["compositing"]["canvas_size"], verbose=verbose)
        self.erosion_processor = EdgeErosionProcessor(erosion_cfg, verbose=verbose)

        if self.verbose:
            print(f"Mask refinement orchestrator initialized "
                  f"(canvas {self.compositor.canvas_size}px, smoothing {edge_cfg['smoothing_intensity']})")

    # ------------------------------------------------------------------
    # Input preparation
    # ------------------------------------------------------------------

    def _prepare_polygons(self, polygons: Sequence[Union[MaskPolygon, Dict[str, Any]]],
                          diagnostics: List[RefinementWarning]) -> List[MaskPolygon]:
        prepared = []
        for item in polygons:
            polygon = MaskPolygon.from_dict(item) if isinstance(item, dict) else item.copy()
            if len(polygon.points) == 0:
                raise ConfigError(f"Polygon {polygon.name!r} has no points")
            if len(polygon.points) < 3:
                diagnostics.append(GeometryWarning(
                    f"Polygon {polygon.name!r} has {len(polygon.points)} points, skipped",
                    polygon_name=polygon.name, stage="input"))
                continue
            if is_self_intersecting(polygon.points):
                diagnostics.append(GeometryWarning(
                    f"Polygon {polygon.name!r} is self-intersecting, results may be degraded",
                    polygon_name=polygon.name, stage="input"))
            prepared.append(polygon)
        return prepared

    @staticmethod
    def _prepare_hints(style_hints) -> StyleHints:
        if isinstance(style_hints, StyleHints):
            return style_hints
        return StyleHints.from_analysis(style_hints)

    @staticmethod
    def _prepare_requests(requests) -> List[HollowRegionRequest]:
        return [r if isinstance(r, HollowRegionRequest) else HollowRegionRequest.from_dict(r)
                for r in (requests or [])]

    # ------------------------------------------------------------------
    # Stage wrapper
    # ------------------------------------------------------------------

    def _run_stage(self, name: str, func: Callable[[], Any], fallback: Callable[[], Any],
                   records: List[StageRecord], diagnostics: List[RefinementWarning]):
        """
        Run one stage, degrading any failure other than ConfigError

        Returns:
            (value, StageRecord)
        """
        start_time = time.time()
        if self.verbose:
            print(f"Stage {name} started")
        try:
            value = func()
            record = StageRecord(stage=name, succeeded=True, elapsed=time.time() - start_time)
        except ConfigError:
            raise
        except Exception as e:
            print(f"Error in stage {name}: {str(e)}")
            if self.verbose:
                traceback.print_exc()
            diagnostics.append(StageDegradedWarning(
                f"{type(e).__name__}: {str(e)}; input passed through unchanged", stage=name))
            value = fallback()
            record = StageRecord(stage=name, succeeded=False, elapsed=time.time() - start_time,
                                 detail=str(e))
        records.append(record)
        if self.verbose:
            state = "completed" if record.succeeded else "degraded"
            print(f"Stage {name} {state} in {record.elapsed:.3f}s")
        return value, record

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _correct_proportions(self, polygons, hints, diagnostics):
        settings = self.config["proportion_validation"]
        template = template_for(hints)
        if not settings["enabled"]:
            return apply_template(polygons, template), None

        correction = None
        if settings["correct_shoulder_width"]:
            correction = ShoulderWidthCorrection(settings["max_adjustment"])
        corrected = apply_template(polygons, template, correction)
        report = validate_proportions(corrected, template, settings["tolerance"])

        if settings["strict_mode"]:
            for measurement in report.measurements:
                if not measurement.within_tolerance:
                    diagnostics.append(GeometryWarning(
                        f"{measurement.name} ratio {measurement.value:.3f} outside "
                        f"[{measurement.standard.min}, {measurement.standard.max}] for {template.category}",
                        stage=STAGE_PROPORTION))
        return corrected, report

    def _protect_zones(self, polygons, zones, unit_scale, diagnostics):
        guard = PreserveZoneGuard(unit_scale, verbose=self.verbose)
        outcome = guard.protect(polygons, zones)
        for zone_type in outcome.skipped_zones:
            diagnostics.append(GeometryWarning(
                f"Preserve zone {zone_type!r} has fewer than three points, skipped",
                polygon_name=f"{PRESERVE_PREFIX}{zone_type}", stage=STAGE_ZONES))
        return outcome

    def _protected_plane(self, polygons, image: RasterImage, normalized: bool) -> np.ndarray:
        """Boolean plane of the source pixels covered by preserve polygons"""
        details = set()
        if self.config["edge_refinement"]["fabric_aware_smoothing"]:
            details = set(self.config["edge_refinement"]["preserve_details"])

        plane = np.zeros((image.height, image.width), dtype=np.uint8)
        scale = np.array([image.width, image.height], dtype=np.float64) if normalized else 1.0
        for polygon in polygons:
            if polygon.is_preserve or polygon.name in details:
                pts = np.round(np.asarray(polygon.points, dtype=np.float64) * scale).astype(np.int32)
                cv2.fillPoly(plane, [pts.reshape((-1, 1, 2))], 255)
        return plane > 0

    def _refine_edges(self, source: RasterImage, polygons, normalized: bool):
        settings = self.config["edge_refinement"]
        extras = {}
        refined = self.smoother.smooth(source) if settings["enabled"] else source.copy()

        if self.config["hole_filling"]["enabled"]:
            outcome = self.hole_filler.fill_holes(refined)
            refined = outcome.image
            extras["holes_filled"] = outcome.holes_filled
            extras["pixels_filled"] = outcome.pixels_filled

        # Smoothing and hole filling keep the channel count, so pixels copy back directly
        protected = self._protected_plane(polygons, source, normalized)
        if protected.any():
            refined.pixels[protected] = source.pixels[protected]
        extras["protected_pixels"] = int(np.count_nonzero(protected))

        report = self.color_analyzer.analyze(refined, reference=source)
        extras["delta_e"] = report.delta_e
        return refined, report, extras

    def _fallback_mask(self, polygons, hints, normalized) -> RasterImage:
        try:
            return self.compositor.rasterize(polygons, (), hints, normalized).image
        except Exception as e:
            print(f"Error rendering fallback mask: {str(e)}")
            size = self.compositor.canvas_size
            return RasterImage.blank(size, size)

    def _compute_metrics(self, polygons):
        metrics = compute_quality_metrics(polygons, verbose=self.verbose)
        extras = {"fallback_fields": list(metrics.fallback_fields)}

        symmetry_cfg = self.config["symmetry_correction"]
        if symmetry_cfg["enabled"]:
            extras["asymmetric"] = metrics.symmetry < 1.0 - symmetry_cfg["asymmetry_threshold"]

        qa_cfg = self.config["quality_assurance"]
        if qa_cfg["enabled"]:
            extras["meets_confidence"] = metrics.symmetry >= qa_cfg["confidence_threshold"]
        return metrics, extras

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def refine(self, polygons: Sequence[Union[MaskPolygon, Dict[str, Any]]],
               source: ImageInput = None,
               style_hints: Union[StyleHints, Dict[str, Any], None] = None,
               hollow_regions: Optional[Sequence[Union[HollowRegionRequest, Dict[str, Any]]]] = None,
               preserve_zones: Optional[Sequence[PreserveZone]] = None) -> RefinementResult:
        """
        Refine a garment mask

        Args:
            polygons: MaskPolygon records or their dictionary form
            source: Optional source raster (RasterImage, encoded bytes or data URI)
            style_hints: StyleHints or the analysis dictionary they are built from
            hollow_regions: Hollow region requests or their dictionary form
            preserve_zones: Protected regions

        Returns:
            RefinementResult; always carries polygons, a mask and metrics

        Raises:
            ConfigError: For invalid configuration or a polygon without points
        """
        start_time = time.time()
        diagnostics: List[RefinementWarning] = []
        records: List[StageRecord] = []

        working = self._prepare_polygons(polygons, diagnostics)
        hints = self._prepare_hints(style_hints)
        requests = self._prepare_requests(hollow_regions)
        zones = list(preserve_zones or [])
        source_image = load_source_image(source)

        normalized = is_normalized([p.points for p in working] + [z.region for z in zones])
        unit_scale = 1.0 / self.compositor.canvas_size if normalized else 1.0

        if self.verbose:
            print(f"Refining {len(working)} polygons ({'normalized' if normalized else 'pixel'} coordinates), "
                  f"{len(requests)} hollow regions, {len(zones)} preserve zones")

        # ProportionCorrect
        before = working
        (working, proportion_report), record = self._run_stage(
            STAGE_PROPORTION,
            lambda: self._correct_proportions(before, hints, diagnostics),
            lambda: ([p.copy() for p in before], None),
            records, diagnostics)
        if proportion_report is not None:
            record.extras["proportions_valid"] = proportion_report.is_valid

        # ZoneProtect
        before = working
        protection, record = self._run_stage(
            STAGE_ZONES,
            lambda: self._protect_zones(before, zones, unit_scale, diagnostics),
            lambda: None,
            records, diagnostics)
        if protection is not None:
            working = protection.polygons
            record.extras.update(shrunk_holes=protection.shrunk_holes, moved_holes=protection.moved_holes)

        # EdgeRefine
        refined_source = None
        color_report = None
        if source_image is not None:
            (refined_source, color_report, extras), record = self._run_stage(
                STAGE_EDGES,
                lambda: self._refine_edges(source_image, working, normalized),
                lambda: (source_image.copy(), None, {}),
                records, diagnostics)
            record.extras.update(extras)
        else:
            records.append(StageRecord(stage=STAGE_EDGES, succeeded=True, detail="no source image"))

        # HollowComposite
        composite, record = self._run_stage(
            STAGE_COMPOSITE,
            lambda: self.compositor.rasterize(working, requests, hints, normalized),
            lambda: None,
            records, diagnostics)
        if composite is not None:
            mask = composite.image
            record.extras.update(composite.to_dict())
        else:
            mask = self._fallback_mask(working, hints, normalized)

        erosion_report = None
        if self.config["edge_erosion"]["enabled"]:
            before_mask = mask
            erosion_report, record = self._run_stage(
                STAGE_EROSION,
                lambda: self.erosion_processor.apply(before_mask),
                lambda: None,
                records, diagnostics)
            if erosion_report is not None:
                mask = erosion_report.image
                record.extras.update(erosion_report.to_dict())

        # MetricsCompute
        (metrics, extras), record = self._run_stage(
            STAGE_METRICS,
            lambda: self._compute_metrics(working),
            lambda: (QualityMetrics.fallback(), {}),
            records, diagnostics)
        record.extras.update(extras)

        embedded = {"metrics": metrics.to_dict()}
        if composite is not None:
            embedded["composite"] = composite.to_dict()

        result = RefinementResult(
            polygons=working,
            mask=mask,
            metrics=metrics,
            mask_png=encode_mask_png(mask, embedded),
            diagnostics=diagnostics,
            stages=records,
            composite=composite,
            refined_source=refined_source,
            color_report=color_report,
            proportion_report=proportion_report,
            erosion_report=erosion_report,
            processing_time=time.time() - start_time,
        )

        if self.verbose:
            print(f"Refinement completed in {result.processing_time:.2f}s with "
                  f"{len(diagnostics)} diagnostics")
        return result


def refine(polygons, source=None, style_hints=None, hollow_regions=None, preserve_zones=None,
           config=None, verbose=False) -> RefinementResult:
    """Refine a mask with a one-off orchestrator"""
    orchestrator = MaskRefinementOrchestrator(config, verbose=verbose)
    return orchestrator.refine(polygons, source, style_hints, hollow_regions, preserve_zones)
