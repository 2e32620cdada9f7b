"""
End-to-end tests for the refinement orchestrator
"""

import numpy as np
import pytest

from core.mask_refinement import (
    MaskRefinementOrchestrator,
    STAGE_COMPOSITE,
    STAGE_EDGES,
    STAGE_EROSION,
    STAGE_METRICS,
    STAGE_PROPORTION,
    STAGE_ZONES,
    load_source_image,
    refine,
)
from garment.models import HollowRegionRequest, MaskPolygon, PreserveZone, QualityMetrics
from mask.mask_utils import read_mask_metrics
from utils.errors import ConfigError, GeometryWarning, StageDegradedWarning
from utils.geometry import bounds_overlap, polygon_bounds

from conftest import make_rgba, rectangle

PIPELINE = [STAGE_PROPORTION, STAGE_ZONES, STAGE_EDGES, STAGE_COMPOSITE, STAGE_METRICS]


def test_basic_refinement(box_garment):
    neck = MaskPolygon("neck", rectangle(170, 100, 230, 150), is_hole=True)

    result = refine([box_garment, neck], hollow_regions=[HollowRegionRequest("neckline")])

    assert [s.stage for s in result.stages] == PIPELINE
    assert not result.degraded
    assert result.diagnostics == []
    assert result.mask.width == result.mask.height == 512
    assert result.mask.alpha()[120, 200] == 0
    assert result.mask.alpha()[300, 200] == 255
    assert result.metrics.neck_inner_ratio == pytest.approx(0.05)
    assert result.stage(STAGE_EDGES).detail == "no source image"
    assert result.proportion_report is not None


def test_polygon_without_points_is_fatal(box_garment):
    with pytest.raises(ConfigError):
        refine([box_garment, MaskPolygon("neck", [])])


def test_two_point_polygon_is_skipped_with_warning(box_garment):
    result = refine([box_garment, MaskPolygon("hem", [(0, 0), (10, 10)])])

    assert [p.name for p in result.polygons] == ["garment"]
    assert len(result.diagnostics) == 1
    warning = result.diagnostics[0]
    assert isinstance(warning, GeometryWarning)
    assert warning.polygon_name == "hem"
    assert str(warning).startswith("[input]")


def test_self_intersecting_polygon_is_kept_with_warning(box_garment):
    bowtie = MaskPolygon("placket", [(150, 150), (250, 250), (250, 150), (150, 250)])

    result = refine([box_garment, bowtie])

    assert [p.name for p in result.polygons] == ["garment", "placket"]
    assert any(isinstance(d, GeometryWarning) and d.polygon_name == "placket" for d in result.diagnostics)


def test_inputs_are_not_modified(box_garment, speck_image):
    hole = MaskPolygon("neck", rectangle(105, 105, 115, 115), is_hole=True)
    zone = PreserveZone("label", rectangle(100, 100, 120, 120), "absolute", "critical")
    polygons = [box_garment, hole]
    before_polygons = [p.copy() for p in polygons]
    before_image = speck_image.copy()

    refine(polygons, source=speck_image, preserve_zones=[zone])

    assert polygons == before_polygons
    assert speck_image == before_image


def test_failing_compositor_degrades_to_plain_silhouette(box_garment, monkeypatch):
    orchestrator = MaskRefinementOrchestrator()
    calls = []

    def broken(polygons, requests=(), hints=None, normalized=None):
        calls.append(len(requests))
        if requests:
            raise RuntimeError("punch failed")
        return original(polygons, requests, hints, normalized)

    original = orchestrator.compositor.rasterize
    monkeypatch.setattr(orchestrator.compositor, "rasterize", broken)

    result = orchestrator.refine([box_garment], hollow_regions=[HollowRegionRequest("neckline")])

    assert result.degraded
    assert not result.stage(STAGE_COMPOSITE).succeeded
    assert result.composite is None
    assert isinstance(result.diagnostics[0], StageDegradedWarning)
    assert result.diagnostics[0].stage == STAGE_COMPOSITE
    assert result.mask.alpha()[200, 200] == 255
    assert calls == [1, 0]


def test_failing_metrics_fall_back(box_garment, monkeypatch):
    def broken(polygons, verbose=False):
        raise RuntimeError("metrics unavailable")

    monkeypatch.setattr("core.mask_refinement.compute_quality_metrics", broken)

    result = refine([box_garment])

    assert result.metrics == QualityMetrics.fallback()
    assert not result.stage(STAGE_METRICS).succeeded


def test_speck_in_source_is_filled(box_garment, speck_image):
    result = refine([box_garment], source=speck_image)

    assert np.all(result.refined_source.alpha()[100:105, 100:105] == 255)
    record = result.stage(STAGE_EDGES)
    assert record.succeeded
    assert record.extras["holes_filled"] == 1
    assert record.extras["pixels_filled"] == 25
    assert result.color_report is not None


def test_source_accepts_data_uri(box_garment, speck_image):
    uri = speck_image.to_data_uri()
    assert load_source_image(uri) == speck_image
    with pytest.raises(ConfigError):
        load_source_image("not an image")
    with pytest.raises(ConfigError):
        load_source_image(b"\x89PNG broken")


def test_preserved_source_pixels_are_not_smoothed(box_garment):
    rng = np.random.default_rng(9)
    source = make_rgba(64, 64)
    source.pixels[:, :, :3] = rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
    zone = PreserveZone("logo", rectangle(20, 20, 40, 40), "proportional", "nice_to_have")

    result = refine([MaskPolygon("garment", rectangle(5, 5, 60, 60))], source=source, preserve_zones=[zone])

    assert np.array_equal(result.refined_source.pixels[20:41, 20:41], source.pixels[20:41, 20:41])
    assert not np.array_equal(result.refined_source.pixels[45:55, 45:55], source.pixels[45:55, 45:55])


def test_mask_png_carries_metrics(box_garment):
    result = refine([box_garment], hollow_regions=[{"region_type": "neckline"}])

    embedded = read_mask_metrics(result.mask_png)

    assert embedded["metrics"]["symmetry"] == pytest.approx(result.metrics.symmetry)
    assert embedded["composite"]["processed_regions"] == ["neckline"]
    assert result.mask_data_uri.startswith("data:image/png;base64,")
    assert load_source_image(result.mask_data_uri) == result.mask


def test_dictionary_inputs(box_garment):
    polygons = [{"name": "garment", "pts": box_garment.points},
                {"name": "neck", "pts": rectangle(170, 100, 230, 150), "isHole": True}]

    result = refine(polygons, style_hints={"neckline_style": "v-neck", "category_generic": "dress"},
                    hollow_regions=[{"region_type": "neckline", "keep_hollow": False}])

    assert result.polygons[1].is_hole
    assert result.composite.solid_regions == ["neckline"]
    assert result.proportion_report.category == "dress"


def test_critical_zone_keeps_holes_clear(box_garment):
    hole = MaskPolygon("neck", rectangle(180, 100, 220, 140), is_hole=True)
    zone = PreserveZone("label", rectangle(190, 110, 210, 130), "absolute", "critical")

    result = refine([box_garment, hole], preserve_zones=[zone],
                    hollow_regions=[HollowRegionRequest("neckline")])

    names = [p.name for p in result.polygons]
    assert names == ["garment", "neck", "preserve_label"]
    protective = polygon_bounds(result.polygons[2].points)
    assert not bounds_overlap(polygon_bounds(result.polygons[1].points), protective)
    assert result.mask.alpha()[120, 200] == 255
    assert "neck" in result.stage(STAGE_ZONES).extras["moved_holes"]


def test_safety_erosion_runs_when_enabled(canvas_garment):
    result = refine([canvas_garment], config={"edge_erosion": {"enabled": True}})

    assert [s.stage for s in result.stages][-2:] == [STAGE_EROSION, STAGE_METRICS]
    assert result.erosion_report is not None
    assert result.mask.opaque_pixel_count() < 413 * 413


def test_strict_mode_reports_proportion_violations(box_garment):
    result = refine([box_garment], config={"proportion_validation": {"strict_mode": True}})
    assert any(d.stage == STAGE_PROPORTION for d in result.diagnostics)


def test_invalid_config_is_fatal(box_garment):
    with pytest.raises(ConfigError):
        refine([box_garment], config={"hole_filling": {"connectivity": 6}})
    with pytest.raises(ConfigError):
        MaskRefinementOrchestrator({"no_such_section": {}})
