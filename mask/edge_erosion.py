"""
# edge_erosion.py - v1.1760800000
# Created: Tuesday, October 13, 2026
Safety-buffer erosion of a rendered garment mask.

Shrinks the opaque silhouette by a few pixels so that downstream compositing
never bleeds past the garment edge, optionally closes the jagged edge and
small holes left behind, and validates the result.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from mask.mask_analysis import analyze_edges
from mask.mask_enhancement import fill_holes
from mask.mask_operations import MorphologyEngine
from utils.errors import ConfigError
from utils.raster_image import RasterImage, OPAQUE_THRESHOLD

DEFAULT_EROSION_CONFIG = {
    "erosion_pixels": 2.5,
    "iterations": 2,
    "kernel_shape": "circle",
    "preserve_topology": True,
    "smoothing_enabled": True,
    "hole_filling": {
        "enabled": True,
        "max_hole_size": 25,
        "connectivity": 8,
    },
    "quality_validation": {
        "enabled": True,
        "min_mask_area": 0.1,
        "max_hole_size": 50,
    },
}

# Original names accepted for the kernel shape
SHAPE_ALIASES = {"circular": "circle"}

MIN_EDGE_QUALITY = 0.7


def erosion_kernel_size(erosion_pixels: float) -> int:
    """Kernel covering the erosion radius on both sides of the center pixel"""
    if erosion_pixels <= 0:
        raise ConfigError(f"erosion_pixels must be positive, got {erosion_pixels}")
    return int(math.ceil(erosion_pixels * 2)) + 1


def count_components(plane: np.ndarray) -> int:
    """Number of 8-connected foreground components of a boolean plane"""
    count, _ = cv2.connectedComponents(plane.astype(np.uint8), connectivity=8)
    return int(count) - 1


def largest_enclosed_hole(image: RasterImage, threshold: int = OPAQUE_THRESHOLD) -> int:
    """
    Size in pixels of the largest transparent component that does not touch
    the image border
    """
    transparent = (image.alpha() < threshold).astype(np.uint8)
    count, labels, stats, _ = cv2.connectedComponentsWithStats(transparent, connectivity=8)
    height, width = transparent.shape
    largest = 0
    for label in range(1, count):
        x, y, w, h, area = stats[label]
        if x == 0 or y == 0 or x + w == width or y + h == height:
            continue
        largest = max(largest, int(area))
    return largest


@dataclass
class ErosionReport:
    image: RasterImage
    original_pixels: int = 0
    eroded_pixels: int = 0
    erosion_ratio: float = 0.0
    edge_quality: float = 0.0
    topology_preserved: bool = True
    largest_hole: int = 0
    holes_filled: int = 0
    processing_time: float = 0.0
    warnings: List[str] = field(default_factory=list)
    applied_config: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return not self.warnings

    def to_dict(self):
        return {
            "original_pixels": self.original_pixels,
            "eroded_pixels": self.eroded_pixels,
            "erosion_ratio": self.erosion_ratio,
            "edge_quality": self.edge_quality,
            "topology_preserved": self.topology_preserved,
            "largest_hole": self.largest_hole,
            "holes_filled": self.holes_filled,
            "processing_time": self.processing_time,
            "warnings": list(self.warnings),
        }


def _merge(defaults: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = {}
    for key, value in defaults.items():
        merged[key] = dict(value) if isinstance(value, dict) else value
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


class EdgeErosionProcessor:
    """
    Morphological safety erosion with optional smoothing, hole filling and
    quality validation
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, verbose: bool = False):
        self.config = _merge(DEFAULT_EROSION_CONFIG, config)
        self.verbose = verbose

    def apply(self, image: RasterImage, config: Optional[Dict[str, Any]] = None) -> ErosionReport:
        """
        Erode a mask and validate the result

        Args:
            image: RGBA mask (not modified)
            config: Optional per-call overrides of the processor config

        Returns:
            ErosionReport with the processed mask and quality figures
        """
        start_time = time.time()
        settings = _merge(self.config, config)
        shape = SHAPE_ALIASES.get(settings["kernel_shape"], settings["kernel_shape"])
        kernel_size = erosion_kernel_size(settings["erosion_pixels"])
        engine = MorphologyEngine(default_shape=shape, verbose=self.verbose)

        if self.verbose:
            print(f"Starting {settings['erosion_pixels']}px erosion with {settings['iterations']} iterations")

        processed = engine.erode(image, kernel_size, settings["iterations"])

        if settings["smoothing_enabled"]:
            processed = engine.close(processed, 3)

        holes_filled = 0
        hole_settings = settings["hole_filling"]
        if hole_settings["enabled"]:
            outcome = fill_holes(processed, min_size=1, max_size=hole_settings["max_hole_size"],
                                 connectivity=hole_settings["connectivity"])
            processed = outcome.image
            holes_filled = outcome.holes_filled

        report = self.validate(image, processed, settings)
        report.holes_filled = holes_filled
        report.applied_config = settings
        report.processing_time = time.time() - start_time

        if self.verbose:
            print(f"Edge erosion completed in {report.processing_time:.2f}s")
            print(f"  Erosion ratio: {report.erosion_ratio * 100:.1f}%")
            print(f"  Edge quality: {report.edge_quality * 100:.1f}%")
            for warning in report.warnings:
                print(f"  Warning: {warning}")
        return report

    def validate(self, original: RasterImage, processed: RasterImage,
                 settings: Optional[Dict[str, Any]] = None) -> ErosionReport:
        """Compare an eroded mask with its original"""
        settings = settings or self.config
        original_pixels = original.opaque_pixel_count()
        eroded_pixels = processed.opaque_pixel_count()
        erosion_ratio = eroded_pixels / original_pixels if original_pixels else 0.0

        report = ErosionReport(
            image=processed,
            original_pixels=original_pixels,
            eroded_pixels=eroded_pixels,
            erosion_ratio=erosion_ratio,
            edge_quality=analyze_edges(processed).smoothness_score,
            largest_hole=largest_enclosed_hole(processed),
        )

        if settings["preserve_topology"]:
            before = count_components(original.opaque_mask())
            after = count_components(processed.opaque_mask())
            report.topology_preserved = after == before

        quality = settings["quality_validation"]
        if quality["enabled"]:
            if erosion_ratio < quality["min_mask_area"]:
                report.warnings.append(f"Erosion removed too much area: {erosion_ratio * 100:.1f}% remaining")
            if report.largest_hole > quality["max_hole_size"]:
                report.warnings.append(f"Hole of {report.largest_hole}px exceeds {quality['max_hole_size']}px")
            if report.edge_quality < MIN_EDGE_QUALITY:
                report.warnings.append(f"Edge quality below threshold: {report.edge_quality * 100:.1f}%")
            if not report.topology_preserved:
                report.warnings.append("Erosion changed the number of mask components")
        return report


def apply_safety_erosion(image: RasterImage, erosion_pixels: float = 2.5) -> RasterImage:
    """Erode with the safety defaults and return only the processed mask"""
    return EdgeErosionProcessor({"erosion_pixels": erosion_pixels}).apply(image).image
