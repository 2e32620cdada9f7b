"""
# color_analysis.py - v1.1760600000
# Created: Sunday, October 11, 2026
Dominant color extraction and an approximate color distance between two
rasters. Only opaque pixels (alpha > 128) take part in any statistic.
ΔE here is a normalized Euclidean RGB distance on a 0-100 scale, not a CIE
formula.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from utils.raster_image import RasterImage

QUANTIZATION_STEP = 32
DOMINANT_COLOR_COUNT = 5
MAX_RGB_DISTANCE = math.sqrt(3 * 255 * 255)

Color = Tuple[int, int, int]


@dataclass
class DominantColor:
    color: Color
    percentage: float


@dataclass
class ColorReport:
    average_color: Color = (0, 0, 0)
    dominant_colors: List[DominantColor] = field(default_factory=list)
    brightness: float = 0.0
    contrast: float = 0.0
    delta_e: float = 0.0
    color_space: str = "srgb"
    opaque_pixels: int = 0

    def to_dict(self):
        return {
            "average_color": list(self.average_color),
            "dominant_colors": [
                {"color": list(d.color), "percentage": d.percentage} for d in self.dominant_colors
            ],
            "brightness": self.brightness,
            "contrast": self.contrast,
            "delta_e": self.delta_e,
            "color_space": self.color_space,
        }


def _opaque_rgb(image: RasterImage) -> np.ndarray:
    """(n, 3) int64 array of the colors of pixels with alpha > 128"""
    rgb = image.rgb().reshape(-1, 3).astype(np.int64)
    opaque = image.alpha().reshape(-1) > 128
    return rgb[opaque]


def average_color(image: RasterImage) -> Color:
    colors = _opaque_rgb(image)
    if len(colors) == 0:
        return 0, 0, 0
    mean = np.floor(colors.mean(axis=0) + 0.5)
    return int(mean[0]), int(mean[1]), int(mean[2])


def delta_e(color_a: Color, color_b: Color) -> float:
    """Euclidean RGB distance scaled to 0-100"""
    distance = math.sqrt(sum((float(a) - float(b)) ** 2 for a, b in zip(color_a, color_b)))
    return distance / MAX_RGB_DISTANCE * 100.0


def dominant_colors(colors: np.ndarray, limit: int = DOMINANT_COLOR_COUNT) -> List[DominantColor]:
    """
    Most frequent colors after quantizing each channel to 32-level bins

    Ties are broken by the quantized color value so the order is stable.
    """
    if len(colors) == 0:
        return []
    quantized = (colors // QUANTIZATION_STEP) * QUANTIZATION_STEP
    bins, counts = np.unique(quantized, axis=0, return_counts=True)
    order = sorted(range(len(bins)), key=lambda i: (-int(counts[i]), tuple(int(v) for v in bins[i])))
    total = float(len(colors))
    return [
        DominantColor(color=tuple(int(v) for v in bins[i]), percentage=int(counts[i]) / total)
        for i in order[:limit]
    ]


def analyze_colors(image: RasterImage, reference: Optional[RasterImage] = None) -> ColorReport:
    """
    Color statistics of the opaque pixels of an image

    Args:
        image: Raster to analyze
        reference: Optional second raster; when given, delta_e is the
            distance between the two average colors

    Returns:
        ColorReport; all zeros for an image without opaque pixels
    """
    colors = _opaque_rgb(image)
    if len(colors) == 0:
        return ColorReport()

    brightness_values = colors.sum(axis=1) / 3.0
    report = ColorReport(
        average_color=average_color(image),
        dominant_colors=dominant_colors(colors),
        brightness=float(brightness_values.mean() / 255.0),
        contrast=float((brightness_values.max() - brightness_values.min()) / 255.0),
        opaque_pixels=len(colors),
    )
    if reference is not None:
        report.delta_e = delta_e(report.average_color, average_color(reference))
    return report


class ColorAnalyzer:
    """Color statistics and drift measurement between refinement stages"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def analyze(self, image: RasterImage, reference: Optional[RasterImage] = None) -> ColorReport:
        report = analyze_colors(image, reference)
        if self.verbose:
            print("Color analysis completed:")
            print(f"  Average color: RGB{report.average_color}")
            print(f"  Brightness: {report.brightness * 100:.1f}%")
            print(f"  Contrast: {report.contrast * 100:.1f}%")
            if reference is not None:
                print(f"  Delta E: {report.delta_e:.2f}")
        return report

    def delta_e(self, image_a: RasterImage, image_b: RasterImage) -> float:
        return delta_e(average_color(image_a), average_color(image_b))
