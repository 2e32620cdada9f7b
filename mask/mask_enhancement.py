"""
# mask_enhancement.py - v1.1760500000
# Updated: Saturday, October 10, 2026
# Changes in this version:
# - Replaced chunk-border gap filling with a bounded flood-fill hole filler
# - Added edge-preserving bilateral smoothing of the color channels
# - Hole filling reports how many components were found and filled
# - Smoothing intensity presets shared with the refinement config

Mask enhancement utilities: edge-preserving smoothing and small-hole closing.
"""

from dataclasses import dataclass

import numpy as np

from utils.errors import ConfigError, require_positive_int, require_positive_number
from utils.raster_image import RasterImage, OPAQUE_THRESHOLD

# diameter, sigma_color, sigma_space
SMOOTHING_PRESETS = {
    "low": (3, 15.0, 15.0),
    "medium": (5, 25.0, 25.0),
    "high": (7, 40.0, 40.0),
}

NEIGHBORS_4 = ((-1, 0), (1, 0), (0, -1), (0, 1))
NEIGHBORS_8 = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))


def compute_spatial_weights(diameter: int, sigma_space: float) -> np.ndarray:
    """
    Gaussian weights over the neighborhood offsets

    Args:
        diameter: Neighborhood size; the table covers offsets -d//2..d//2
        sigma_space: Spatial standard deviation

    Returns:
        Square float64 table indexed by [dy + half, dx + half]
    """
    half = diameter // 2
    offsets = np.arange(-half, half + 1, dtype=np.float64)
    dy, dx = np.meshgrid(offsets, offsets, indexing="ij")
    return np.exp(-(dx * dx + dy * dy) / (2.0 * sigma_space * sigma_space))


def smooth(image: RasterImage, diameter: int = 5, sigma_color: float = 25.0,
           sigma_space: float = 25.0) -> RasterImage:
    """
    Bilateral filter of the RGB channels

    Each interior pixel becomes the average of its neighborhood weighted by a
    spatial Gaussian times a Gaussian of the Euclidean RGB distance to the
    center pixel. Alpha is preserved, and the border band of diameter // 2
    pixels is copied unchanged.

    Args:
        image: Input raster (not modified)
        diameter: Neighborhood size
        sigma_color: Color standard deviation
        sigma_space: Spatial standard deviation

    Returns:
        New smoothed raster
    """
    diameter = require_positive_int("diameter", diameter, maximum=min(image.width, image.height))
    sigma_color = require_positive_number("sigma_color", sigma_color)
    sigma_space = require_positive_number("sigma_space", sigma_space)

    half = diameter // 2
    height, width = image.height, image.width
    inner_h = height - 2 * half
    inner_w = width - 2 * half
    result = image.copy()
    if half == 0 or inner_h <= 0 or inner_w <= 0:
        return result

    rgb = image.rgb().astype(np.float64)
    spatial = compute_spatial_weights(diameter, sigma_space)
    center = rgb[half: half + inner_h, half: half + inner_w]
    color_denominator = 2.0 * sigma_color * sigma_color

    weight_sum = np.zeros((inner_h, inner_w), dtype=np.float64)
    accumulated = np.zeros((inner_h, inner_w, 3), dtype=np.float64)

    for dy in range(-half, half + 1):
        for dx in range(-half, half + 1):
            neighbor = rgb[half + dy: half + dy + inner_h, half + dx: half + dx + inner_w]
            distance_sq = np.sum((center - neighbor) ** 2, axis=2)
            weight = spatial[dy + half, dx + half] * np.exp(-distance_sq / color_denominator)
            weight_sum += weight
            accumulated += neighbor * weight[:, :, None]

    # The center offset always contributes weight 1, so weight_sum > 0
    filtered = np.floor(accumulated / weight_sum[:, :, None] + 0.5)
    result.pixels[half: half + inner_h, half: half + inner_w, :3] = np.clip(filtered, 0, 255).astype(np.uint8)
    return result


class BilateralSmoother:
    """
    Edge-preserving noise reduction with named intensity presets
    """

    def __init__(self, intensity: str = "medium", verbose: bool = False):
        """
        Initialize the smoother

        Args:
            intensity: One of SMOOTHING_PRESETS (low, medium, high)
            verbose: Whether to print progress
        """
        if intensity not in SMOOTHING_PRESETS:
            raise ConfigError(f"Unknown smoothing intensity: {intensity}")
        self.intensity = intensity
        self.verbose = verbose

    @property
    def parameters(self):
        return SMOOTHING_PRESETS[self.intensity]

    def smooth(self, image: RasterImage, diameter: int = None, sigma_color: float = None,
               sigma_space: float = None) -> RasterImage:
        preset_d, preset_color, preset_space = self.parameters
        diameter = preset_d if diameter is None else diameter
        sigma_color = preset_color if sigma_color is None else sigma_color
        sigma_space = preset_space if sigma_space is None else sigma_space

        if self.verbose:
            print(f"Applying bilateral filter: d={diameter}, sigma_color={sigma_color}, sigma_space={sigma_space}")
        return smooth(image, diameter, sigma_color, sigma_space)


@dataclass
class HoleFillResult:
    image: RasterImage
    holes_filled: int = 0
    pixels_filled: int = 0
    components_found: int = 0
    pixels_visited: int = 0


def _validate_fill_parameters(min_size, max_size, connectivity):
    if connectivity not in (4, 8) or isinstance(connectivity, bool):
        raise ConfigError(f"connectivity must be 4 or 8, got {connectivity!r}")
    if isinstance(min_size, bool) or not isinstance(min_size, (int, np.integer)) or min_size < 0:
        raise ConfigError(f"min_size must be a non-negative integer, got {min_size!r}")
    if isinstance(max_size, bool) or not isinstance(max_size, (int, np.integer)) or max_size < 0:
        raise ConfigError(f"max_size must be a non-negative integer, got {max_size!r}")
    if min_size > max_size:
        raise ConfigError(f"min_size ({min_size}) must not exceed max_size ({max_size})")


def fill_holes(image: RasterImage, min_size: int = 10, max_size: int = 1000,
               connectivity: int = 8, whiten: bool = False,
               threshold: int = OPAQUE_THRESHOLD) -> HoleFillResult:
    """
    Close small transparent components of the alpha channel

    Pixels are scanned in raster order. Every unvisited pixel with alpha below
    the threshold seeds an explicit-stack flood fill that collects its
    connected component. Components whose size lies in [min_size, max_size]
    are made fully opaque; larger or smaller ones are left untouched. Each
    pixel enters the stack at most once, so the total work is O(width * height).

    Args:
        image: Input raster (not modified)
        min_size: Smallest component size to fill (inclusive)
        max_size: Largest component size to fill (inclusive)
        connectivity: 4 or 8
        whiten: Also set RGB of filled pixels to white
        threshold: Alpha below this value counts as a hole

    Returns:
        HoleFillResult with the new image and fill statistics
    """
    _validate_fill_parameters(min_size, max_size, connectivity)
    result = image.copy()
    if not image.has_alpha:
        return HoleFillResult(image=result)

    height, width = image.height, image.width
    hole_plane = image.alpha() < threshold
    is_hole = hole_plane.ravel().tolist()
    visited = bytearray(width * height)
    neighbors = NEIGHBORS_8 if connectivity == 8 else NEIGHBORS_4

    fill_indices = []
    holes_filled = 0
    components_found = 0
    pixels_visited = 0

    for seed in np.flatnonzero(hole_plane).tolist():
        if visited[seed]:
            continue

        components_found += 1
        component = []
        stack = [seed]
        visited[seed] = 1

        while stack:
            index = stack.pop()
            component.append(index)
            pixels_visited += 1
            y, x = divmod(index, width)

            for dy, dx in neighbors:
                ny = y + dy
                nx = x + dx
                if ny < 0 or ny >= height or nx < 0 or nx >= width:
                    continue
                neighbor = ny * width + nx
                if visited[neighbor] or not is_hole[neighbor]:
                    continue
                visited[neighbor] = 1
                stack.append(neighbor)

        if min_size <= len(component) <= max_size:
            holes_filled += 1
            fill_indices.extend(component)

    if fill_indices:
        flat = result.pixels.reshape(-1, result.channels)
        indices = np.asarray(fill_indices, dtype=np.int64)
        flat[indices, 3] = 255
        if whiten:
            flat[indices, :3] = 255

    return HoleFillResult(
        image=result,
        holes_filled=holes_filled,
        pixels_filled=len(fill_indices),
        components_found=components_found,
        pixels_visited=pixels_visited,
    )


class HoleFiller:
    """
    Bounded hole filler with progress output
    """

    def __init__(self, min_size: int = 10, max_size: int = 1000, connectivity: int = 8,
                 whiten: bool = False, verbose: bool = False):
        _validate_fill_parameters(min_size, max_size, connectivity)
        self.min_size = min_size
        self.max_size = max_size
        self.connectivity = connectivity
        self.whiten = whiten
        self.verbose = verbose

    def fill_holes(self, image: RasterImage, min_size: int = None, max_size: int = None,
                   connectivity: int = None) -> HoleFillResult:
        min_size = self.min_size if min_size is None else min_size
        max_size = self.max_size if max_size is None else max_size
        connectivity = self.connectivity if connectivity is None else connectivity

        if self.verbose:
            print(f"Filling holes: {min_size}-{max_size} pixels, {connectivity}-connectivity")

        outcome = fill_holes(image, min_size, max_size, connectivity, whiten=self.whiten)

        if self.verbose:
            print(f"Hole filling completed: {outcome.holes_filled} of {outcome.components_found} "
                  f"components filled, {outcome.pixels_filled} pixels")
        return outcome


def smoothing_preset(intensity: str):
    """Look up (diameter, sigma_color, sigma_space) for a named intensity"""
    if intensity not in SMOOTHING_PRESETS:
        raise ConfigError(f"Unknown smoothing intensity: {intensity}")
    return SMOOTHING_PRESETS[intensity]

