"""
# mask_operations.py - v1.1760500000
# Updated: Saturday, October 10, 2026
# Changes in this version:
# - Rewrote erosion/dilation to run on the alpha channel of RasterImage buffers
# - Structuring elements are generated per call (circle, square, diamond, cross)
# - Border band of kernel_size // 2 is never written, so no padding is needed
# - Erosion/dilation call cv2.erode/cv2.dilate once per iteration and restore the band
# - Invalid kernel sizes raise ConfigError instead of returning None

Morphological mask operations for the refinement engine.
Erosion takes the minimum alpha under the structuring element, dilation the
maximum. Both run through OpenCV and then restore the border band.
"""

import cv2
import numpy as np
from typing import Dict

from utils.errors import ConfigError, require_positive_int
from utils.raster_image import RasterImage

KERNEL_SHAPES = ("circle", "square", "diamond", "cross")


def create_structuring_element(kernel_size: int, shape: str = "circle") -> np.ndarray:
    """
    Build a boolean structuring element

    A cell at offset (dx, dy) from the kernel center is "on" when it satisfies
    the shape predicate, with radius = kernel_size // 2:
      circle:  dx^2 + dy^2 <= radius^2
      square:  always
      diamond: |dx| + |dy| <= radius
      cross:   dx == 0 or dy == 0

    Args:
        kernel_size: Width and height of the element
        shape: One of KERNEL_SHAPES

    Returns:
        (kernel_size, kernel_size) boolean array
    """
    kernel_size = require_positive_int("kernel_size", kernel_size)
    if shape not in KERNEL_SHAPES:
        raise ConfigError(f"Unknown kernel shape: {shape}. Expected one of {KERNEL_SHAPES}")

    center = kernel_size // 2
    offsets = np.arange(kernel_size) - center
    dy, dx = np.meshgrid(offsets, offsets, indexing="ij")

    if shape == "circle":
        return dx * dx + dy * dy <= center * center
    if shape == "square":
        return np.ones((kernel_size, kernel_size), dtype=bool)
    if shape == "diamond":
        return np.abs(dx) + np.abs(dy) <= center
    return (dx == 0) | (dy == 0)


def _validate_kernel(image: RasterImage, kernel_size, iterations):
    kernel_size = require_positive_int(
        "kernel_size", kernel_size, maximum=min(image.width, image.height)
    )
    iterations = require_positive_int("iterations", iterations)
    return kernel_size, iterations


def _apply_rank_filter(alpha: np.ndarray, element: np.ndarray, operation) -> np.ndarray:
    """
    Apply cv2.erode or cv2.dilate to the interior of an alpha plane

    Args:
        alpha: (height, width) uint8 plane
        element: Boolean structuring element
        operation: cv2.erode or cv2.dilate

    Returns:
        New plane; pixels within kernel_size // 2 of any edge are copied unchanged
    """
    height, width = alpha.shape
    half = element.shape[0] // 2
    if height - 2 * half <= 0 or width - 2 * half <= 0:
        return alpha.copy()

    result = operation(np.ascontiguousarray(alpha), element.astype(np.uint8), anchor=(half, half))
    if half:
        result[:half, :] = alpha[:half, :]
        result[height - half:, :] = alpha[height - half:, :]
        result[:, :half] = alpha[:, :half]
        result[:, width - half:] = alpha[:, width - half:]
    return result


def erode(image: RasterImage, kernel_size: int = 3, iterations: int = 1,
          shape: str = "circle") -> RasterImage:
    """
    Erode the alpha channel of an image

    Args:
        image: Input raster (not modified)
        kernel_size: Size of the structuring element
        iterations: Number of times to re-apply erosion to its own output
        shape: Structuring element shape

    Returns:
        New raster with eroded alpha; color channels are copied unchanged

    The border band is left as it was, so dilating this result can grow an
    opaque border back into the interior. Use open_mask for a bounded opening.
    """
    kernel_size, iterations = _validate_kernel(image, kernel_size, iterations)
    element = create_structuring_element(kernel_size, shape)
    if not image.has_alpha:
        return image.copy()

    alpha = image.alpha()
    for _ in range(iterations):
        alpha = _apply_rank_filter(alpha, element, cv2.erode)
    return image.with_alpha(alpha)


def dilate(image: RasterImage, kernel_size: int = 3, iterations: int = 1,
           shape: str = "circle") -> RasterImage:
    """
    Dilate the alpha channel of an image

    Args:
        image: Input raster (not modified)
        kernel_size: Size of the structuring element
        iterations: Number of times to re-apply dilation to its own output
        shape: Structuring element shape

    Returns:
        New raster with dilated alpha; color channels are copied unchanged

    Opaque pixels in the untouched border band still feed the interior, so
    dilate(erode(x)) may cover more than x.
    """
    kernel_size, iterations = _validate_kernel(image, kernel_size, iterations)
    element = create_structuring_element(kernel_size, shape)
    if not image.has_alpha:
        return image.copy()

    alpha = image.alpha()
    for _ in range(iterations):
        alpha = _apply_rank_filter(alpha, element, cv2.dilate)
    return image.with_alpha(alpha)


def open_mask(image: RasterImage, kernel_size: int = 3, shape: str = "circle") -> RasterImage:
    """
    Erode then dilate: removes specks smaller than the kernel

    The result is clamped to the input alpha. The untouched border band can
    otherwise feed opaque values back into the interior during dilation.
    """
    opened = dilate(erode(image, kernel_size, 1, shape), kernel_size, 1, shape)
    if not image.has_alpha:
        return opened
    return opened.with_alpha(np.minimum(opened.alpha(), image.alpha()))


def close_mask(image: RasterImage, kernel_size: int = 3, shape: str = "circle") -> RasterImage:
    """Dilate then erode: closes gaps smaller than the kernel"""
    return erode(dilate(image, kernel_size, 1, shape), kernel_size, 1, shape)


class MorphologyEngine:
    """
    Stateless wrapper around the morphology functions with progress output
    and per-operation counters for diagnostics.
    """

    def __init__(self, default_shape: str = "circle", verbose: bool = False):
        """
        Initialize the morphology engine

        Args:
            default_shape: Structuring element shape used when none is given
            verbose: Whether to print each operation
        """
        if default_shape not in KERNEL_SHAPES:
            raise ConfigError(f"Unknown kernel shape: {default_shape}")
        self.default_shape = default_shape
        self.verbose = verbose

    def erode(self, image: RasterImage, kernel_size: int = 3, iterations: int = 1,
              shape: str = None) -> RasterImage:
        shape = shape or self.default_shape
        result = erode(image, kernel_size, iterations, shape)
        if self.verbose:
            print(f"Eroded mask: {kernel_size}x{kernel_size} {shape} kernel, {iterations} iterations, "
                  f"{image.opaque_pixel_count()} -> {result.opaque_pixel_count()} opaque pixels")
        return result

    def dilate(self, image: RasterImage, kernel_size: int = 3, iterations: int = 1,
               shape: str = None) -> RasterImage:
        shape = shape or self.default_shape
        result = dilate(image, kernel_size, iterations, shape)
        if self.verbose:
            print(f"Dilated mask: {kernel_size}x{kernel_size} {shape} kernel, {iterations} iterations, "
                  f"{image.opaque_pixel_count()} -> {result.opaque_pixel_count()} opaque pixels")
        return result

    def open(self, image: RasterImage, kernel_size: int = 3, shape: str = None) -> RasterImage:
        return open_mask(image, kernel_size, shape or self.default_shape)

    def close(self, image: RasterImage, kernel_size: int = 3, shape: str = None) -> RasterImage:
        return close_mask(image, kernel_size, shape or self.default_shape)

    def describe_kernel(self, kernel_size: int, shape: str = None) -> Dict[str, object]:
        """Summary of a structuring element, used in erosion reports"""
        shape = shape or self.default_shape
        element = create_structuring_element(kernel_size, shape)
        return {"size": int(kernel_size), "shape": shape, "active_cells": int(element.sum())}
