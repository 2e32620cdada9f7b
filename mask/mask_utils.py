"""
# mask_utils.py - v1.1760800000
# Updated: Tuesday, October 13, 2026
# Changes in this version:
# - Keyframe metadata replaced by refinement metrics stored as a PNG text chunk
# - Functions work on in-memory RasterImage / PNG bytes instead of file paths
# - check_mask_content takes a RasterImage and measures opaque alpha coverage

Mask utility functions for the refinement engine.
Contains helpers for encoding refined masks and reading their metadata back.
"""

import io
import json
import traceback

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from utils.raster_image import RasterImage

METRICS_KEY = "refinement_metrics"
ENGINE_KEY = "refinement_engine"
ENGINE_NAME = "ghost-mask-refiner"


def check_mask_content(image: RasterImage, threshold=5, verbose=False):
    """
    Check if a mask has any meaningful content (opaque pixels)

    Args:
        image: Mask raster
        threshold: Minimum percentage of opaque pixels to consider the mask as having content
                   (0-100, where 0 means any opaque pixel counts)
        verbose: Whether to print the measured coverage

    Returns:
        bool: True if mask has content, False if empty or nearly empty
    """
    total_pixels = image.width * image.height
    coverage = image.opaque_pixel_count() / total_pixels * 100

    if coverage < threshold or coverage == 0:
        if verbose:
            print(f"Mask has only {coverage:.2f}% opaque pixels (below {threshold}% threshold)")
        return False
    if verbose:
        print(f"Mask has {coverage:.2f}% opaque pixels")
    return True


def build_metrics_pnginfo(metrics, extra=None):
    """
    Create PNG metadata carrying refinement metrics

    Args:
        metrics: JSON-serializable metrics dictionary
        extra: Optional dictionary of additional text chunks

    Returns:
        PngInfo ready to pass to RasterImage.to_png_bytes
    """
    metadata = PngInfo()
    metadata.add_text(ENGINE_KEY, ENGINE_NAME)
    metadata.add_text(METRICS_KEY, json.dumps(metrics, sort_keys=True))
    for key, value in (extra or {}).items():
        metadata.add_text(str(key), str(value))
    return metadata


def encode_mask_png(image: RasterImage, metrics=None):
    """
    Encode a mask as PNG bytes, embedding metrics when given

    Returns:
        bytes: PNG data
    """
    pnginfo = build_metrics_pnginfo(metrics) if metrics is not None else None
    return image.to_png_bytes(pnginfo=pnginfo)


def read_mask_metrics(png_bytes):
    """
    Read refinement metrics from PNG bytes

    Args:
        png_bytes: Encoded PNG data

    Returns:
        dict or None: Metrics if found, None if the PNG carries no metrics
    """
    try:
        with Image.open(io.BytesIO(png_bytes)) as img:
            text = getattr(img, "text", None) or {}
            raw = text.get(METRICS_KEY)
            if raw:
                return json.loads(raw)
        return None

    except (OSError, ValueError) as e:
        print(f"Error reading refinement metadata: {str(e)}")
        traceback.print_exc()
        return None
