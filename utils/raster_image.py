"""
# raster_image.py - v1.1760400000
# Updated: Friday, October 9, 2026
# Changes in this version:
# - Added data URI decoding/encoding for upstream segmentation payloads
# - Channel count is validated on construction instead of on first use

In-memory pixel buffer used by every refinement stage.
Wraps a numpy uint8 array of shape (height, width, channels) where channels
is 3 (RGB) or 4 (RGBA).
"""

import base64
import io

import numpy as np
from PIL import Image

from utils.errors import ConfigError

OPAQUE_THRESHOLD = 128


class RasterImage:
    """
    Pixel buffer with width, height, channel count and a color-space tag.

    Processing stages treat instances as immutable and return new images;
    use copy() before handing a buffer to code that writes in place.
    """

    def __init__(self, pixels: np.ndarray, color_space: str = "srgb"):
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ConfigError(
                f"Raster buffer must have shape (height, width, 3|4), got {pixels.shape}"
            )
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ConfigError(f"Raster buffer must not be empty, got {pixels.shape}")
        if pixels.dtype != np.uint8:
            pixels = np.clip(pixels, 0, 255).astype(np.uint8)

        self.pixels = np.ascontiguousarray(pixels)
        self.height, self.width, self.channels = self.pixels.shape
        self.color_space = color_space

        if self.pixels.size != self.width * self.height * self.channels:
            raise ConfigError("Raster buffer length does not match width * height * channels")

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def blank(cls, width: int, height: int, channels: int = 4, value: int = 0) -> "RasterImage":
        """Create an image filled with a single value in every channel"""
        if width <= 0 or height <= 0:
            raise ConfigError(f"Raster dimensions must be positive, got {width}x{height}")
        if channels not in (3, 4):
            raise ConfigError(f"Channel count must be 3 or 4, got {channels}")
        return cls(np.full((height, width, channels), value, dtype=np.uint8))

    @classmethod
    def from_bytes(cls, data: bytes) -> "RasterImage":
        """
        Decode an encoded image (PNG, JPEG, ...) into an RGBA raster

        Args:
            data: Encoded image bytes

        Returns:
            RasterImage with 4 channels
        """
        with Image.open(io.BytesIO(data)) as img:
            rgba = img.convert("RGBA")
            return cls(np.array(rgba, dtype=np.uint8))

    @classmethod
    def from_data_uri(cls, data_uri: str) -> "RasterImage":
        """Decode a base64 data URI (data:image/png;base64,...)"""
        if not data_uri.startswith("data:") or "," not in data_uri:
            raise ConfigError("Unsupported image input format, expected a base64 data URI")
        encoded = data_uri.split(",", 1)[1]
        return cls.from_bytes(base64.b64decode(encoded))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def has_alpha(self) -> bool:
        return self.channels == 4

    @property
    def shape(self):
        return self.pixels.shape

    def alpha(self) -> np.ndarray:
        """
        Alpha channel as a (height, width) view

        RGB images are fully opaque, so a constant 255 plane is returned for them.
        """
        if self.has_alpha:
            return self.pixels[:, :, 3]
        return np.full((self.height, self.width), 255, dtype=np.uint8)

    def rgb(self) -> np.ndarray:
        """Color channels as a (height, width, 3) view"""
        return self.pixels[:, :, :3]

    def opaque_mask(self, threshold: int = OPAQUE_THRESHOLD) -> np.ndarray:
        """Boolean mask of pixels whose alpha is at or above the threshold"""
        return self.alpha() >= threshold

    def opaque_pixel_count(self, threshold: int = OPAQUE_THRESHOLD) -> int:
        return int(np.count_nonzero(self.opaque_mask(threshold)))

    def copy(self) -> "RasterImage":
        return RasterImage(self.pixels.copy(), color_space=self.color_space)

    def with_alpha(self, alpha: np.ndarray) -> "RasterImage":
        """
        Return a copy with the alpha channel replaced

        RGB images are promoted to RGBA.
        """
        if alpha.shape != (self.height, self.width):
            raise ConfigError(
                f"Alpha plane shape {alpha.shape} does not match image {self.height}x{self.width}"
            )
        if self.has_alpha:
            pixels = self.pixels.copy()
        else:
            pixels = np.dstack([self.pixels, np.zeros((self.height, self.width), dtype=np.uint8)])
        pixels[:, :, 3] = alpha.astype(np.uint8)
        return RasterImage(pixels, color_space=self.color_space)

    def to_rgba(self) -> "RasterImage":
        if self.has_alpha:
            return self.copy()
        return self.with_alpha(self.alpha())

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def to_pil(self) -> Image.Image:
        # uint8 (h, w, 4) arrays map to RGBA, (h, w, 3) to RGB
        return Image.fromarray(self.pixels)

    def to_png_bytes(self, pnginfo=None) -> bytes:
        """Encode the raster as PNG bytes, optionally with PNG text metadata"""
        buffer = io.BytesIO()
        self.to_pil().save(buffer, "PNG", pnginfo=pnginfo)
        return buffer.getvalue()

    def to_data_uri(self, pnginfo=None) -> str:
        encoded = base64.b64encode(self.to_png_bytes(pnginfo=pnginfo)).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def __eq__(self, other):
        if not isinstance(other, RasterImage):
            return NotImplemented
        return self.color_space == other.color_space and np.array_equal(self.pixels, other.pixels)

    def __repr__(self):
        return f"RasterImage({self.width}x{self.height}, channels={self.channels}, {self.color_space})"
