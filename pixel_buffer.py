#!/usr/bin/env python3
"""
Read-only view over decoded RGBA pixel data.

Strategies in extract_colors only ever see a PixelBuffer; decoding is done
here with Pillow (load_buffer) or by the caller (PixelBuffer(width, height, data)).
"""

import logging
from typing import Optional

import numpy as np
from PIL import Image

from errors import InvalidBufferError, OutOfRangeError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

CHANNELS = 4  # R, G, B, A

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side

DEFAULT_DOWNSCALE = 256  # Longest side when downscaling before extraction


# =============================================================================
# Pixel Buffer
# =============================================================================

class PixelBuffer:
    """
    Flat RGBA buffer in row-major order, 4 bytes per pixel.

    The backing array is copied once and marked read-only, so a buffer can be
    shared between any number of extraction calls.

    Raises:
        InvalidBufferError: If width/height are not positive integers or the data length
            is not width * height * 4.
    """

    __slots__ = ('width', 'height', '_data')

    def __init__(self, width: int, height: int, data) -> None:
        for dim in (width, height):
            if isinstance(dim, bool) or not isinstance(dim, (int, np.integer)):
                raise InvalidBufferError(f"Dimensions must be integers, got {width!r}x{height!r}")
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise InvalidBufferError(f"Dimensions must be positive, got {width}x{height}")

        if isinstance(data, (bytes, bytearray, memoryview)):
            flat = np.frombuffer(bytes(data), dtype=np.uint8)
        else:
            flat = np.asarray(data)
            if flat.dtype != np.uint8:
                if flat.size and (flat.min() < 0 or flat.max() > 255):
                    raise InvalidBufferError("Channel values must be in 0-255")
                flat = flat.astype(np.uint8)
            flat = flat.reshape(-1)

        expected = width * height * CHANNELS
        if flat.size != expected:
            raise InvalidBufferError(
                f"Buffer of {flat.size} bytes does not match {width}x{height} RGBA "
                f"({expected} bytes)"
            )

        flat = flat.copy()
        flat.flags.writeable = False

        self.width = width
        self.height = height
        self._data = flat

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'PixelBuffer':
        """Wrap an (H, W, 4) uint8 array."""
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise InvalidBufferError(f"Expected an (H, W, 4) array, got shape {array.shape}")
        h, w = array.shape[:2]
        return cls(w, h, array)

    @classmethod
    def from_image(cls, img: Image.Image) -> 'PixelBuffer':
        """Wrap a Pillow image, converting to RGBA first."""
        rgba = img.convert('RGBA')
        w, h = rgba.size
        return cls(w, h, rgba.tobytes())

    @property
    def data(self) -> np.ndarray:
        return self._data

    def pixel_count(self) -> int:
        return self.width * self.height

    def pixel_at(self, index: int) -> tuple[int, int, int, int]:
        """Return (r, g, b, a) for the pixel at a row-major index."""
        if index < 0 or index >= self.pixel_count():
            raise OutOfRangeError(
                f"Pixel index {index} outside buffer of {self.pixel_count()} pixels"
            )
        offset = index * CHANNELS
        r, g, b, a = self._data[offset:offset + CHANNELS]
        return int(r), int(g), int(b), int(a)

    def pixels(self) -> np.ndarray:
        """Read-only (N, 4) view of all pixels."""
        return self._data.reshape(-1, CHANNELS)

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"


# =============================================================================
# Loading
# =============================================================================

def load_buffer(image_path: str, max_size: Optional[int] = None) -> PixelBuffer:
    """
    Decode an image file into a PixelBuffer.

    Args:
        image_path: Path to the image file
        max_size: If set, downscale so the longest side is at most this many pixels

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If file is not a valid image or exceeds size limits
    """
    try:
        img = Image.open(image_path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Image not found: {image_path}")
    except Exception as e:
        raise ValueError(f"Could not open image: {e}")

    width, height = img.size
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ValueError(
            f"Image dimensions {width}x{height} exceed maximum "
            f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ValueError(
            f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
        )

    img = img.convert('RGBA')
    if max_size is not None and max(img.size) > max_size:
        img.thumbnail((max_size, max_size))
        logger.debug("Downscaled %s from %dx%d to %dx%d",
                     image_path, width, height, img.size[0], img.size[1])

    buffer = PixelBuffer.from_image(img)
    logger.debug("Loaded %s as %r", image_path, buffer)
    return buffer
