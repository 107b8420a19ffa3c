#!/usr/bin/env python3
"""
Extract representative colors from an RGBA pixel buffer.

Strategies:
    extract_palette / extract_dominant_color  - median cut over opaque pixels
    extract_average_color                     - sparse strided average
    extract_edge_color                        - average of a border band
    extract_corner_colors                     - the four corner samples
    extract_area_palette                      - grid of cell averages

Opacity rules differ between strategies on purpose: the palette filter and
corners keep alpha >= 125, the two averages keep alpha > 125, and the area
grid does not filter at all.
"""

import logging
import math
from typing import Iterable, Optional

import numpy as np
from PIL import Image, ImageDraw

from color import Color
from errors import EmptyCellError, EmptyInputError, NoOpaqueSamplesError
from pixel_buffer import PixelBuffer
from quantize import MedianCutQuantizer, Quantizer

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

OPACITY_THRESHOLD = 125  # Alpha at which a pixel counts as "mostly opaque"
DOMINANT_PALETTE_SIZE = 5  # Palette size used to pick the dominant color
DEFAULT_SAMPLE_STRIDE = 10  # Every Nth pixel for extract_average_color


# =============================================================================
# Pixel Filter
# =============================================================================

def exclusion_set(excluded: Optional[Iterable[tuple]]) -> frozenset:
    """Normalise exclusion colors to a set of plain (r, g, b) int tuples."""
    if not excluded:
        return frozenset()
    return frozenset(tuple(int(v) for v in color) for color in excluded)


def include_pixel(pixel: tuple, excluded: Optional[Iterable[tuple]] = None) -> bool:
    """
    Return True if an (r, g, b, a) pixel should be sampled.

    Pass the result of exclusion_set when checking many pixels so the set is
    built once.
    """
    r, g, b, a = pixel
    if a < OPACITY_THRESHOLD:
        return False
    if not excluded:
        return True
    if not isinstance(excluded, (set, frozenset)):
        excluded = exclusion_set(excluded)
    return (r, g, b) not in excluded


def filter_mask(pixels: np.ndarray, excluded: Optional[Iterable[tuple]] = None) -> np.ndarray:
    """Vectorised include_pixel over an (N, 4) array."""
    mask = pixels[:, 3] >= OPACITY_THRESHOLD
    if excluded:
        rgb = pixels[:, :3]
        for color in exclusion_set(excluded):
            mask &= ~np.all(rgb == np.asarray(color, dtype=np.uint8), axis=1)
    return mask


def _mean_color(rgb: np.ndarray) -> Color:
    """Per-channel mean of an (N, 3) array, truncated toward zero."""
    totals = rgb.astype(np.int64).sum(axis=0)
    return Color(*(int(t) // len(rgb) for t in totals))


# =============================================================================
# Quantization-based
# =============================================================================

def extract_palette(
    buffer: PixelBuffer,
    color_count: int,
    excluded: Optional[Iterable[tuple]] = None,
    quantizer: Optional[Quantizer] = None,
) -> list[Color]:
    """
    Cluster the opaque pixels of an image into a palette.

    Args:
        buffer: Source pixels
        color_count: Requested palette size; the result may be a little shorter
            or longer, depending on how the quantizer splits
        excluded: Exact RGB colors to leave out (e.g. a known background)
        quantizer: Clustering backend, MedianCutQuantizer by default

    Returns:
        Colors ordered by cluster population, largest first.

    Raises:
        EmptyInputError: If no pixel survives the filter
    """
    pixels = buffer.pixels()
    excluded = exclusion_set(excluded)
    colors = pixels[filter_mask(pixels, excluded), :3]

    if len(colors) == 0:
        raise EmptyInputError(f"No opaque pixels to quantize in {buffer!r}")

    quantizer = quantizer or MedianCutQuantizer()
    palette = quantizer.quantize(colors, color_count)
    logger.debug("Palette of %d colors from %d of %d pixels",
                 len(palette), len(colors), buffer.pixel_count())
    return list(palette)


def extract_dominant_color(buffer: PixelBuffer, quantizer: Optional[Quantizer] = None) -> Color:
    """Base color of the most populous cluster."""
    return extract_palette(buffer, DOMINANT_PALETTE_SIZE, quantizer=quantizer)[0]


# =============================================================================
# Averages
# =============================================================================

def extract_average_color(buffer: PixelBuffer, sample_stride: int = DEFAULT_SAMPLE_STRIDE) -> Color:
    """
    Average of every `sample_stride`-th pixel, starting at index `sample_stride`.

    Tends to return a muddy gray/brown; extract_dominant_color is usually the
    better choice.

    Raises:
        NoOpaqueSamplesError: If no sampled pixel has alpha above 125
    """
    if sample_stride < 1:
        raise ValueError(f"Sample stride must be at least 1, got {sample_stride}")

    indices = np.arange(sample_stride, buffer.pixel_count(), sample_stride)
    samples = buffer.pixels()[indices]
    opaque = samples[samples[:, 3] > OPACITY_THRESHOLD]

    if len(opaque) == 0:
        raise NoOpaqueSamplesError(
            f"No opaque samples among {len(samples)} pixels at stride {sample_stride}"
        )
    return _mean_color(opaque[:, :3])


def edge_mask(width: int, height: int, edge_width: int) -> np.ndarray:
    """Boolean (H, W) mask of the border band used by extract_edge_color."""
    y = np.arange(height)[:, None]
    x = np.arange(width)[None, :]
    return (y < edge_width) | (y > height - edge_width) | (x < edge_width) | (x > width - edge_width)


def extract_edge_color(buffer: PixelBuffer, edge_width: int) -> Color:
    """
    Average color of the pixels around the outside of the image.

    A quick guess at the background color for many kinds of images. The bottom
    and right bands start strictly after height - edge_width and
    width - edge_width, so they are one pixel narrower than the top and left.

    Raises:
        NoOpaqueSamplesError: If the band holds no pixel with alpha above 125
    """
    if edge_width < 0:
        raise ValueError(f"Edge width must not be negative, got {edge_width}")

    band = edge_mask(buffer.width, buffer.height, edge_width).reshape(-1)
    pixels = buffer.pixels()[band]
    opaque = pixels[pixels[:, 3] > OPACITY_THRESHOLD]

    if len(opaque) == 0:
        raise NoOpaqueSamplesError(
            f"No opaque pixels in {edge_width}px edge of {buffer!r}"
        )
    logger.debug("Edge color from %d of %d band pixels", len(opaque), len(pixels))
    return _mean_color(opaque[:, :3])


# =============================================================================
# Samples
# =============================================================================

def corner_positions(width: int, height: int) -> list[int]:
    """Pixel indices sampled by extract_corner_colors."""
    total = width * height
    return [0, width - 1, total - width - 1, total - 1]


def extract_corner_colors(buffer: PixelBuffer) -> list[Color]:
    """
    Colors at the top-left, top-right, bottom-left and bottom-right samples.

    Corners below the opacity threshold are left out, so the result holds
    between 0 and 4 colors.
    """
    corners = []
    for position in corner_positions(buffer.width, buffer.height):
        if position < 0:
            # Single-row images have no pixel before the last row
            logger.debug("Skipping corner position %d in %r", position, buffer)
            continue
        r, g, b, a = buffer.pixel_at(position)
        if a < OPACITY_THRESHOLD:
            continue
        corners.append(Color(r, g, b))
    return corners


# =============================================================================
# Area Grid
# =============================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def grid_shape(width: int, height: int, color_count: int) -> tuple[int, int, int]:
    """Return (cells per side, cell width, cell height) for an area palette."""
    cells = _round_half_up(math.sqrt(color_count))
    return cells, _round_half_up(width / cells), _round_half_up(height / cells)


def extract_area_palette(buffer: PixelBuffer, color_count: int) -> list[Color]:
    """
    Split the image into a square grid and average each cell.

    The grid has round(sqrt(color_count)) cells per side, so the palette has
    exactly that number squared colors. No alpha filtering is applied. Cells
    that run past the right or bottom edge only average their in-bounds pixels.

    Raises:
        EmptyCellError: If rounding leaves a cell with no in-bounds pixels
    """
    if color_count < 1:
        raise ValueError(f"Color count must be at least 1, got {color_count}")

    cells, cell_w, cell_h = grid_shape(buffer.width, buffer.height, color_count)
    image = buffer.pixels().reshape(buffer.height, buffer.width, 4)

    palette = []
    for row in range(cells):
        for col in range(cells):
            y0 = row * cell_h
            x0 = col * cell_w
            cell = image[y0:y0 + cell_h, x0:x0 + cell_w, :3].reshape(-1, 3)
            if len(cell) == 0:
                raise EmptyCellError(
                    f"Cell ({row}, {col}) of a {cells}x{cells} grid is outside {buffer!r}"
                )
            palette.append(_mean_color(cell))

    logger.debug("Area palette: %dx%d cells of %dx%d px", cells, cells, cell_w, cell_h)
    return palette


# =============================================================================
# Visualization
# =============================================================================

def render_swatches(palette: list[Color], output_path: str) -> None:
    """
    Save a swatch strip of the palette with hex labels.

    Args:
        palette: Colors to draw, in order
        output_path: Path to save the output image
    """
    swatch_size = 80
    padding = 10
    text_height = 25
    cols = max(1, min(len(palette), 6))
    rows = max(1, (len(palette) + cols - 1) // cols)

    img_width = cols * (swatch_size + padding) + padding
    img_height = rows * (swatch_size + text_height + padding) + padding

    img = Image.new('RGB', (img_width, img_height), (240, 240, 240))
    draw = ImageDraw.Draw(img)

    for i, color in enumerate(palette):
        row = i // cols
        col = i % cols

        x = padding + col * (swatch_size + padding)
        y = padding + row * (swatch_size + text_height + padding)

        draw.rectangle([x, y, x + swatch_size, y + swatch_size], fill=tuple(color))

        # Center label under swatch
        text = color.hex
        bbox = draw.textbbox((0, 0), text)
        text_width = bbox[2] - bbox[0]
        text_x = x + (swatch_size - text_width) // 2
        draw.text((text_x, y + swatch_size + 4), text, fill=(0, 0, 0))

    img.save(output_path)
    logger.debug("Saved %d swatches to %s", len(palette), output_path)
