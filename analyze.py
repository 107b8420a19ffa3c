#!/usr/bin/env python3
"""
Extract representative colors from a single image.

Prints one hex color per line and optionally writes a PNG swatch strip.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from color import Color, parse_hex_color
from errors import PaletteError
from extract_colors import (
    DEFAULT_SAMPLE_STRIDE,
    extract_area_palette,
    extract_average_color,
    extract_corner_colors,
    extract_dominant_color,
    extract_edge_color,
    extract_palette,
    render_swatches,
)
from pixel_buffer import DEFAULT_DOWNSCALE, PixelBuffer, load_buffer
from quantize import QUANTIZERS, get_quantizer

STRATEGIES = ('dominant', 'palette', 'average', 'edge', 'corners', 'area')
# Strategies that still hold on resampled input
DOWNSCALED_STRATEGIES = ('dominant', 'palette')

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def run_strategy(
    buffer: PixelBuffer,
    strategy: str,
    colors: int = 8,
    stride: int = DEFAULT_SAMPLE_STRIDE,
    edge_width: int = 10,
    excluded: Optional[list[Color]] = None,
    method: str = 'mediancut',
) -> list[Color]:
    """Run one extraction strategy and return its colors as a list."""
    if strategy == 'dominant':
        return [extract_dominant_color(buffer, quantizer=get_quantizer(method))]
    elif strategy == 'palette':
        return extract_palette(buffer, colors, excluded=excluded, quantizer=get_quantizer(method))
    elif strategy == 'average':
        return [extract_average_color(buffer, sample_stride=stride)]
    elif strategy == 'edge':
        return [extract_edge_color(buffer, edge_width)]
    elif strategy == 'corners':
        return extract_corner_colors(buffer)
    elif strategy == 'area':
        return extract_area_palette(buffer, colors)
    else:
        raise ValueError(f"Unknown strategy: {strategy}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Extract representative colors from an image.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Path to the image file'
    )
    parser.add_argument(
        '--strategy', '-s',
        choices=STRATEGIES,
        default='palette',
        help='Extraction strategy (default: palette)'
    )
    parser.add_argument(
        '--colors', '-n',
        type=int,
        default=8,
        help='Requested palette size for palette/area (approximate)'
    )
    parser.add_argument(
        '--stride',
        type=int,
        default=DEFAULT_SAMPLE_STRIDE,
        help='Sample every Nth pixel for the average strategy'
    )
    parser.add_argument(
        '--edge-width',
        type=int,
        default=10,
        help='Border width in pixels for the edge strategy'
    )
    parser.add_argument(
        '--exclude',
        action='append',
        default=[],
        metavar='HEX',
        help='Leave out pixels of this exact color (palette only, repeatable)'
    )
    parser.add_argument(
        '--method',
        choices=sorted(QUANTIZERS),
        default='mediancut',
        help='Quantizer for dominant/palette'
    )
    parser.add_argument(
        '--no-downscale',
        action='store_true',
        help=f'Run dominant/palette at full resolution instead of downscaling to {DEFAULT_DOWNSCALE}px'
    )
    parser.add_argument(
        '--output', '-o',
        nargs='?',
        const=True,
        default=None,
        help='Write a PNG swatch. Optionally specify path, otherwise auto-names from input.'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log debug details to stderr'
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)

    image_path = Path(args.input)

    try:
        excluded = [parse_hex_color(value) for value in args.exclude]
        downscale = args.strategy in DOWNSCALED_STRATEGIES and not args.no_downscale
        max_size = DEFAULT_DOWNSCALE if downscale else None
        buffer = load_buffer(str(image_path), max_size=max_size)
        palette = run_strategy(
            buffer, args.strategy,
            colors=args.colors, stride=args.stride, edge_width=args.edge_width,
            excluded=excluded, method=args.method,
        )
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (PaletteError, ValueError) as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        return 1

    for color in palette:
        print(f"{color.hex}  rgb({color.r}, {color.g}, {color.b})")

    if args.output:
        if args.output is True:
            output_path = image_path.with_name(f"{image_path.stem}-{args.strategy}.png")
        else:
            output_path = Path(args.output)

        try:
            render_swatches(palette, str(output_path))
            print(f"\nWrote: {output_path}")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
