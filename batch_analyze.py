#!/usr/bin/env python3
"""Batch extract palettes from a directory of images and save swatches."""

import argparse
import logging
import sys
import time
from pathlib import Path

from errors import PaletteError
from extract_colors import extract_dominant_color, extract_palette, render_swatches
from pixel_buffer import DEFAULT_DOWNSCALE, load_buffer
from quantize import QUANTIZERS, get_quantizer

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def find_images(directory: Path) -> list[Path]:
    """Find all image files in directory."""
    extensions = {'.jpg', '.jpeg', '.png', '.webp', '.bmp', '.gif'}
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in extensions)


def process_image(image_path: Path, output_dir: Path, colors: int,
                  method: str, downscale: bool) -> dict:
    """Extract dominant color and palette for one image and write its swatch."""
    buffer = load_buffer(str(image_path), max_size=DEFAULT_DOWNSCALE if downscale else None)
    quantizer = get_quantizer(method)

    dominant = extract_dominant_color(buffer, quantizer=quantizer)
    palette = extract_palette(buffer, colors, quantizer=quantizer)

    swatch_path = output_dir / f"{image_path.stem}-palette.png"
    render_swatches(palette, str(swatch_path))

    return {
        'image': image_path.name,
        'dominant': dominant,
        'palette': palette,
        'swatch': swatch_path,
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Batch extract palettes from images and save swatches.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Directory containing images to analyze'
    )
    parser.add_argument(
        '--output', '-o',
        required=True,
        help='Directory for swatch output files'
    )
    parser.add_argument(
        '--colors', '-n',
        type=int,
        default=8,
        help='Requested palette size (approximate)'
    )
    parser.add_argument(
        '--method',
        choices=sorted(QUANTIZERS),
        default='mediancut',
        help='Quantizer backend'
    )
    parser.add_argument(
        '--no-downscale',
        action='store_true',
        help=f'Process at full resolution instead of downscaling to {DEFAULT_DOWNSCALE}px'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log debug details to stderr'
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)

    input_dir = Path(args.input)
    output_dir = Path(args.output)

    # Validate input directory
    if not input_dir.is_dir():
        print(f"Error: Input directory not found: {input_dir}", file=sys.stderr)
        return 2

    output_dir.mkdir(parents=True, exist_ok=True)

    images = find_images(input_dir)
    if not images:
        print(f"No images found in {input_dir}", file=sys.stderr)
        return 2

    total = len(images)
    succeeded = 0
    failed = []

    batch_start = time.perf_counter()

    for i, image_path in enumerate(images, 1):
        try:
            img_start = time.perf_counter()
            result = process_image(image_path, output_dir, args.colors,
                                   args.method, downscale=not args.no_downscale)
            img_elapsed = time.perf_counter() - img_start

            print(f"[{i}/{total}] {image_path.name} → {result['dominant'].hex} "
                  f"({len(result['palette'])} colors, {img_elapsed:.2f}s)")
            succeeded += 1

        except (PaletteError, ValueError, OSError) as e:
            error_msg = f"{type(e).__name__}: {e}"
            print(f"[{i}/{total}] {image_path.name} → ERROR: {error_msg}", file=sys.stderr)
            failed.append((image_path.name, error_msg))

    batch_elapsed = time.perf_counter() - batch_start

    # Summary
    print()
    print(f"Completed: {succeeded}/{total} succeeded in {batch_elapsed:.2f}s")
    if succeeded > 0:
        print(f"Average: {batch_elapsed / succeeded:.2f}s per image")
    if failed:
        print(f"Failed ({len(failed)}):")
        for name, error in failed:
            print(f"  - {name}: {error}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
