#!/usr/bin/env python3
"""Read a seven-segment display image and print the result to stdout."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Optional

from sevenseg_ocr import DisplayReading, ScanConfig, SevenSegmentError, scan_file

logger = logging.getLogger(__name__)

OUTPUT_STRING = "string"
OUTPUT_INT = "int"


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("Must be at least 1.")
    return number


def format_numeric(reading: DisplayReading, div: float = 0.0) -> str:
    # "-" is the unreadable-digit placeholder, never a sign
    if not reading.well_formed:
        raise SevenSegmentError(f"Result {reading.value!r} has unreadable digits")
    try:
        value = float(reading.value)
    except ValueError as exc:
        raise SevenSegmentError(
            f"Result {reading.value!r} is not a number"
        ) from exc
    if div > 0:
        value = value / div
    return f"{value:f}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Read seven segment display image, output result to stdout.",
    )
    parser.add_argument("-i", "--input", required=True, type=Path, help="Input image file.")
    parser.add_argument(
        "-m",
        "--manifest",
        type=Path,
        help="Manifest file with coordinates for segments.",
    )
    parser.add_argument(
        "-p",
        "--positions",
        required=True,
        type=positive_int,
        help="Number of digits in the image.",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=OUTPUT_STRING,
        choices=[OUTPUT_STRING, OUTPUT_INT],
        help="Output type, int or string.",
    )
    parser.add_argument(
        "--pedantic",
        action="store_true",
        help="Exit with an error rather than print a result with unreadable digits.",
    )
    parser.add_argument(
        "--div",
        type=float,
        default=0.0,
        help="Divide the result by a factor (only int output).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug output.")
    parser.add_argument(
        "--debug-dir",
        type=Path,
        default=Path(os.getenv("SEVENSEG_DEBUG_DIR", "debug")),
        help="Directory for per-position debug images.",
    )
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)-12s - %(levelname)-8s - %(message)s",
        datefmt="%H:%M:%S",
    )

    config = ScanConfig(debug=args.debug, debug_dir=args.debug_dir)
    try:
        reading = scan_file(args.input, args.positions, args.manifest, config)
    except (SevenSegmentError, OSError) as exc:
        raise SystemExit(f"Failed to read {args.input}: {exc}") from exc

    if args.pedantic and not reading.well_formed:
        logger.error("result %r is not well formed (pedantic mode)", reading.value)
        return 1

    if args.output == OUTPUT_INT:
        try:
            print(format_numeric(reading, args.div))
        except SevenSegmentError as exc:
            logger.error("%s", exc)
            return 1
        return 0

    print(reading.value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
