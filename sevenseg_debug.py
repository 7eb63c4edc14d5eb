"""Debug artifacts for the seven-segment reader.

Nothing here feeds back into decoding: the probe image is painted on a private
copy of the region and the dot rendering only goes to the log.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import cv2
import numpy as np

from sevenseg_model import DigitScan, Region, Segment


def dot_rows(segments: int) -> list[str]:
    """Render a segment set as five rows of three characters."""
    dots = [[" "] * 3 for _ in range(5)]

    if segments & Segment.NORTH_POLE:
        dots[0] = ["*"] * 3
    if segments & Segment.NORTH_WEST:
        for row in (0, 1, 2):
            dots[row][0] = "*"
    if segments & Segment.NORTH_EAST:
        for row in (0, 1, 2):
            dots[row][2] = "*"
    if segments & Segment.EQUATOR:
        dots[2] = ["*"] * 3
    if segments & Segment.SOUTH_WEST:
        for row in (2, 3, 4):
            dots[row][0] = "*"
    if segments & Segment.SOUTH_EAST:
        for row in (2, 3, 4):
            dots[row][2] = "*"
    if segments & Segment.SOUTH_POLE:
        dots[4] = ["*"] * 3

    return ["".join(row) for row in dots]


def dot_lines(segment_sets: Iterable[int]) -> list[str]:
    lines = [""] * 5
    for segments in segment_sets:
        for i, row in enumerate(dot_rows(segments)):
            lines[i] += row + " "
    return lines


def probe_canvas(region: Region, scan: DigitScan) -> np.ndarray:
    """Copy of the region (RGB) with every probed pixel painted green."""
    canvas = np.array(region.pixels, copy=True)
    for probe in scan.probes:
        for point in probe.path:
            value = region.intensity(point)
            canvas[point.y, point.x - region.x_offset] = (value, 255, 0)
    return canvas


def write_probe_image(
    region: Region, scan: DigitScan, debug_dir: Path
) -> Path:
    debug_dir = Path(debug_dir)
    debug_dir.mkdir(parents=True, exist_ok=True)
    path = debug_dir / f"{scan.position}.png"
    canvas = probe_canvas(region, scan)
    if not cv2.imwrite(str(path), cv2.cvtColor(canvas, cv2.COLOR_RGB2BGR)):
        raise OSError(f"Unable to write debug image at {path}")
    return path
