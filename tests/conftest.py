from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import pytest

from sevenseg_ocr import CHARACTER_TABLE, Segment

DIGIT_WIDTH = 40
DIGIT_HEIGHT = 80
BACKGROUND = 255
INK = 0

# (x0, y0, x1, y1), end-exclusive, inside one 40x80 digit cell. Default anchors
# land at (19, 20) and (18, 60) within the cell.
SEGMENT_RECTS = {
    Segment.NORTH_POLE: (8, 2, 32, 8),
    Segment.NORTH_WEST: (6, 4, 12, 40),
    Segment.NORTH_EAST: (28, 4, 34, 40),
    Segment.EQUATOR: (8, 37, 32, 43),
    Segment.SOUTH_WEST: (6, 40, 12, 76),
    Segment.SOUTH_EAST: (28, 40, 34, 76),
    Segment.SOUTH_POLE: (8, 72, 32, 78),
}

DIGIT_MASKS = {character: mask for mask, character in CHARACTER_TABLE.items()}


def render_digits(text: str) -> np.ndarray:
    """BGR image of ``text``; a space leaves its cell blank."""
    image = np.full((DIGIT_HEIGHT, DIGIT_WIDTH * len(text), 3), BACKGROUND, dtype=np.uint8)
    for cell, character in enumerate(text):
        mask = DIGIT_MASKS.get(character, Segment.NONE)
        offset = cell * DIGIT_WIDTH
        for segment, (x0, y0, x1, y1) in SEGMENT_RECTS.items():
            if mask & segment:
                image[y0:y1, offset + x0 : offset + x1] = INK
    return image


@pytest.fixture
def digit_file(tmp_path: Path):
    def _write(text: str, name: str = "display.png") -> Path:
        path = tmp_path / name
        assert cv2.imwrite(str(path), render_digits(text))
        return path

    return _write


@pytest.fixture
def manifest_file(tmp_path: Path):
    def _write(content: str, name: str = "manifest.json") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
