"""Shared types for the seven-segment reader: errors, geometry and scan results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import NamedTuple, Tuple

import numpy as np


class SevenSegmentError(ValueError):
    pass


class InputError(SevenSegmentError):
    pass


class ManifestError(SevenSegmentError):
    pass


class GeometryError(SevenSegmentError):
    pass


class Point(NamedTuple):
    x: int
    y: int

    def step(self, direction: Direction) -> Point:
        dx, dy = direction.value
        return Point(self.x + dx, self.y + dy)


class Direction(Enum):
    NORTH = (0, -1)
    SOUTH = (0, 1)
    WEST = (-1, 0)
    EAST = (1, 0)


class Segment(IntFlag):
    NONE = 0
    NORTH_POLE = 1
    NORTH_WEST = 2
    NORTH_EAST = 4
    EQUATOR = 8
    SOUTH_WEST = 16
    SOUTH_EAST = 32
    SOUTH_POLE = 64


@dataclass(frozen=True, eq=False)
class Region:
    """Full-height vertical slice of the working image for one digit position.

    Coordinates used by the scanner are in the frame of the whole image, so a
    region's pixel at ``(x, y)`` lives at ``pixels[y, x - x_offset]``.
    """

    index: int
    x_offset: int
    pixels: np.ndarray = field(repr=False)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def contains(self, point: Point) -> bool:
        return (
            self.x_offset <= point.x < self.x_offset + self.width
            and 0 <= point.y < self.height
        )

    def intensity(self, point: Point) -> int:
        if not self.contains(point):
            raise GeometryError(
                f"Point ({point.x}, {point.y}) is outside position {self.index} "
                f"(x {self.x_offset}..{self.x_offset + self.width - 1}, "
                f"y 0..{self.height - 1})"
            )
        # Red channel of the RGB working copy.
        return int(self.pixels[point.y, point.x - self.x_offset, 0])


@dataclass(frozen=True)
class Probe:
    segment: Segment
    origin: Point
    direction: Direction
    minimum: int
    path: Tuple[Point, ...]


@dataclass(frozen=True)
class DigitScan:
    position: int
    segments: Segment
    character: str
    north: Point
    south: Point
    probes: Tuple[Probe, ...] = field(default=(), repr=False)
