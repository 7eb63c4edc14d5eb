from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple

import cv2
import numpy as np

import sevenseg_debug
from sevenseg_model import (
    DigitScan,
    Direction,
    GeometryError,
    InputError,
    ManifestError,
    Point,
    Probe,
    Region,
    Segment,
    SevenSegmentError,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"
ACTIVE_THRESHOLD = 0.5
SIDE_PROBE_RATIO = 0.4


_S = Segment
CHARACTER_TABLE = {
    _S.NORTH_POLE | _S.NORTH_WEST | _S.NORTH_EAST | _S.SOUTH_WEST | _S.SOUTH_EAST | _S.SOUTH_POLE: "0",
    _S.NORTH_EAST | _S.SOUTH_EAST: "1",
    _S.NORTH_POLE | _S.NORTH_EAST | _S.EQUATOR | _S.SOUTH_WEST | _S.SOUTH_POLE: "2",
    _S.NORTH_POLE | _S.NORTH_EAST | _S.EQUATOR | _S.SOUTH_EAST | _S.SOUTH_POLE: "3",
    _S.NORTH_WEST | _S.NORTH_EAST | _S.EQUATOR | _S.SOUTH_EAST: "4",
    _S.NORTH_POLE | _S.NORTH_WEST | _S.EQUATOR | _S.SOUTH_EAST | _S.SOUTH_POLE: "5",
    _S.NORTH_POLE | _S.NORTH_WEST | _S.EQUATOR | _S.SOUTH_WEST | _S.SOUTH_EAST | _S.SOUTH_POLE: "6",
    _S.NORTH_POLE | _S.NORTH_EAST | _S.SOUTH_EAST: "7",
    _S.NORTH_POLE | _S.NORTH_WEST | _S.NORTH_EAST | _S.EQUATOR | _S.SOUTH_WEST | _S.SOUTH_EAST | _S.SOUTH_POLE: "8",
    _S.NORTH_POLE | _S.NORTH_WEST | _S.NORTH_EAST | _S.EQUATOR | _S.SOUTH_EAST | _S.SOUTH_POLE: "9",
}
del _S


def decode_segments(segments: int) -> str:
    return CHARACTER_TABLE.get(int(segments), PLACEHOLDER)


@dataclass(frozen=True)
class ScanConfig:
    debug: bool = False
    debug_dir: Path = Path("debug")


@dataclass(frozen=True)
class AnchorPair:
    north: Optional[Point] = None
    south: Optional[Point] = None


@dataclass(frozen=True)
class DisplayReading:
    value: str
    digits: Tuple[DigitScan, ...] = field(default=(), repr=False)

    @property
    def well_formed(self) -> bool:
        return PLACEHOLDER not in self.value


# (segment, anchor, direction, walk length key)
_PROBE_PLAN = (
    (Segment.NORTH_POLE, "north", Direction.NORTH, "height"),
    (Segment.NORTH_WEST, "north", Direction.WEST, "side"),
    (Segment.NORTH_EAST, "north", Direction.EAST, "side"),
    (Segment.EQUATOR, "north", Direction.SOUTH, "height"),
    (Segment.SOUTH_WEST, "south", Direction.WEST, "side"),
    (Segment.SOUTH_EAST, "south", Direction.EAST, "side"),
    (Segment.SOUTH_POLE, "south", Direction.SOUTH, "height"),
)


def to_working_copy(image: np.ndarray) -> np.ndarray:
    image = np.asarray(image)
    if image.size == 0:
        raise InputError("Image is empty")
    if image.dtype not in (np.uint8, np.uint16):
        raise InputError(f"Unsupported pixel type {image.dtype}")
    if image.ndim == 2:
        working = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    elif image.ndim == 3 and image.shape[2] == 3:
        working = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    elif image.ndim == 3 and image.shape[2] == 4:
        working = cv2.cvtColor(image, cv2.COLOR_BGRA2RGB)
    else:
        raise InputError(f"Unsupported image shape {image.shape}")
    working.flags.writeable = False
    return working


def _check_positions(position_count: int, position_index: Optional[int] = None) -> None:
    if position_count < 1:
        raise GeometryError(f"Position count must be at least 1, got {position_count}")
    if position_index is not None and not 0 <= position_index < position_count:
        raise GeometryError(
            f"Position index {position_index} outside 0..{position_count - 1}"
        )


def _slice_position(working: np.ndarray, position_count: int, position_index: int) -> Region:
    width = int(working.shape[1] / position_count)
    inset = int(width * position_index)
    return Region(
        index=position_index,
        x_offset=inset,
        pixels=working[:, inset : inset + width],
    )


def extract_position(image: np.ndarray, position_count: int, position_index: int) -> Region:
    _check_positions(position_count, position_index)
    return _slice_position(to_working_copy(image), position_count, position_index)


def extract_positions(image: np.ndarray, position_count: int) -> list[Region]:
    _check_positions(position_count)
    working = to_working_copy(image)
    return [_slice_position(working, position_count, index) for index in range(position_count)]


def default_anchors(region: Region) -> AnchorPair:
    quarter_height = int(region.height / 4.0)
    half_width = int(region.width / 2.0)
    return AnchorPair(
        north=Point(region.x_offset + half_width - 1, quarter_height),
        # the south anchor leans left with the slant of the glyph
        south=Point(region.x_offset + half_width - 2, quarter_height * 3),
    )


def resolve_anchors(region: Region, override: Optional[AnchorPair] = None) -> AnchorPair:
    defaults = default_anchors(region)
    if override is None:
        return defaults
    return AnchorPair(
        north=override.north if override.north is not None else defaults.north,
        south=override.south if override.south is not None else defaults.south,
    )


def is_active_segment(base_value: float, cross_value: float) -> bool:
    return cross_value < base_value * ACTIVE_THRESHOLD


def probe_minimum(
    region: Region, origin: Point, length: int, direction: Direction
) -> Tuple[int, Tuple[Point, ...]]:
    minimum = region.intensity(origin)
    point = origin
    path: list[Point] = []
    for _ in range(length):
        point = point.step(direction)
        if not region.contains(point):
            break
        minimum = min(minimum, region.intensity(point))
        path.append(point)
    return minimum, tuple(path)


def _base_value(region: Region, anchor: Point, name: str) -> int:
    if not region.contains(anchor):
        raise GeometryError(
            f"{name.capitalize()} anchor ({anchor.x}, {anchor.y}) is outside position "
            f"{region.index} (x {region.x_offset}..{region.x_offset + region.width - 1}, "
            f"y 0..{region.height - 1})"
        )
    return region.intensity(anchor)


def scan_digit(
    region: Region,
    anchors: Optional[AnchorPair] = None,
    config: Optional[ScanConfig] = None,
) -> DigitScan:
    config = config or ScanConfig()
    resolved = resolve_anchors(region, anchors)
    origins = {"north": resolved.north, "south": resolved.south}
    lengths = {
        "height": int(region.height / 4.0),
        "side": int(region.width * SIDE_PROBE_RATIO),
    }

    base_values: dict[str, int] = {}
    for name, origin in origins.items():
        base_values[name] = _base_value(region, origin, name)
        predefined = anchors is not None and getattr(anchors, name) is not None
        logger.debug(
            "%s origin pos=%d x=%d y=%d predefined=%s base_value=%d",
            name.capitalize(),
            region.index,
            origin.x,
            origin.y,
            predefined,
            base_values[name],
        )

    segments = Segment.NONE
    probes: list[Probe] = []
    for segment, anchor_name, direction, length_key in _PROBE_PLAN:
        origin = origins[anchor_name]
        minimum, path = probe_minimum(region, origin, lengths[length_key], direction)
        if is_active_segment(base_values[anchor_name], minimum):
            segments |= segment
        probes.append(Probe(segment, origin, direction, minimum, path))

    result = DigitScan(
        position=region.index,
        segments=segments,
        character=decode_segments(segments),
        north=resolved.north,
        south=resolved.south,
        probes=tuple(probes),
    )
    if config.debug:
        sevenseg_debug.write_probe_image(region, result, config.debug_dir)
    return result


_MANIFEST_KEYS = ("north", "south")


def _parse_point(value: Any, where: str) -> Optional[Point]:
    if value is None:
        return None
    if (
        not isinstance(value, list)
        or len(value) != 2
        or any(isinstance(v, bool) or not isinstance(v, int) for v in value)
    ):
        raise ManifestError(f"{where} must be a pair of integers, got {value!r}")
    return Point(value[0], value[1])


def parse_manifest(text: str | bytes) -> list[Optional[AnchorPair]]:
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ManifestError(f"Manifest is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise ManifestError("Manifest root must be a JSON array")

    entries: list[Optional[AnchorPair]] = []
    for index, entry in enumerate(payload):
        if entry is None:
            entries.append(None)
            continue
        if not isinstance(entry, dict):
            raise ManifestError(f"Manifest entry {index} must be an object or null")
        unknown = sorted(set(entry) - set(_MANIFEST_KEYS))
        if unknown:
            raise ManifestError(f"Manifest entry {index} has unknown keys: {', '.join(unknown)}")
        entries.append(
            AnchorPair(
                north=_parse_point(entry.get("north"), f"Entry {index} 'north'"),
                south=_parse_point(entry.get("south"), f"Entry {index} 'south'"),
            )
        )
    return entries


def load_manifest(path: Path | str) -> list[Optional[AnchorPair]]:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"Unable to read manifest at {path}: {exc}") from exc
    logger.info("Using manifest file %s", path)
    return parse_manifest(text)


def read_image(image_path: Path | str) -> np.ndarray:
    image = cv2.imread(str(image_path))
    if image is None:
        raise InputError(f"Unable to read image at {image_path}")
    return image


def scan_image(
    image: np.ndarray,
    positions: int,
    manifest: Optional[Sequence[Optional[AnchorPair]]] = None,
    config: Optional[ScanConfig] = None,
) -> DisplayReading:
    config = config or ScanConfig()
    manifest = manifest or ()
    if len(manifest) > positions:
        logger.warning(
            "Manifest has %d entries for %d positions; extra entries ignored",
            len(manifest),
            positions,
        )

    digits: list[DigitScan] = []
    for region in extract_positions(image, positions):
        override = manifest[region.index] if region.index < len(manifest) else None
        digits.append(scan_digit(region, override, config))

    value = "".join(digit.character for digit in digits)
    if config.debug:
        for line in sevenseg_debug.dot_lines(digit.segments for digit in digits):
            logger.debug(line)
    return DisplayReading(value=value, digits=tuple(digits))


def scan_file(
    image_path: Path | str,
    positions: int,
    manifest_path: Optional[Path | str] = None,
    config: Optional[ScanConfig] = None,
) -> DisplayReading:
    manifest = load_manifest(manifest_path) if manifest_path else None
    image = read_image(image_path)
    return scan_image(image, positions, manifest, config)
