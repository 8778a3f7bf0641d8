"""OSMLR segment ids.

A segment id packs three fields into one integer, least significant first:
3 bits of tile level, 22 bits of tile id and 21 bits of segment index within the tile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from trafficoverlay.errors import InvalidSegmentId

logger = logging.getLogger(__name__)

LEVEL_BITS = 3
TILE_BITS = 22
SEGMENT_BITS = 21

_LEVEL_MASK = (1 << LEVEL_BITS) - 1
_TILE_MASK = (1 << TILE_BITS) - 1
_SEGMENT_MASK = (1 << SEGMENT_BITS) - 1
_TILE_SHIFT = LEVEL_BITS
_SEGMENT_SHIFT = LEVEL_BITS + TILE_BITS

MAX_RAW_ID = (1 << (LEVEL_BITS + TILE_BITS + SEGMENT_BITS)) - 1


@dataclass(frozen=True)
class SegmentId:
    level: int
    tile: int
    segment: int

    @property
    def tile_key(self) -> tuple[int, int]:
        return (self.level, self.tile)


def _coerce_raw(raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidSegmentId(f"segment id must be an integer, got {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not raw.is_integer():
            raise InvalidSegmentId(f"segment id must be an integer, got {raw!r}")
        return int(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text.isdigit():
            raise InvalidSegmentId(f"segment id must be a decimal integer, got {raw!r}")
        return int(text)
    raise InvalidSegmentId(f"segment id must be an integer, got {type(raw).__name__}")


def decode(raw: Any) -> SegmentId:
    value = _coerce_raw(raw)
    if not 0 <= value <= MAX_RAW_ID:
        raise InvalidSegmentId(f"segment id {value} is outside [0, {MAX_RAW_ID}]")
    return SegmentId(
        level=value & _LEVEL_MASK,
        tile=(value >> _TILE_SHIFT) & _TILE_MASK,
        segment=(value >> _SEGMENT_SHIFT) & _SEGMENT_MASK,
    )


def encode(level: int, tile: int, segment: int) -> int:
    if not 0 <= level <= _LEVEL_MASK:
        raise InvalidSegmentId(f"level {level} does not fit in {LEVEL_BITS} bits")
    if not 0 <= tile <= _TILE_MASK:
        raise InvalidSegmentId(f"tile {tile} does not fit in {TILE_BITS} bits")
    if not 0 <= segment <= _SEGMENT_MASK:
        raise InvalidSegmentId(f"segment {segment} does not fit in {SEGMENT_BITS} bits")
    return level | (tile << _TILE_SHIFT) | (segment << _SEGMENT_SHIFT)


def dedupe_raw_ids(raw_ids: Iterable[Any]) -> list[Any]:
    """Drop exact duplicate raw ids, keeping first-occurrence order.

    Unhashable values cannot be segment ids and are dropped.
    """
    seen: set[Any] = set()
    unique: list[Any] = []
    for raw in raw_ids:
        try:
            if raw in seen:
                continue
            seen.add(raw)
        except TypeError:
            logger.debug("Dropping unhashable segment id %r.", raw)
            continue
        unique.append(raw)
    return unique


def parse_segment_ids(raw_ids: Iterable[Any]) -> list[tuple[Any, SegmentId]]:
    """Decode raw ids, pairing each with its decoded form. Invalid ids are skipped."""
    parsed: list[tuple[Any, SegmentId]] = []
    for raw in raw_ids:
        try:
            parsed.append((raw, decode(raw)))
        except InvalidSegmentId as exc:
            logger.debug("Skipping segment id %r: %s", raw, exc)
    return parsed
