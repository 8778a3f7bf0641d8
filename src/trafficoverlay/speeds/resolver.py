"""Join hourly reference speeds onto decoded segment ids.

Each segment of a speed tile belongs to exactly one subtile. Subtile `i` owns the
segments in `(start, start + subtile_segments]`; the last subtile of a tile owns
everything up to `total_segments` so that a remainder after even division is not lost.
Within the owning subtile the speeds of a segment occupy `unit_size / entry_size`
consecutive entries (one per hour), starting at `(segment % subtile_segments) * entries`.

Lookups are best effort: a segment that cannot be resolved simply has no speed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from trafficoverlay.errors import SpeedLookupMiss
from trafficoverlay.speeds.subtiles import DataTileMap, Subtile
from trafficoverlay.tiles.segment_id import SegmentId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSegment:
    raw_id: Any
    segment_id: SegmentId
    speed: Optional[float] = None


def owning_subtile(segment: int, subtiles: Sequence[Subtile]) -> Optional[Subtile]:
    last = len(subtiles) - 1
    for index, subtile in enumerate(subtiles):
        if index == last:
            upper_bound = subtile.total_segments
        else:
            upper_bound = subtile.start_segment_index + subtile.subtile_segments
        if subtile.start_segment_index < segment <= upper_bound:
            return subtile
    return None


def speed_value_index(segment: int, subtile: Subtile, hour: int) -> int:
    """Return the index into `subtile.speeds` holding `segment`'s speed for `hour`."""

    if subtile.subtile_segments <= 0 or subtile.entry_size <= 0:
        raise SpeedLookupMiss("subtile has no segments or a zero entry size")
    entries_per_segment, remainder = divmod(subtile.unit_size, subtile.entry_size)
    if remainder or entries_per_segment <= 0:
        raise SpeedLookupMiss(
            f"unit size {subtile.unit_size} is not a multiple of entry size {subtile.entry_size}"
        )
    if not 0 <= hour < entries_per_segment:
        raise SpeedLookupMiss(f"hour {hour} outside [0, {entries_per_segment})")
    local_id = segment % subtile.subtile_segments
    base_index = local_id * entries_per_segment
    return base_index + hour


def lookup_speed(segment_id: SegmentId, tiles: DataTileMap, hour: int) -> float:
    subtiles = tiles.get(segment_id.tile_key)
    if not subtiles:
        raise SpeedLookupMiss(f"no data tile for level {segment_id.level} tile {segment_id.tile}")
    subtile = owning_subtile(segment_id.segment, subtiles)
    if subtile is None:
        raise SpeedLookupMiss(f"no subtile owns segment {segment_id.segment}")
    value_index = speed_value_index(segment_id.segment, subtile, hour)
    if value_index >= len(subtile.speeds):
        raise SpeedLookupMiss(f"speed index {value_index} beyond {len(subtile.speeds)} entries")
    speed = subtile.speeds[value_index]
    if speed is None:
        raise SpeedLookupMiss(f"no speed stored at index {value_index}")
    return speed


def resolve_speed(segment_id: SegmentId, tiles: DataTileMap, hour: int) -> Optional[float]:
    try:
        return lookup_speed(segment_id, tiles, hour)
    except SpeedLookupMiss as exc:
        logger.debug("No speed for %s: %s", segment_id, exc)
        return None


def resolve_speeds(
    parsed: Iterable[tuple[Any, SegmentId]], tiles: DataTileMap, hour: int
) -> list[ResolvedSegment]:
    return [
        ResolvedSegment(raw_id=raw_id, segment_id=segment_id, speed=resolve_speed(segment_id, tiles, hour))
        for raw_id, segment_id in parsed
    ]


def attach_speeds(
    features: Iterable[dict[str, Any]],
    speeds_by_raw_id: Mapping[Any, float],
    segment_id_property: str = "osmlr_id",
    speed_property: str = "speed",
) -> list[dict[str, Any]]:
    """Return copies of `features` carrying the speed of their own segment id."""

    joined: list[dict[str, Any]] = []
    for feature in features:
        properties = dict(feature.get("properties") or {})
        raw_id = properties.get(segment_id_property)
        try:
            speed = speeds_by_raw_id.get(raw_id)
        except TypeError:
            speed = None
        if speed is not None:
            properties[speed_property] = speed
        joined.append({**feature, "properties": properties})
    return joined
