from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Subtile(BaseModel):
    """A contiguous block of segments in a speed tile with its packed speed array.

    `speeds` holds `unit_size / entry_size` consecutive entries per segment, one per hour.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    start_segment_index: int = Field(alias="startSegmentIndex")
    subtile_segments: int = Field(alias="subtileSegments")
    total_segments: int = Field(alias="totalSegments")
    unit_size: int = Field(alias="unitSize")
    entry_size: int = Field(alias="entrySize")
    speeds: list[Optional[float]] = Field(default_factory=list)


DataTileMap = dict[tuple[int, int], list[Subtile]]


def parse_data_tile(payload: Any) -> list[Subtile]:
    """Parse a data tile document into its subtiles, in upstream order.

    Accepted shapes: a list of subtile records, `{"subtiles": [...]}`, or an object keyed
    by subtile index (ordered by the integer value of the key).
    """

    if isinstance(payload, dict) and "subtiles" in payload:
        payload = payload["subtiles"]
    if isinstance(payload, dict):
        try:
            keys = sorted(payload, key=int)
        except (TypeError, ValueError) as exc:
            raise ValueError("data tile keys must be subtile indexes") from exc
        records = [payload[key] for key in keys]
    elif isinstance(payload, list):
        records = payload
    else:
        raise ValueError(f"unexpected data tile payload: {type(payload).__name__}")
    return [Subtile.model_validate(record) for record in records]
