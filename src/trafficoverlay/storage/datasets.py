from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from trafficoverlay.speeds.resolver import ResolvedSegment

SEGMENT_SPEED_COLUMNS = ["raw_id", "level", "tile", "segment", "speed"]


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def overlay_geojson_path(output_dir: Path, hour: int) -> Path:
    return output_dir / f"overlay_hour{hour:02d}.geojson"


def segment_speeds_csv_path(output_dir: Path, hour: int) -> Path:
    return output_dir / f"segment_speeds_hour{hour:02d}.csv"


def segment_speeds_frame(segments: Iterable[ResolvedSegment]) -> pd.DataFrame:
    rows = [
        {
            "raw_id": str(item.raw_id),
            "level": item.segment_id.level,
            "tile": item.segment_id.tile,
            "segment": item.segment_id.segment,
            "speed": item.speed,
        }
        for item in segments
    ]
    df = pd.DataFrame(rows, columns=SEGMENT_SPEED_COLUMNS)
    df["speed"] = pd.to_numeric(df["speed"], errors="coerce")
    return df


def save_csv(df: pd.DataFrame, path: Path) -> Path:
    ensure_parent_dir(path)
    df.to_csv(path, index=False)
    return path


def save_geojson(collection: dict[str, Any], path: Path) -> Path:
    ensure_parent_dir(path)
    tmp = path.with_suffix(f"{path.suffix}.tmp")
    tmp.write_text(json.dumps(collection, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)
    return path
