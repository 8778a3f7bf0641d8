"""Tile hierarchy math for the OSMLR / Valhalla tile scheme.

The world is covered three times by regular lat/lng grids of different tile sizes:
- level 0: 4 degree tiles (highways)
- level 1: 1 degree tiles (arterials)
- level 2: 0.25 degree tiles (local roads)

A tile id counts tiles row by row from the south-west corner of the world. Suffixes
spread the zero-padded id over three-digit directories so that no directory holds more
than a thousand entries, e.g. `1/037/741` for tile 37741 on level 1.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from trafficoverlay.geo import BoundingBox


@dataclass(frozen=True)
class TileLevel:
    level: int
    size: float

    @property
    def ncolumns(self) -> int:
        return int(round(360.0 / self.size))

    @property
    def nrows(self) -> int:
        return int(round(180.0 / self.size))

    @property
    def max_tile_id(self) -> int:
        return self.ncolumns * self.nrows - 1

    def row(self, lat: float) -> int:
        # Clamp so the north pole (and anything past it) lands in the last row.
        return min(self.nrows - 1, max(0, int(math.floor((lat + 90.0) / self.size))))

    def col(self, lng: float) -> int:
        return min(self.ncolumns - 1, max(0, int(math.floor((lng + 180.0) / self.size))))

    def tile_id(self, lat: float, lng: float) -> int:
        return self.row(lat) * self.ncolumns + self.col(lng)


TILE_LEVELS: tuple[TileLevel, ...] = (
    TileLevel(level=0, size=4.0),
    TileLevel(level=1, size=1.0),
    TileLevel(level=2, size=0.25),
)


def tile_level(level: int) -> TileLevel:
    for candidate in TILE_LEVELS:
        if candidate.level == level:
            return candidate
    raise ValueError(f"unknown tile level: {level}")


@dataclass(frozen=True)
class TileAddress:
    level: int
    tile_id: int

    @property
    def row(self) -> int:
        return self.tile_id // tile_level(self.level).ncolumns

    @property
    def col(self) -> int:
        return self.tile_id % tile_level(self.level).ncolumns

    @property
    def suffix(self) -> str:
        return tile_url_suffix(self.level, self.tile_id)


def tile_url_suffix(level: int, tile_id: int) -> str:
    """Format a tile as its canonical path suffix (`{level}/{ddd}/{ddd}...`)."""

    grid = tile_level(level)
    if not 0 <= tile_id <= grid.max_tile_id:
        raise ValueError(f"tile id {tile_id} out of range for level {level}")
    digits = len(str(grid.max_tile_id))
    width = digits + (-digits) % 3
    padded = str(tile_id).zfill(width)
    groups = [padded[i : i + 3] for i in range(0, width, 3)]
    return "/".join([str(level), *groups])


def tiles_for_bbox(
    bbox: BoundingBox, levels: Iterable[TileLevel] = TILE_LEVELS
) -> list[TileAddress]:
    """Return every tile intersecting `bbox`, ordered by level, then column, then row."""

    tiles: list[TileAddress] = []
    for grid in levels:
        for col in range(grid.col(bbox.west), grid.col(bbox.east) + 1):
            for row in range(grid.row(bbox.south), grid.row(bbox.north) + 1):
                tiles.append(TileAddress(level=grid.level, tile_id=row * grid.ncolumns + col))
    return tiles
