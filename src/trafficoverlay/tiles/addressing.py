from __future__ import annotations

import logging
from typing import Iterable, Optional

from trafficoverlay.geo import BoundingBox
from trafficoverlay.settings import AppConfig, get_config
from trafficoverlay.tiles.grid import TILE_LEVELS, TileAddress, TileLevel, tiles_for_bbox

logger = logging.getLogger(__name__)


class TileAddressResolver:
    """Resolve a bounding box into the geometry tile suffixes that cover it."""

    def __init__(
        self,
        excluded_levels: Iterable[int] = (2,),
        levels: Iterable[TileLevel] = TILE_LEVELS,
    ) -> None:
        self.excluded_levels = frozenset(excluded_levels)
        self.levels = tuple(grid for grid in levels if grid.level not in self.excluded_levels)

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> "TileAddressResolver":
        resolved = config or get_config()
        return cls(excluded_levels=resolved.tiles.excluded_levels)

    def addresses(self, bbox: BoundingBox) -> list[TileAddress]:
        return tiles_for_bbox(bbox, self.levels)

    def resolve(self, bbox: BoundingBox) -> list[str]:
        suffixes = [tile.suffix for tile in self.addresses(bbox)]
        logger.debug("Resolved %s tile suffixes for %s.", len(suffixes), bbox)
        return suffixes
