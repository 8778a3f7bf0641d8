"""Fetch OSMLR geometry tiles and speed data tiles.

All tiles of one stage are requested at once and joined before the pipeline moves on.
There is no bound on the number of concurrent requests and no retry: the first failing
tile fails the whole stage.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Optional

import httpx

from trafficoverlay.errors import DataTileFetchFailure, TileFetchFailure
from trafficoverlay.geometry.features import parse_geometry_tile
from trafficoverlay.geometry.merge import merge_feature_collections
from trafficoverlay.settings import AppConfig, get_config
from trafficoverlay.speeds.subtiles import DataTileMap, Subtile, parse_data_tile
from trafficoverlay.tiles.segment_id import SegmentId

logger = logging.getLogger(__name__)


class TileStoreClient:
    def __init__(
        self,
        config: Optional[AppConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or get_config()
        self._http = http_client or httpx.AsyncClient(
            timeout=self.config.tiles.request_timeout_seconds,
            headers={"accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def geometry_tile_url(self, suffix: str) -> str:
        return f"{self.config.tiles.geometry_base_url.rstrip('/')}/{suffix}.json"

    def data_tile_url(self, level: int, tile: int) -> str:
        return f"{self.config.tiles.data_base_url.rstrip('/')}/{level}/{tile}.json"

    async def _get_json(self, url: str) -> Any:
        response = await self._http.get(url)
        response.raise_for_status()
        return response.json()

    async def fetch_geometry_tile(self, suffix: str) -> dict[str, Any]:
        url = self.geometry_tile_url(suffix)
        try:
            return parse_geometry_tile(await self._get_json(url))
        except (httpx.HTTPError, ValueError) as exc:
            raise TileFetchFailure(f"geometry tile {suffix} failed: {exc}", url=url) from exc

    async def fetch_geometry_tiles(self, suffixes: Iterable[str]) -> dict[str, Any]:
        """Fetch every suffix concurrently and merge the results in suffix order."""

        suffixes = list(suffixes)
        logger.info("Fetching %s geometry tiles.", len(suffixes))
        collections = await asyncio.gather(*(self.fetch_geometry_tile(s) for s in suffixes))
        return merge_feature_collections(collections)

    async def fetch_data_tile(self, level: int, tile: int) -> list[Subtile]:
        url = self.data_tile_url(level, tile)
        try:
            return parse_data_tile(await self._get_json(url))
        except (httpx.HTTPError, ValueError) as exc:
            raise DataTileFetchFailure(
                f"data tile {level}/{tile} failed: {exc}", url=url
            ) from exc

    async def fetch_data_tiles(self, segment_ids: Iterable[SegmentId]) -> DataTileMap:
        """Fetch the data tile of every distinct (level, tile) among `segment_ids`."""

        keys = list(dict.fromkeys(segment_id.tile_key for segment_id in segment_ids))
        logger.info("Fetching %s data tiles.", len(keys))
        results = await asyncio.gather(*(self.fetch_data_tile(level, tile) for level, tile in keys))
        return dict(zip(keys, results))
