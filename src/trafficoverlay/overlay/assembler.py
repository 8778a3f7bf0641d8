"""Assemble the traffic speed overlay for a bounding box.

One `show_region` call runs a linear pipeline:

    route bbox -> tile suffixes -> geometry tiles (merged) -> clip -> segment ids
    -> data tiles -> hourly speeds -> join -> publish

and records every state it passes through. Fetch failures end the run in `FAILED`
without publishing; per-segment lookup failures only leave that segment without a speed.

Runs are not cancelled when a newer one starts. Each call takes a generation number, and
when `overlay.discard_stale_results` is set a run that is no longer the latest when it
is ready to publish ends in `SUPERSEDED` instead of overwriting the newer overlay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from trafficoverlay.clients.routing import RouteClient
from trafficoverlay.clients.tile_store import TileStoreClient
from trafficoverlay.errors import (
    DataTileFetchFailure,
    FetchErrorInfo,
    RouteLookupFailure,
    TileFetchFailure,
    classify_fetch_error,
)
from trafficoverlay.geo import BoundingBox
from trafficoverlay.geometry.clip import clip_features
from trafficoverlay.overlay.collaborators import (
    HourSelector,
    InMemoryRenderSink,
    LoadingIndicator,
    RenderSink,
)
from trafficoverlay.settings import AppConfig, get_config
from trafficoverlay.speeds.resolver import ResolvedSegment, attach_speeds, resolve_speeds
from trafficoverlay.tiles.addressing import TileAddressResolver
from trafficoverlay.tiles.segment_id import dedupe_raw_ids, parse_segment_ids

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    ROUTE_RESOLVED = "route_resolved"
    TILES_ADDRESSED = "tiles_addressed"
    GEOMETRY_FETCHED = "geometry_fetched"
    CLIPPED = "clipped"
    SEGMENTS_PARSED = "segments_parsed"
    SPEED_DATA_FETCHED = "speed_data_fetched"
    JOINED = "joined"
    PUBLISHED = "published"
    CLEARED = "cleared"
    FAILED = "failed"
    SUPERSEDED = "superseded"


@dataclass
class OverlayRun:
    generation: int
    bounds: Optional[BoundingBox]
    states: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    route_bbox: Optional[BoundingBox] = None
    suffixes: list[str] = field(default_factory=list)
    hour: Optional[int] = None
    collection: Optional[dict[str, Any]] = None
    segments: list[ResolvedSegment] = field(default_factory=list)
    error: Optional[FetchErrorInfo] = None

    @property
    def state(self) -> PipelineState:
        return self.states[-1]

    def advance(self, state: PipelineState) -> None:
        logger.debug("Overlay run %s: %s -> %s", self.generation, self.state.value, state.value)
        self.states.append(state)


class OverlayAssembler:
    def __init__(
        self,
        route_client: RouteClient,
        tile_store: TileStoreClient,
        sink: Optional[RenderSink] = None,
        loading: Optional[LoadingIndicator] = None,
        hour: Optional[HourSelector] = None,
        config: Optional[AppConfig] = None,
        resolver: Optional[TileAddressResolver] = None,
    ) -> None:
        self.config = config or get_config()
        self.route_client = route_client
        self.tile_store = tile_store
        self.sink = sink if sink is not None else InMemoryRenderSink()
        self.loading = loading or LoadingIndicator()
        self.hour = hour or HourSelector(self.config.overlay.default_hour)
        self.resolver = resolver or TileAddressResolver.from_config(self.config)
        self._generation = 0

    @classmethod
    def from_config(
        cls, config: Optional[AppConfig] = None, sink: Optional[RenderSink] = None
    ) -> "OverlayAssembler":
        resolved = config or get_config()
        return cls(
            route_client=RouteClient(config=resolved),
            tile_store=TileStoreClient(config=resolved),
            sink=sink,
            config=resolved,
        )

    async def aclose(self) -> None:
        await self.route_client.aclose()
        await self.tile_store.aclose()

    @property
    def source_name(self) -> str:
        return self.config.overlay.source_name

    def _is_stale(self, generation: int) -> bool:
        return self.config.overlay.discard_stale_results and generation != self._generation

    async def show_region(self, bounds: Optional[BoundingBox]) -> OverlayRun:
        self._generation += 1
        run = OverlayRun(generation=self._generation, bounds=bounds)

        if bounds is None:
            self.sink.clear(self.source_name)
            run.advance(PipelineState.CLEARED)
            logger.info("Cleared overlay %r.", self.source_name)
            return run

        loading_started = False
        try:
            run.route_bbox = await self.route_client.route_bbox(bounds.corners())
            run.advance(PipelineState.ROUTE_RESOLVED)

            run.suffixes = self.resolver.resolve(run.route_bbox)
            run.advance(PipelineState.TILES_ADDRESSED)

            self.loading.start()
            loading_started = True
            merged = await self.tile_store.fetch_geometry_tiles(run.suffixes)
            run.advance(PipelineState.GEOMETRY_FETCHED)

            features = clip_features(
                merged["features"], bounds, self.config.overlay.clip_buffer_degrees
            )
            run.advance(PipelineState.CLIPPED)

            id_property = self.config.overlay.segment_id_property
            raw_ids = [
                (feature.get("properties") or {}).get(id_property) for feature in features
            ]
            parsed = parse_segment_ids(dedupe_raw_ids(raw for raw in raw_ids if raw is not None))
            run.advance(PipelineState.SEGMENTS_PARSED)

            tiles = await self.tile_store.fetch_data_tiles(segment_id for _, segment_id in parsed)
            run.advance(PipelineState.SPEED_DATA_FETCHED)

            run.hour = self.hour.value
            run.segments = resolve_speeds(parsed, tiles, run.hour)
            speeds = {s.raw_id: s.speed for s in run.segments if s.speed is not None}
            collection = {
                **merged,
                "features": attach_speeds(
                    features, speeds, id_property, self.config.overlay.speed_property
                ),
            }
            run.advance(PipelineState.JOINED)

            if self._is_stale(run.generation):
                run.advance(PipelineState.SUPERSEDED)
                logger.info("Discarding overlay run %s; a newer run was started.", run.generation)
                return run

            self.sink.set(self.source_name, {"type": "GeoJSON", "data": collection})
            run.collection = collection
            run.advance(PipelineState.PUBLISHED)
            logger.info(
                "Published %s features (%s of %s segments with speeds) for hour %s.",
                len(collection["features"]),
                len(speeds),
                len(run.segments),
                run.hour,
            )
        except (RouteLookupFailure, TileFetchFailure, DataTileFetchFailure) as exc:
            run.error = classify_fetch_error(exc)
            run.advance(PipelineState.FAILED)
            logger.warning(
                "Overlay run %s failed (%s): %s", run.generation, run.error.code, exc
            )
        finally:
            if loading_started:
                self.loading.stop()
        return run
