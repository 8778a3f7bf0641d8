"""Shared fixtures: a fake routing/tile/speed upstream served through httpx.MockTransport."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import httpx
import pytest

from trafficoverlay.clients.routing import RouteClient
from trafficoverlay.clients.tile_store import TileStoreClient
from trafficoverlay.geo import BoundingBox
from trafficoverlay.overlay.assembler import OverlayAssembler
from trafficoverlay.settings import AppConfig
from trafficoverlay.tiles.segment_id import encode

ROUTER_URL = "https://router.test"
GEOMETRY_URL = "https://tiles.test/geojson"
SPEEDS_URL = "https://speeds.test"

BOUNDS = BoundingBox(west=-74.01, south=40.70, east=-73.99, north=40.72)
SUMMARY = {"min_lon": -74.01, "min_lat": 40.70, "max_lon": -73.99, "max_lat": 40.72}

ID_A = encode(0, 2906, 1500)
ID_B = encode(1, 46905, 10)
ID_OUTSIDE = encode(1, 46906, 3)


def feature(raw_id: Any, coordinates: Any) -> dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "MultiLineString", "coordinates": coordinates},
        "properties": {"osmlr_id": raw_id},
    }


def subtile(**overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "startSegmentIndex": 0,
        "subtileSegments": 1000,
        "totalSegments": 1000,
        "unitSize": 24,
        "entrySize": 1,
        "speeds": [],
    }
    record.update(overrides)
    return record


class FakeUpstream:
    """Serve JSON documents by URL (scheme, host and path; query ignored)."""

    def __init__(self, documents: Optional[dict[str, Any]] = None) -> None:
        self.documents: dict[str, Any] = dict(documents or {})
        self.requests: list[httpx.Request] = []
        self._holds: dict[str, asyncio.Event] = {}

    @staticmethod
    def key(request: httpx.Request) -> str:
        return f"{request.url.scheme}://{request.url.host}{request.url.path}"

    def hold_next(self, url: str, release: asyncio.Event) -> None:
        """Make the next request to `url` wait until `release` is set."""
        self._holds[url] = release

    def count(self, url: str) -> int:
        return sum(1 for request in self.requests if self.key(request) == url)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = self.key(request)
        release = self._holds.pop(url, None)
        if release is not None:
            await release.wait()
        value = self.documents.get(url, 404)
        if isinstance(value, int):
            return httpx.Response(status_code=value)
        return httpx.Response(status_code=200, json=value)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def overlay_config(tmp_path) -> AppConfig:
    base = AppConfig()
    return base.model_copy(
        update={
            "routing": base.routing.model_copy(update={"base_url": ROUTER_URL}),
            "tiles": base.tiles.model_copy(
                update={"geometry_base_url": GEOMETRY_URL, "data_base_url": SPEEDS_URL}
            ),
        }
    ).resolve_paths(root=tmp_path)


@pytest.fixture
def upstream() -> FakeUpstream:
    """Three geometry tiles around lower Manhattan plus the two speed tiles they need."""

    inside = [[[-74.0, 40.71], [-73.995, 40.715]]]
    return FakeUpstream(
        {
            f"{ROUTER_URL}/route": {"trip": {"summary": SUMMARY, "legs": []}},
            f"{GEOMETRY_URL}/0/002/906.json": {
                "type": "FeatureCollection",
                "features": [feature(ID_A, inside), feature("bogus", inside)],
            },
            f"{GEOMETRY_URL}/1/046/905.json": {
                "type": "FeatureCollection",
                "features": [feature(ID_A, inside), feature(ID_B, inside)],
            },
            f"{GEOMETRY_URL}/1/046/906.json": {
                "type": "FeatureCollection",
                "features": [feature(ID_OUTSIDE, [[[-80.0, 10.0]]])],
            },
            f"{SPEEDS_URL}/0/2906.json": [
                subtile(
                    startSegmentIndex=1000,
                    subtileSegments=1000,
                    totalSegments=5000,
                    speeds=[float(i) for i in range(24 * 1000)],
                )
            ],
            f"{SPEEDS_URL}/1/46905.json": [
                subtile(
                    subtileSegments=100,
                    totalSegments=100,
                    speeds=[float(i) for i in range(24 * 100)],
                )
            ],
        }
    )


@pytest.fixture
def make_assembler(overlay_config) -> Callable[..., OverlayAssembler]:
    def factory(upstream: FakeUpstream, config: Optional[AppConfig] = None, **kwargs: Any) -> OverlayAssembler:
        resolved = config or overlay_config
        route_client = RouteClient(
            config=resolved,
            http_client=httpx.AsyncClient(base_url=resolved.routing.base_url, transport=upstream.transport()),
        )
        tile_store = TileStoreClient(
            config=resolved,
            http_client=httpx.AsyncClient(transport=upstream.transport()),
        )
        return OverlayAssembler(route_client=route_client, tile_store=tile_store, config=resolved, **kwargs)

    return factory
