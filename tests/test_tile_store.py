from __future__ import annotations

import asyncio
import json

import httpx
import polyline
import pytest

from conftest import GEOMETRY_URL, ROUTER_URL, SPEEDS_URL, SUMMARY, FakeUpstream, subtile
from trafficoverlay.clients.routing import RouteClient
from trafficoverlay.clients.tile_store import TileStoreClient
from trafficoverlay.errors import (
    DataTileFetchFailure,
    RouteLookupFailure,
    TileFetchFailure,
    classify_fetch_error,
)
from trafficoverlay.geo import BoundingBox, LatLng
from trafficoverlay.tiles.segment_id import SegmentId


def _collection(*names: str) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [{"type": "Feature", "geometry": None, "properties": {"name": n}} for n in names],
    }


async def _with_store(config, upstream: FakeUpstream, action):
    store = TileStoreClient(config=config, http_client=httpx.AsyncClient(transport=upstream.transport()))
    try:
        return await action(store)
    finally:
        await store.aclose()


def test_geometry_tiles_are_merged_in_suffix_order(overlay_config) -> None:
    upstream = FakeUpstream(
        {
            f"{GEOMETRY_URL}/1/046/905.json": _collection("a", "b", "c"),
            f"{GEOMETRY_URL}/1/046/906.json": _collection("d", "e", "f", "g", "h"),
        }
    )

    merged = asyncio.run(
        _with_store(
            overlay_config,
            upstream,
            lambda store: store.fetch_geometry_tiles(["1/046/905", "1/046/906"]),
        )
    )

    assert [f["properties"]["name"] for f in merged["features"]] == list("abcdefgh")


def test_one_failing_geometry_tile_fails_the_merge(overlay_config) -> None:
    upstream = FakeUpstream({f"{GEOMETRY_URL}/1/046/905.json": _collection("a")})

    with pytest.raises(TileFetchFailure) as excinfo:
        asyncio.run(
            _with_store(
                overlay_config,
                upstream,
                lambda store: store.fetch_geometry_tiles(["1/046/905", "1/046/906"]),
            )
        )

    assert excinfo.value.url == f"{GEOMETRY_URL}/1/046/906.json"
    assert classify_fetch_error(excinfo.value).code == "http_404"


def test_geometry_tile_must_be_a_feature_collection(overlay_config) -> None:
    upstream = FakeUpstream({f"{GEOMETRY_URL}/0/002/906.json": [1, 2, 3]})

    with pytest.raises(TileFetchFailure):
        asyncio.run(
            _with_store(overlay_config, upstream, lambda store: store.fetch_geometry_tile("0/002/906"))
        )


@pytest.mark.parametrize(
    "features",
    [
        [{"type": "Feature", "geometry": [1], "properties": {}}],
        [{"type": "Feature", "geometry": None, "properties": "osmlr"}],
        ["not a feature"],
        None,
    ],
)
def test_malformed_features_fail_the_geometry_tile(overlay_config, features) -> None:
    upstream = FakeUpstream({f"{GEOMETRY_URL}/0/002/906.json": {"type": "FeatureCollection", "features": features}})

    with pytest.raises(TileFetchFailure) as excinfo:
        asyncio.run(
            _with_store(overlay_config, upstream, lambda store: store.fetch_geometry_tile("0/002/906"))
        )

    assert classify_fetch_error(excinfo.value).code == "invalid_payload"


def test_data_tiles_are_fetched_once_per_tile(overlay_config) -> None:
    upstream = FakeUpstream(
        {
            f"{SPEEDS_URL}/0/2906.json": {"1": subtile(startSegmentIndex=1000), "0": subtile()},
            f"{SPEEDS_URL}/1/46905.json": [subtile(totalSegments=1500)],
        }
    )
    ids = [
        SegmentId(level=0, tile=2906, segment=1),
        SegmentId(level=1, tile=46905, segment=2),
        SegmentId(level=0, tile=2906, segment=3),
    ]

    tiles = asyncio.run(_with_store(overlay_config, upstream, lambda store: store.fetch_data_tiles(ids)))

    assert list(tiles) == [(0, 2906), (1, 46905)]
    assert [s.start_segment_index for s in tiles[(0, 2906)]] == [0, 1000]
    assert tiles[(1, 46905)][0].total_segments == 1500
    assert upstream.count(f"{SPEEDS_URL}/0/2906.json") == 1


def test_malformed_data_tile_fails_the_stage(overlay_config) -> None:
    upstream = FakeUpstream({f"{SPEEDS_URL}/0/1.json": [{"startSegmentIndex": "x"}]})

    with pytest.raises(DataTileFetchFailure) as excinfo:
        asyncio.run(
            _with_store(
                overlay_config,
                upstream,
                lambda store: store.fetch_data_tiles([SegmentId(level=0, tile=1, segment=1)]),
            )
        )

    assert classify_fetch_error(excinfo.value).code == "invalid_payload"


def test_route_client_reads_summary_and_shape(overlay_config) -> None:
    shape = polyline.encode([(40.70, -74.01), (40.72, -73.99)], 6)
    upstream = FakeUpstream({f"{ROUTER_URL}/route": {"trip": {"summary": SUMMARY, "legs": [{"shape": shape}]}}})
    waypoints = [LatLng(40.70, -74.01), LatLng(40.72, -73.99)]

    async def scenario():
        client = RouteClient(
            config=overlay_config,
            http_client=httpx.AsyncClient(base_url=ROUTER_URL, transport=upstream.transport()),
        )
        try:
            return await client.route_bbox(waypoints), await client.get_route(waypoints)
        finally:
            await client.aclose()

    bbox, route = asyncio.run(scenario())

    assert bbox == BoundingBox(west=-74.01, south=40.70, east=-73.99, north=40.72)
    assert route.bbox == bbox
    assert [(p.lat, p.lng) for p in route.coordinates] == [
        pytest.approx((40.70, -74.01)),
        pytest.approx((40.72, -73.99)),
    ]
    request = json.loads(upstream.requests[0].url.params["json"])
    assert request == {
        "locations": [{"lat": 40.70, "lon": -74.01}, {"lat": 40.72, "lon": -73.99}],
        "costing": "auto",
    }


def test_route_client_wraps_http_errors(overlay_config) -> None:
    upstream = FakeUpstream({f"{ROUTER_URL}/route": 503})

    async def scenario():
        client = RouteClient(
            config=overlay_config,
            http_client=httpx.AsyncClient(base_url=ROUTER_URL, transport=upstream.transport()),
        )
        try:
            await client.route_bbox([LatLng(0.0, 0.0), LatLng(1.0, 1.0)])
        finally:
            await client.aclose()

    with pytest.raises(RouteLookupFailure) as excinfo:
        asyncio.run(scenario())

    assert classify_fetch_error(excinfo.value).code == "http_503"
