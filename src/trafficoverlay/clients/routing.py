"""Route lookup against a Valhalla-compatible routing service.

The overlay pipeline only needs the bounding box the router reports for a trip between
two waypoints (`trip.summary`), but the decoded route line is exposed as well so callers
can draw it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import httpx
import polyline

from trafficoverlay.errors import InvalidBoundingBox, RouteLookupFailure
from trafficoverlay.geo import BoundingBox, LatLng
from trafficoverlay.settings import AppConfig, get_config

logger = logging.getLogger(__name__)

# Valhalla encodes shapes with six decimal digits of precision.
SHAPE_PRECISION = 6


@dataclass(frozen=True)
class Route:
    bbox: BoundingBox
    coordinates: list[LatLng] = field(default_factory=list)


def format_locations(waypoints: Iterable[LatLng]) -> list[dict[str, float]]:
    return [{"lat": point.lat, "lon": point.lng} for point in waypoints]


def decode_trip_shape(trip: dict[str, Any]) -> list[LatLng]:
    coordinates: list[LatLng] = []
    for leg in trip.get("legs") or []:
        shape = leg.get("shape")
        if not shape:
            continue
        coordinates.extend(LatLng(lat, lng) for lat, lng in polyline.decode(shape, SHAPE_PRECISION))
    return coordinates


class RouteClient:
    """Async client for the `/route` endpoint. Close it via `aclose()`."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or get_config()
        self._http = http_client or httpx.AsyncClient(
            base_url=self.config.routing.base_url,
            timeout=self.config.routing.request_timeout_seconds,
            headers={"accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request_trip(self, waypoints: Iterable[LatLng]) -> dict[str, Any]:
        request = {"locations": format_locations(waypoints), "costing": self.config.routing.costing}
        url = f"{self.config.routing.base_url.rstrip('/')}/route"
        try:
            response = await self._http.get("/route", params={"json": json.dumps(request)})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RouteLookupFailure(f"route request failed: {exc}", url=url) from exc

        trip = payload.get("trip") if isinstance(payload, dict) else None
        if not isinstance(trip, dict):
            raise RouteLookupFailure("route response has no trip", url=url)
        return trip

    async def route_bbox(self, waypoints: Iterable[LatLng]) -> BoundingBox:
        trip = await self._request_trip(waypoints)
        try:
            bbox = BoundingBox.from_summary(trip.get("summary") or {})
        except InvalidBoundingBox as exc:
            raise RouteLookupFailure(f"route summary is unusable: {exc}") from exc
        logger.debug("Route bbox: %s", bbox)
        return bbox

    async def get_route(self, waypoints: Iterable[LatLng]) -> Route:
        trip = await self._request_trip(waypoints)
        try:
            bbox = BoundingBox.from_summary(trip.get("summary") or {})
        except InvalidBoundingBox as exc:
            raise RouteLookupFailure(f"route summary is unusable: {exc}") from exc
        return Route(bbox=bbox, coordinates=decode_trip_shape(trip))
