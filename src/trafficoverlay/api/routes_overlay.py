from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from trafficoverlay.api.schemas import (
    BoundingBoxPayload,
    FetchError,
    HourPayload,
    OverlayRunResponse,
    RegionRequest,
    RouteRequest,
    RouteResponse,
    StatusResponse,
    Waypoint,
)
from trafficoverlay.errors import InvalidBoundingBox, RouteLookupFailure, classify_fetch_error
from trafficoverlay.geo import BoundingBox, LatLng
from trafficoverlay.overlay.assembler import OverlayAssembler, OverlayRun


router = APIRouter()


def _assembler(request: Request) -> OverlayAssembler:
    return request.app.state.assembler


def _run_response(run: OverlayRun) -> OverlayRunResponse:
    features = (run.collection or {}).get("features") or []
    return OverlayRunResponse(
        generation=run.generation,
        state=run.state.value,
        states=[state.value for state in run.states],
        hour=run.hour,
        suffixes=run.suffixes,
        feature_count=len(features),
        segment_count=len(run.segments),
        speed_count=sum(1 for item in run.segments if item.speed is not None),
        error=FetchError(**asdict(run.error)) if run.error else None,
    )


def _latlngs(waypoints: list[Waypoint]) -> list[LatLng]:
    return [LatLng(lat=point.lat, lng=point.lng) for point in waypoints]


def _region_bounds(body: RegionRequest) -> BoundingBox | None:
    if body.bbox and body.waypoints is not None:
        raise HTTPException(status_code=400, detail="Pass either bbox or waypoints, not both.")
    if body.waypoints is not None:
        if len(body.waypoints) != 2:
            raise HTTPException(status_code=400, detail="waypoints must hold exactly two points.")
        return BoundingBox.from_waypoints(*_latlngs(body.waypoints))
    if not body.bbox:
        return None
    try:
        return BoundingBox.parse(body.bbox)
    except InvalidBoundingBox as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/route", response_model=RouteResponse)
async def get_route(body: RouteRequest, request: Request) -> RouteResponse:
    try:
        route = await _assembler(request).route_client.get_route(_latlngs(body.waypoints))
    except RouteLookupFailure as exc:
        raise HTTPException(status_code=502, detail=asdict(classify_fetch_error(exc))) from exc
    return RouteResponse(
        bbox=BoundingBoxPayload(**route.bbox.as_dict()),
        coordinates=[Waypoint(lat=point.lat, lng=point.lng) for point in route.coordinates],
    )


@router.get("/overlay")
def get_overlay(request: Request) -> dict[str, Any]:
    assembler = _assembler(request)
    payload = assembler.sink.get(assembler.source_name)
    if payload is None:
        raise HTTPException(status_code=404, detail="No overlay published. POST /overlay/region first.")
    return payload


@router.post("/overlay/region", response_model=OverlayRunResponse)
async def show_region(body: RegionRequest, request: Request) -> OverlayRunResponse:
    bounds = _region_bounds(body)
    run = await _assembler(request).show_region(bounds)
    return _run_response(run)


@router.delete("/overlay", response_model=OverlayRunResponse)
async def clear_overlay(request: Request) -> OverlayRunResponse:
    run = await _assembler(request).show_region(None)
    return _run_response(run)


@router.get("/hour", response_model=HourPayload)
def get_hour(request: Request) -> HourPayload:
    return HourPayload(hour=_assembler(request).hour.value)


@router.put("/hour", response_model=HourPayload)
def set_hour(body: HourPayload, request: Request) -> HourPayload:
    assembler = _assembler(request)
    assembler.hour.value = body.hour
    return HourPayload(hour=assembler.hour.value)


@router.get("/status", response_model=StatusResponse)
def get_status(request: Request) -> StatusResponse:
    assembler = _assembler(request)
    return StatusResponse(
        loading=assembler.loading.active,
        published=assembler.sink.get(assembler.source_name) is not None,
        source_name=assembler.source_name,
    )
