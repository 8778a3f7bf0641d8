from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Waypoint(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class RegionRequest(BaseModel):
    bbox: Optional[str] = Field(
        default=None, description="Bounding box as 'west,south,east,north'; omit to clear."
    )
    waypoints: Optional[list[Waypoint]] = Field(
        default=None,
        description="Two route markers in any order; their box is used instead of `bbox`.",
    )


class RouteRequest(BaseModel):
    waypoints: list[Waypoint] = Field(min_length=2)


class BoundingBoxPayload(BaseModel):
    west: float
    south: float
    east: float
    north: float


class RouteResponse(BaseModel):
    bbox: BoundingBoxPayload
    coordinates: list[Waypoint] = Field(default_factory=list)


class FetchError(BaseModel):
    code: str
    kind: str
    message: str


class OverlayRunResponse(BaseModel):
    generation: int
    state: str
    states: list[str]
    hour: Optional[int] = None
    suffixes: list[str] = Field(default_factory=list)
    feature_count: int = 0
    segment_count: int = 0
    speed_count: int = 0
    error: Optional[FetchError] = None


class HourPayload(BaseModel):
    hour: int = Field(ge=0)


class StatusResponse(BaseModel):
    loading: bool
    published: bool
    source_name: str
