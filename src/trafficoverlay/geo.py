from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from trafficoverlay.errors import InvalidBoundingBox


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class BoundingBox:
    """An axis-aligned box in degrees. Point boxes (west == east) are allowed."""

    west: float
    south: float
    east: float
    north: float

    def __post_init__(self) -> None:
        values = (self.west, self.south, self.east, self.north)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
            raise InvalidBoundingBox(f"bbox values must be finite numbers: {values!r}")
        if self.west > self.east or self.south > self.north:
            raise InvalidBoundingBox("bbox min values must be <= max values")

    @classmethod
    def parse(cls, text: str) -> "BoundingBox":
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise InvalidBoundingBox("bbox must be 'west,south,east,north'")
        try:
            west, south, east, north = map(float, parts)
        except ValueError as exc:
            raise InvalidBoundingBox(f"bbox values must be numbers: {text!r}") from exc
        return cls(west=west, south=south, east=east, north=north)

    @classmethod
    def from_summary(cls, summary: Mapping[str, Any]) -> "BoundingBox":
        """Build a box from a route summary (`min_lon`, `min_lat`, `max_lon`, `max_lat`)."""
        try:
            west, south = float(summary["min_lon"]), float(summary["min_lat"])
            east, north = float(summary["max_lon"]), float(summary["max_lat"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidBoundingBox(f"route summary has no usable bbox: {summary!r}") from exc
        return cls(west=west, south=south, east=east, north=north)

    @classmethod
    def from_waypoints(cls, a: LatLng, b: LatLng) -> "BoundingBox":
        return cls(
            west=min(a.lng, b.lng),
            south=min(a.lat, b.lat),
            east=max(a.lng, b.lng),
            north=max(a.lat, b.lat),
        )

    def corners(self) -> tuple[LatLng, LatLng]:
        """Return the (south-west, north-east) corners."""
        return LatLng(self.south, self.west), LatLng(self.north, self.east)

    def expanded(self, buffer: float) -> "BoundingBox":
        return BoundingBox(
            west=self.west - buffer,
            south=self.south - buffer,
            east=self.east + buffer,
            north=self.north + buffer,
        )

    def contains(self, lng: float, lat: float) -> bool:
        return self.west <= lng <= self.east and self.south <= lat <= self.north

    def as_dict(self) -> dict[str, float]:
        return {"west": self.west, "south": self.south, "east": self.east, "north": self.north}
