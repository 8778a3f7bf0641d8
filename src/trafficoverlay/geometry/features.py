from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class GeometryFeature(BaseModel):
    """Shape check for one OSMLR feature; unknown members are kept as-is."""

    model_config = ConfigDict(extra="allow")

    geometry: Optional[dict[str, Any]] = None
    properties: Optional[dict[str, Any]] = None


class GeometryTile(BaseModel):
    model_config = ConfigDict(extra="allow")

    features: list[GeometryFeature] = Field(default_factory=list)


def parse_geometry_tile(payload: Any) -> dict[str, Any]:
    """Validate a geometry tile document and return it unchanged.

    Raises `ValueError` (pydantic's `ValidationError`) when the document is not a
    feature collection or one of its features has a non-object geometry or properties.
    """

    if not isinstance(payload, dict):
        raise ValueError(f"unexpected geometry tile payload: {type(payload).__name__}")
    GeometryTile.model_validate(payload)
    return payload
