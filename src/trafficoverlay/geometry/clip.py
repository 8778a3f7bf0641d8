"""Clip OSMLR geometry to a bounding box.

OSMLR geometry tiles nest coordinates deeper than plain GeoJSON line strings, so the
clipper does not assume a fixed depth: any list whose first two items are numbers is a
`[lng, lat]` point, every other list is a container. Points outside the (buffered) box
are dropped, then every container left empty is dropped, bottom-up, and finally every
feature left without coordinates.
"""

from __future__ import annotations

from typing import Any, Optional

from trafficoverlay.geo import BoundingBox

CLIP_BUFFER_DEGREES = 0.0003


def _is_point(node: Any) -> bool:
    return (
        isinstance(node, (list, tuple))
        and len(node) >= 2
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in node[:2])
    )


def _prune(node: Any, box: BoundingBox) -> Optional[Any]:
    if _is_point(node):
        return node if box.contains(node[0], node[1]) else None
    if not isinstance(node, (list, tuple)):
        return None
    kept = []
    for child in node:
        pruned = _prune(child, box)
        if pruned is not None:
            kept.append(pruned)
    return kept or None


def clip_coordinates(coordinates: Any, box: BoundingBox) -> Optional[Any]:
    """Return the coordinate tree restricted to `box`, or None if nothing survives."""
    return _prune(coordinates, box)


def clip_features(
    features: list[dict[str, Any]],
    bounds: BoundingBox,
    buffer: float = CLIP_BUFFER_DEGREES,
) -> list[dict[str, Any]]:
    box = bounds.expanded(buffer)
    clipped: list[dict[str, Any]] = []
    for feature in features:
        geometry = feature.get("geometry") or {}
        coordinates = clip_coordinates(geometry.get("coordinates"), box)
        if coordinates is None:
            continue
        clipped.append({**feature, "geometry": {**geometry, "coordinates": coordinates}})
    return clipped


def clip_feature_collection(
    collection: dict[str, Any],
    bounds: BoundingBox,
    buffer: float = CLIP_BUFFER_DEGREES,
) -> dict[str, Any]:
    features = clip_features(list(collection.get("features") or []), bounds, buffer)
    return {**collection, "features": features}
