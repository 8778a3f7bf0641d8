from __future__ import annotations

from typing import Any, Iterable


def empty_feature_collection() -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}


def merge_feature_collections(collections: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Concatenate the features of several collections, keeping input order.

    Features are not deduplicated: neighbouring tiles may both carry a segment.
    """

    merged = empty_feature_collection()
    for collection in collections:
        merged["features"].extend(collection.get("features") or [])
    return merged
