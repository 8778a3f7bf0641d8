from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx


class OverlayError(RuntimeError):
    """Base class for every error raised by the overlay pipeline."""


class InvalidBoundingBox(OverlayError, ValueError):
    pass


class InvalidSegmentId(OverlayError, ValueError):
    pass


class SpeedLookupMiss(OverlayError, LookupError):
    """No subtile could supply a speed for a segment."""


class _FetchFailure(OverlayError):
    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class RouteLookupFailure(_FetchFailure):
    pass


class TileFetchFailure(_FetchFailure):
    """A geometry tile could not be fetched; the whole merge is abandoned."""


class DataTileFetchFailure(_FetchFailure):
    """A speed data tile could not be fetched; the speed join is abandoned."""


@dataclass(frozen=True)
class FetchErrorInfo:
    code: str
    kind: str
    message: str


def classify_fetch_error(exc: BaseException) -> FetchErrorInfo:
    """Classify fetch failures into stable codes for logs and API responses."""

    # Stage failures wrap the transport error; classify the root cause.
    root: BaseException = exc
    while isinstance(root, _FetchFailure) and root.__cause__ is not None:
        root = root.__cause__

    text = str(exc)
    lower = str(root).lower()

    if isinstance(root, httpx.HTTPStatusError):
        status = int(root.response.status_code)
        if status == 429:
            return FetchErrorInfo(code="rate_limited", kind="http", message=f"HTTP 429 rate limited: {text}")
        return FetchErrorInfo(code=f"http_{status}", kind="http", message=f"HTTP {status}: {text}")

    if isinstance(root, httpx.TimeoutException):
        return FetchErrorInfo(code="timeout", kind="network", message=text)

    if isinstance(root, httpx.ConnectError):
        if "name or service not known" in lower or "temporary failure in name resolution" in lower:
            return FetchErrorInfo(code="dns", kind="network", message=text)
        return FetchErrorInfo(code="connect_error", kind="network", message=text)

    if isinstance(root, ValueError):
        # JSON decoding and payload validation errors.
        return FetchErrorInfo(code="invalid_payload", kind="payload", message=text)

    return FetchErrorInfo(code="unknown", kind="unknown", message=text)
