from __future__ import annotations

from typing import Any, Optional, Protocol


class RenderSink(Protocol):
    """Named overlay slots consumed by a map renderer."""

    def get(self, name: str) -> Optional[dict[str, Any]]: ...

    def set(self, name: str, payload: dict[str, Any]) -> None: ...

    def clear(self, name: str) -> None: ...


class InMemoryRenderSink:
    def __init__(self) -> None:
        self._sources: dict[str, dict[str, Any]] = {}

    def get(self, name: str) -> Optional[dict[str, Any]]:
        return self._sources.get(name)

    def set(self, name: str, payload: dict[str, Any]) -> None:
        self._sources[name] = payload

    def clear(self, name: str) -> None:
        self._sources.pop(name, None)

class LoadingIndicator:
    """Shown while at least one run is fetching tiles."""

    def __init__(self) -> None:
        self._pending = 0

    @property
    def active(self) -> bool:
        return self._pending > 0

    def start(self) -> None:
        self._pending += 1

    def stop(self) -> None:
        self._pending = max(0, self._pending - 1)


class HourSelector:
    """The hour of day whose speeds are shown; owned by the caller."""

    def __init__(self, value: int = 0) -> None:
        self._value = 0
        self.value = value

    @property
    def value(self) -> int:
        return self._value

    @value.setter
    def value(self, hour: int) -> None:
        if isinstance(hour, bool) or not isinstance(hour, int) or hour < 0:
            raise ValueError(f"hour must be a non-negative integer, got {hour!r}")
        self._value = hour
