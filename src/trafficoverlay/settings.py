from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(root: Path, value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else (root / path)


class AppSection(BaseModel):
    name: str = "trafficoverlay"


class PathsSection(BaseModel):
    output_dir: Path = Path("data/processed")


class RoutingSection(BaseModel):
    base_url: str = "https://routing-prod.opentraffic.io"
    costing: str = "auto"
    request_timeout_seconds: float = 30


class TilesSection(BaseModel):
    geometry_base_url: str = "https://osmlr-tiles.s3.amazonaws.com/v0.1/geojson"
    data_base_url: str = "https://speedtiles-prod.opentraffic.io/reference"
    # No data is produced for level 2 tiles.
    excluded_levels: list[int] = Field(default_factory=lambda: [2])
    request_timeout_seconds: float = 30


class OverlaySection(BaseModel):
    source_name: str = "routes"
    clip_buffer_degrees: float = 0.0003
    segment_id_property: str = "osmlr_id"
    speed_property: str = "speed"
    default_hour: int = Field(default=0, ge=0)
    discard_stale_results: bool = True


class CorsSection(BaseModel):
    allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:8000", "http://localhost:5173"]
    )


class ApiSection(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    cors: CorsSection = Field(default_factory=CorsSection)


class AppConfig(BaseModel):
    app: AppSection = Field(default_factory=AppSection)
    paths: PathsSection = Field(default_factory=PathsSection)
    routing: RoutingSection = Field(default_factory=RoutingSection)
    tiles: TilesSection = Field(default_factory=TilesSection)
    overlay: OverlaySection = Field(default_factory=OverlaySection)
    api: ApiSection = Field(default_factory=ApiSection)

    def resolve_paths(self, root: Optional[Path] = None) -> "AppConfig":
        repo_root = project_root() if root is None else root
        updated_paths = self.paths.model_copy(
            update={"output_dir": _resolve_path(repo_root, self.paths.output_dir)}
        )
        return self.model_copy(update={"paths": updated_paths})


def _maybe_load_dotenv() -> None:
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return

    load_dotenv()


def load_config(config_path: str | Path | None = None) -> AppConfig:
    _maybe_load_dotenv()

    root = project_root()
    candidate = config_path or os.getenv("TRAFFICOVERLAY_CONFIG", "configs/config.yaml")
    path = _resolve_path(root, candidate)
    if not path.exists():
        path = root / "configs/config.example.yaml"

    data: dict[str, Any] = {}
    if path.exists():
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return AppConfig.model_validate(data).resolve_paths(root)


_CONFIG: AppConfig | None = None


def get_config() -> AppConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG
