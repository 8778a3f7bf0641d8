from __future__ import annotations

import logging.config
import os
from pathlib import Path
from typing import Any

import yaml

from trafficoverlay.settings import project_root

# Per-tile request lines from httpx drown out the pipeline logs at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")


def _console_config(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"}
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"level": level, "handlers": ["console"]},
    }


def configure_logging(
    logging_config_path: str | Path | None = None, level: str | None = None
) -> None:
    """Configure logging from YAML, or a console fallback when the file is missing.

    `level` (or `TRAFFICOVERLAY_LOG_LEVEL`) overrides the `trafficoverlay` logger level.
    """

    root = project_root()
    candidate = logging_config_path or os.getenv(
        "TRAFFICOVERLAY_LOGGING_CONFIG", "configs/logging.yaml"
    )
    path = Path(candidate)
    if not path.is_absolute():
        path = root / path
    level = (level or os.getenv("TRAFFICOVERLAY_LOG_LEVEL") or "").upper() or None

    if path.exists():
        config: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        config = _console_config(level or "INFO")
    logging.config.dictConfig(config)

    if level:
        logging.getLogger("trafficoverlay").setLevel(level)
