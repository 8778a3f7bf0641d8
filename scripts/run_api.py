from __future__ import annotations

import argparse

import uvicorn

from trafficoverlay.settings import get_config


def parse_args() -> argparse.Namespace:
    config = get_config()
    parser = argparse.ArgumentParser(description="Serve the traffic overlay API.")
    parser.add_argument("--host", default=config.api.host, help="Bind address (default: config api.host).")
    parser.add_argument(
        "--port", type=int, default=int(config.api.port), help="Port (default: config api.port)."
    )
    parser.add_argument("--reload", action="store_true", help="Reload on source changes.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    uvicorn.run(
        "trafficoverlay.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
