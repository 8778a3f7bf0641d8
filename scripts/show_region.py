from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from trafficoverlay.geo import BoundingBox, LatLng
from trafficoverlay.logging_config import configure_logging
from trafficoverlay.overlay.assembler import OverlayAssembler, PipelineState
from trafficoverlay.settings import get_config
from trafficoverlay.storage.datasets import (
    overlay_geojson_path,
    save_csv,
    save_geojson,
    segment_speeds_csv_path,
    segment_speeds_frame,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the speed overlay for one bounding box.")
    region = parser.add_mutually_exclusive_group(required=True)
    region.add_argument("--bbox", help="Bounding box as 'west,south,east,north'.")
    region.add_argument(
        "--waypoints",
        nargs=2,
        metavar="LAT,LNG",
        help="Two route markers, in any order; their box is used as the region.",
    )
    parser.add_argument(
        "--hour",
        type=int,
        default=None,
        help="Hour bucket to join (default: config overlay.default_hour).",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Override output directory (default: config.paths.output_dir).",
    )
    parser.add_argument(
        "--csv",
        action="store_true",
        help="Also write the per-segment speeds as CSV.",
    )
    return parser.parse_args()


def parse_waypoint(text: str) -> LatLng:
    lat, lng = (float(part) for part in text.split(","))
    return LatLng(lat=lat, lng=lng)


def region_bounds(args: argparse.Namespace) -> BoundingBox:
    if args.waypoints:
        return BoundingBox.from_waypoints(*(parse_waypoint(text) for text in args.waypoints))
    return BoundingBox.parse(args.bbox)


async def run(args: argparse.Namespace) -> int:
    config = get_config()
    output_dir = Path(args.output_dir) if args.output_dir else config.paths.output_dir

    assembler = OverlayAssembler.from_config(config)
    if args.hour is not None:
        assembler.hour.value = args.hour
    try:
        result = await assembler.show_region(region_bounds(args))
    finally:
        await assembler.aclose()

    if result.state is not PipelineState.PUBLISHED or result.collection is None:
        message = result.error.message if result.error else result.state.value
        print(f"Overlay not published: {message}")
        return 1

    hour = int(result.hour or 0)
    geojson_path = save_geojson(result.collection, overlay_geojson_path(output_dir, hour))
    print(f"Saved overlay: {geojson_path}")
    print(f"Features: {len(result.collection['features']):,}")

    if args.csv:
        csv_path = save_csv(segment_speeds_frame(result.segments), segment_speeds_csv_path(output_dir, hour))
        print(f"Saved segment speeds: {csv_path}")
    return 0


def main() -> None:
    args = parse_args()
    configure_logging()
    raise SystemExit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
