#!/usr/bin/env python3
"""Probe the places API the way the sync engine would.

Runs one nearby fetch around a coordinate and prints the normalized POIs,
optionally with the per-category raw features, so filtering and
deduplication can be checked against live data.

Usage
-----
Set the API key and run::

    export POISYNC_API_KEY="..."
    python scripts/probe_places.py --lat 48.1351 --lon 11.582

Options::

    --radius M           Search radius in meters (default: 1000)
    --category CAT       Category to query; repeatable (default: all supported)
    --limit N            Results per category (capped by configuration)
    --raw                Also print raw features per category
    --json               Output machine-readable JSON
    --check              Only run the connection test
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from poisync import Coordinate, PlacesClient, PoiSyncConfig, PoiSyncError, bounding_box  # noqa: E402
from poisync._api import places as places_api  # noqa: E402


def _section(title: str) -> str:
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}"


async def _dump_raw(client: PlacesClient, config: PoiSyncConfig, center: Coordinate, args: argparse.Namespace) -> None:
    transport = client._require_transport()  # noqa: SLF001
    bbox = bounding_box(center, args.radius)
    for category in args.categories:
        print(_section(f"RAW category={category}"))
        try:
            features = await places_api.fetch_category_features(
                config,
                transport,
                category,
                bbox,
                limit=args.limit or config.max_results_per_category,
            )
        except PoiSyncError as exc:
            print(f"  error: {exc}")
            continue
        for feature in features:
            print(json.dumps(feature.raw, indent=2, default=str, ensure_ascii=False))


async def main() -> None:
    parser = argparse.ArgumentParser(description="Fetch nearby POIs from the places API for debugging.")
    parser.add_argument("--lat", type=float, default=48.1351, help="Center latitude")
    parser.add_argument("--lon", type=float, default=11.582, help="Center longitude")
    parser.add_argument("--radius", type=float, default=1000.0, help="Search radius in meters")
    parser.add_argument("--category", action="append", dest="categories", help="Category to query (repeatable)")
    parser.add_argument("--limit", type=int, help="Results per category")
    parser.add_argument("--raw", action="store_true", help="Print raw features per category")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--check", action="store_true", help="Only run the connection test")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = PoiSyncConfig.from_env()
    args.categories = args.categories or list(config.supported_categories)
    center = Coordinate(latitude=args.lat, longitude=args.lon)

    try:
        async with PlacesClient(config) as client:
            if args.check:
                ok = await client.test_connection()
                print("connection ok" if ok else "connection FAILED")
                sys.exit(0 if ok else 1)

            if args.raw:
                await _dump_raw(client, config, center, args)

            pois = await client.fetch_nearby(center, args.radius, args.categories, limit=args.limit)
    except PoiSyncError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json_mode:
        payload: list[dict[str, Any]] = [poi.model_dump(mode="json", by_alias=True) for poi in pois]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    print(_section(f"POIs around {center} radius={args.radius:.0f}m"))
    for poi in pois:
        print(f"  {poi.id:<40} {poi.category:<28} {poi.name}")
    print(f"\n  total: {len(pois)}")


if __name__ == "__main__":
    asyncio.run(main())
