#!/usr/bin/env python3
"""Dump nearby departures for a position.

Fetches the nearby-departures payloads for one coordinate pair, runs them
through the aggregator and prints the flat waiting-time list plus the stop
catalog, so you can check what the sync layer would publish.

Usage
-----
::

    python scripts/dump_nearby.py --lat 45.0703 --lng 7.6869

Options::

    --lat / --lng        Position (default: Piazza Castello)
    --radius METERS      Search radius (default: from config)
    --look-ahead MIN     Look-ahead window in minutes (default: from config)
    --all                Include departures that already left
    --json               Output as machine-readable JSON
    --output FILE        Write JSON output to FILE instead of stdout
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from transitsync import Coordinates, SyncConfig, aggregate, upcoming_only  # noqa: E402
from transitsync._transport import HttpTransitDataSource  # noqa: E402
from transitsync.exceptions import TransitSyncError  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _realtime_marker(is_real_time: bool) -> str:
    return "*" if is_real_time else " "


# ── main ─────────────────────────────────────────────────────


async def main() -> int:
    config = SyncConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Dump nearby departures and the stop catalog for a position.",
    )
    parser.add_argument("--lat", type=float, default=config.default_location.lat, help="Latitude")
    parser.add_argument("--lng", type=float, default=config.default_location.lng, help="Longitude")
    parser.add_argument("--radius", type=int, default=config.radius_meters, help="Search radius in meters")
    parser.add_argument(
        "--look-ahead", type=int, default=config.look_ahead_minutes, help="Look-ahead window in minutes"
    )
    parser.add_argument("--all", action="store_true", dest="include_past", help="Include departed entries")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write JSON output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    position = Coordinates(lat=args.lat, lng=args.lng)
    if not config.service_area.contains(position):
        print(f"warning: {position.lat},{position.lng} is outside the service area", file=sys.stderr)

    async with aiohttp.ClientSession() as session:
        source = HttpTransitDataSource(config, session)
        try:
            payloads = await source.fetch_nearby_departures_payloads(position, args.radius, args.look_ahead)
        except TransitSyncError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1

    result = aggregate(payloads)
    waiting_times = list(result.waiting_times) if args.include_past else upcoming_only(result.waiting_times)

    if args.json_mode or args.output:
        document: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "position": position.model_dump(),
            "radius_meters": args.radius,
            "waiting_times": [entry.model_dump(mode="json") for entry in waiting_times],
            "stops": [stop.model_dump(mode="json") for stop in result.stops],
        }
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)
        return 0

    out: list[str] = []
    out.append(_section("transitsync dump_nearby"))
    out.append(f"  position  : {position.lat},{position.lng}")
    out.append(f"  radius    : {args.radius} m, look-ahead {args.look_ahead} min")
    out.append(f"  routes    : {len(payloads)}")

    out.append(_section(f"WAITING TIMES ({len(waiting_times)})"))
    for entry in waiting_times:
        out.append(
            f"  {entry.minutes_until_arrival:>4} min{_realtime_marker(entry.is_real_time)} "
            f"{entry.route_id:<6} {entry.destination_label}  @ {entry.stop_id}"
        )

    out.append(_section(f"STOPS ({len(result.stops)})"))
    for stop in result.stops:
        out.append(f"  {stop.distance_meters:>6} m  {stop.stop_id:<8} {stop.stop_name}  [{', '.join(stop.routes)}]")

    print("\n".join(out))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
