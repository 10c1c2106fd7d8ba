"""Flatten nearby-departures payloads into display records.

Turns the nested route -> headsign -> departure tree into:

* a flat list of :class:`WaitingTimeEntry`, sorted by minutes with ties kept
  in emission order (Python's sort is stable; there is no secondary key);
* a stop catalog with one :class:`StopRecord` per stop id, sorted by distance.

Negative wait values are kept here. Filtering to upcoming arrivals is a
view concern, see :func:`upcoming_only`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from transitsync.models.departures import (
    ArrivalDisplay,
    NearbyDeparturesPayload,
    StopRecord,
    TransportKind,
    WaitingTimeEntry,
)


@dataclass(frozen=True, slots=True)
class AggregationResult:
    waiting_times: tuple[WaitingTimeEntry, ...] = ()
    stops: tuple[StopRecord, ...] = ()


def flatten_waiting_times(payloads: Iterable[NearbyDeparturesPayload]) -> list[WaitingTimeEntry]:
    """One entry per departure, sorted ascending by minutes (stable)."""
    entries: list[WaitingTimeEntry] = []
    for payload in payloads:
        for headsign in payload.headsigns:
            for departure in headsign.departures:
                entries.append(
                    WaitingTimeEntry(
                        route_id=payload.route_id,
                        destination_label=headsign.destination_label,
                        minutes_until_arrival=departure.wait_minutes,
                        transport_kind=TransportKind.BUS,
                        is_real_time=departure.has_realtime_update,
                        stop_id=headsign.stop_id,
                        trip_id=departure.trip_id or None,
                    )
                )
    entries.sort(key=lambda entry: entry.minutes_until_arrival)
    return entries


def build_stop_catalog(payloads: Iterable[NearbyDeparturesPayload]) -> list[StopRecord]:
    """Merge headsign groups into one record per stop id.

    The first occurrence of a stop fixes its name, position and distance;
    later occurrences only contribute route ids not seen yet.
    """
    first_seen: dict[str, StopRecord] = {}
    routes_by_stop: dict[str, dict[str, None]] = {}
    for payload in payloads:
        for headsign in payload.headsigns:
            routes = routes_by_stop.get(headsign.stop_id)
            if routes is None:
                first_seen[headsign.stop_id] = StopRecord(
                    stop_id=headsign.stop_id,
                    stop_name=headsign.stop_name,
                    lat=headsign.lat,
                    lon=headsign.lon,
                    distance_meters=headsign.distance_meters,
                )
                routes = {}
                routes_by_stop[headsign.stop_id] = routes
            routes.setdefault(payload.route_id, None)

    stops = [
        record.model_copy(update={"routes": tuple(routes_by_stop[stop_id])})
        for stop_id, record in first_seen.items()
    ]
    stops.sort(key=lambda stop: stop.distance_meters)
    return stops


def aggregate(payloads: Sequence[NearbyDeparturesPayload]) -> AggregationResult:
    """Recompute waiting times and the stop catalog from scratch."""
    if not payloads:
        return AggregationResult()
    return AggregationResult(
        waiting_times=tuple(flatten_waiting_times(payloads)),
        stops=tuple(build_stop_catalog(payloads)),
    )


def upcoming_only(entries: Iterable[WaitingTimeEntry]) -> list[WaitingTimeEntry]:
    """View selector: drop departures that already left."""
    return [entry for entry in entries if entry.minutes_until_arrival >= 0]


def build_arrival_displays(payloads: Iterable[NearbyDeparturesPayload]) -> list[ArrivalDisplay]:
    """Upcoming arrivals joined with stop name and distance, soonest first."""
    displays: list[ArrivalDisplay] = []
    for payload in payloads:
        for headsign in payload.headsigns:
            for departure in headsign.departures:
                if departure.wait_minutes < 0:
                    continue
                displays.append(
                    ArrivalDisplay(
                        route_id=payload.route_id,
                        destination_label=headsign.destination_label,
                        wait_minutes=departure.wait_minutes,
                        stop_name=headsign.stop_name,
                        stop_id=headsign.stop_id,
                        distance_meters=headsign.distance_meters,
                        is_real_time=departure.has_realtime_update,
                        trip_id=departure.trip_id or None,
                    )
                )
    displays.sort(key=lambda display: display.wait_minutes)
    return displays
