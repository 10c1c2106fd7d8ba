"""Nearby-departures payloads and the display records derived from them."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, computed_field, field_validator

from transitsync.models._base import TransitBaseModel


class TransportKind(StrEnum):
    BUS = "BUS"
    METRO = "METRO"
    TRAM = "TRAM"

    @classmethod
    def _missing_(cls, value: object) -> TransportKind:
        if isinstance(value, str):
            upper = value.strip().upper()
            for member in cls:
                if member.value == upper:
                    return member
        return cls.BUS


class Departure(TransitBaseModel):
    """A single departure of a trip from a stop."""

    trip_id: str = Field(default="", validation_alias=AliasChoices("trip_id", "tripId"))
    scheduled_or_actual_time: str = Field(
        default="",
        validation_alias=AliasChoices("actual_departure_time", "scheduled_or_actual_time"),
    )
    wait_minutes: int = Field(validation_alias=AliasChoices("wait_minutes", "waitMinutes"))
    has_realtime_update: bool = Field(
        default=False,
        validation_alias=AliasChoices("has_realtime_update", "hasRealtimeUpdate"),
    )


class HeadsignGroup(TransitBaseModel):
    """Departures of one route variant at one stop."""

    destination_label: str = Field(
        default="",
        validation_alias=AliasChoices("trip_headsign", "destination_label"),
    )
    stop_id: str = Field(validation_alias=AliasChoices("stop_id", "stopId"))
    stop_name: str = Field(default="", validation_alias=AliasChoices("stop_name", "stopName"))
    lat: float = Field(default=0.0, validation_alias=AliasChoices("stop_lat", "lat"))
    lon: float = Field(default=0.0, validation_alias=AliasChoices("stop_lon", "lon"))
    distance_meters: int = Field(
        default=0,
        validation_alias=AliasChoices("distance_to_stop", "distance_meters"),
    )
    departures: tuple[Departure, ...] = ()

    @field_validator("stop_id", mode="before")
    @classmethod
    def _coerce_stop_id(cls, value: Any) -> Any:
        # Some deployments send numeric stop ids.
        if isinstance(value, int):
            return str(value)
        return value


class NearbyDeparturesPayload(TransitBaseModel):
    """One route's entry in the nearby-departures response."""

    route_id: str = Field(validation_alias=AliasChoices("route_id", "routeId"))
    headsigns: tuple[HeadsignGroup, ...] = ()

    @field_validator("route_id", mode="before")
    @classmethod
    def _coerce_route_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class WaitingTimeEntry(TransitBaseModel):
    """A flattened, display-ready departure.

    Derived on every aggregation pass; never persisted.
    """

    route_id: str
    destination_label: str
    minutes_until_arrival: int
    transport_kind: TransportKind = TransportKind.BUS
    is_real_time: bool = False
    stop_id: str
    trip_id: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def entry_id(self) -> str:
        return f"{self.route_id}_{self.destination_label}_{self.stop_id}"


class ArrivalDisplay(TransitBaseModel):
    """Upcoming arrival joined with the stop it departs from."""

    route_id: str
    destination_label: str
    wait_minutes: int
    stop_name: str
    stop_id: str
    distance_meters: int
    is_real_time: bool = False
    trip_id: str | None = None


class StopRecord(TransitBaseModel):
    """A stop in the nearby catalog.

    ``routes`` holds each route id at most once.
    """

    stop_id: str
    stop_name: str
    lat: float
    lon: float
    distance_meters: int
    routes: tuple[str, ...] = ()

    @field_validator("routes", mode="after")
    @classmethod
    def _unique_routes(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(value))
