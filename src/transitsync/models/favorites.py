"""Persisted user favorites.

Uniqueness is decided by a composite identity key, never by a synthetic id.
"""

from __future__ import annotations

import time

from pydantic import AliasChoices, Field

from transitsync.models._base import TransitBaseModel

PinnedArrivalKey = tuple[str, str, str]
FavoriteRouteKey = tuple[str, str]


def _now_ms() -> int:
    return int(time.time() * 1000)


class PinnedArrival(TransitBaseModel):
    """An arrival the user pinned: a route heading somewhere, at a stop."""

    route_id: str = Field(validation_alias=AliasChoices("route_id", "routeId"))
    destination: str
    stop_id: str = Field(validation_alias=AliasChoices("stop_id", "stopId"))
    stop_name: str = Field(default="", validation_alias=AliasChoices("stop_name", "stopName"))
    added_at: int = Field(default_factory=_now_ms, validation_alias=AliasChoices("added_at", "addedDate"))

    @property
    def identity_key(self) -> PinnedArrivalKey:
        return (self.route_id, self.destination, self.stop_id)


class FavoriteRoute(TransitBaseModel):
    """A favorite route direction."""

    route_id: str = Field(validation_alias=AliasChoices("route_id", "routeId"))
    destination: str
    stop_id: str | None = Field(default=None, validation_alias=AliasChoices("stop_id", "stopId"))
    stop_name: str | None = Field(default=None, validation_alias=AliasChoices("stop_name", "stopName"))
    pinned: bool = False

    @property
    def identity_key(self) -> FavoriteRouteKey:
        return (self.route_id, self.destination)
