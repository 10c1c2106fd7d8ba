"""Search and place models."""

from __future__ import annotations

from enum import StrEnum

from transitsync.models._base import TransitBaseModel
from transitsync.models.location import Coordinates


class SearchResultKind(StrEnum):
    ADDRESS = "ADDRESS"
    PLACE = "PLACE"
    STOP = "STOP"
    ROUTE = "ROUTE"
    CATEGORY = "CATEGORY"


class SearchResult(TransitBaseModel):
    title: str
    subtitle: str | None = None
    kind: SearchResultKind
    coordinates: Coordinates | None = None
    place_id: str | None = None
    route_id: str | None = None
    stop_id: str | None = None


class PlaceDetails(TransitBaseModel):
    """A resolved autocomplete suggestion."""

    place_id: str
    name: str
    address: str | None = None
    coordinates: Coordinates


class BiasRegion(TransitBaseModel):
    """Rectangular region autocomplete results are biased towards."""

    north: float
    south: float
    east: float
    west: float

    def contains(self, coordinates: Coordinates) -> bool:
        return self.south <= coordinates.lat <= self.north and self.west <= coordinates.lng <= self.east
