"""Data models for transit payloads, favorites and search."""

from transitsync.models._base import TransitBaseModel
from transitsync.models.departures import (
    ArrivalDisplay,
    Departure,
    HeadsignGroup,
    NearbyDeparturesPayload,
    StopRecord,
    TransportKind,
    WaitingTimeEntry,
)
from transitsync.models.favorites import FavoriteRoute, FavoriteRouteKey, PinnedArrival, PinnedArrivalKey
from transitsync.models.location import Coordinates, LocationFix
from transitsync.models.search import BiasRegion, PlaceDetails, SearchResult, SearchResultKind

__all__ = [
    "ArrivalDisplay",
    "BiasRegion",
    "Coordinates",
    "Departure",
    "FavoriteRoute",
    "FavoriteRouteKey",
    "HeadsignGroup",
    "LocationFix",
    "NearbyDeparturesPayload",
    "PinnedArrival",
    "PinnedArrivalKey",
    "PlaceDetails",
    "SearchResult",
    "SearchResultKind",
    "StopRecord",
    "TransitBaseModel",
    "TransportKind",
    "WaitingTimeEntry",
]
