"""Structural interfaces of the external collaborators.

Production adapters (HTTP data source, platform location, places API,
persistent storage) live outside the sync core. Having protocols here makes
it easy to pass test doubles while keeping the core free of platform code.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from transitsync.models.departures import NearbyDeparturesPayload
from transitsync.models.location import Coordinates
from transitsync.models.search import BiasRegion, PlaceDetails, SearchResult

#: Releases a location subscription. Calling it more than once is allowed.
Unsubscribe = Callable[[], None]


class TransitDataSource(Protocol):
    async def fetch_nearby_departures_payloads(
        self,
        coordinates: Coordinates,
        radius_meters: int,
        look_ahead_minutes: int,
    ) -> list[NearbyDeparturesPayload]:
        """Raise :class:`~transitsync.exceptions.TransitTransportError` on failure."""
        ...


class LocationProvider(Protocol):
    def has_permission(self) -> bool:
        ...

    async def get_current_fix(self) -> Coordinates | None:
        ...

    def subscribe(
        self,
        on_fix: Callable[[Coordinates], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Unsubscribe:
        ...


class ReverseGeocoder(Protocol):
    async def resolve_address(self, coordinates: Coordinates) -> str | None:
        ...


class AutocompleteProvider(Protocol):
    async def find_suggestions(self, query: str, bias_region: BiasRegion | None) -> list[SearchResult]:
        """Raise :class:`~transitsync.exceptions.AutocompleteError` on failure."""
        ...


class PlaceResolver(Protocol):
    async def resolve_place(self, place_id: str) -> PlaceDetails | None:
        ...


class PersistentKeyValueStore(Protocol):
    async def read_blob(self, key: str) -> str | None:
        ...

    async def write_blob(self, key: str, value: str) -> None:
        ...

    async def clear(self) -> None:
        ...


__all__ = [
    "AutocompleteProvider",
    "LocationProvider",
    "PersistentKeyValueStore",
    "PlaceResolver",
    "ReverseGeocoder",
    "TransitDataSource",
    "Unsubscribe",
]
