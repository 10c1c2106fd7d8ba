"""transitsync - Async sync and cache layer for nearby transit departures."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("transitsync")
except PackageNotFoundError:
    __version__ = "0+local"
from transitsync.client import TransitSyncClient
from transitsync.config import ServiceArea, SyncConfig
from transitsync.controller import SyncController
from transitsync.exceptions import (
    AutocompleteError,
    GeocodingError,
    LocationPermissionError,
    MalformedPersistedDataError,
    TransitConfigError,
    TransitSyncError,
    TransitTransportError,
)
from transitsync.favorites import FavoritesStore
from transitsync.ingestion.departures import AggregationResult, aggregate, upcoming_only
from transitsync.location import LocationObserver
from transitsync.models import (
    BiasRegion,
    Coordinates,
    FavoriteRoute,
    LocationFix,
    NearbyDeparturesPayload,
    PinnedArrival,
    SearchResult,
    SearchResultKind,
    StopRecord,
    TransportKind,
    WaitingTimeEntry,
)
from transitsync.search import SearchCoordinator
from transitsync.state.channels import StateChannel, SyncState
from transitsync.state.freshness import DataDomain, FreshnessGate
from transitsync.storage import InMemoryKeyValueStore, JsonFileKeyValueStore

__all__ = [
    "AggregationResult",
    "AutocompleteError",
    "BiasRegion",
    "Coordinates",
    "DataDomain",
    "FavoriteRoute",
    "FavoritesStore",
    "FreshnessGate",
    "GeocodingError",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "LocationFix",
    "LocationObserver",
    "LocationPermissionError",
    "MalformedPersistedDataError",
    "NearbyDeparturesPayload",
    "PinnedArrival",
    "SearchCoordinator",
    "SearchResult",
    "SearchResultKind",
    "ServiceArea",
    "StateChannel",
    "StopRecord",
    "SyncConfig",
    "SyncController",
    "SyncState",
    "TransitConfigError",
    "TransitSyncClient",
    "TransitSyncError",
    "TransitTransportError",
    "TransportKind",
    "WaitingTimeEntry",
    "__version__",
    "aggregate",
    "upcoming_only",
]
