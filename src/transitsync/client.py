"""Composition root wiring the sync core to its collaborators."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from transitsync._transport import HttpTransitDataSource, TraceCallback
from transitsync.config import SyncConfig
from transitsync.controller import SyncController
from transitsync.exceptions import TransitSyncError
from transitsync.favorites import FavoritesStore
from transitsync.location import LocationObserver
from transitsync.providers import (
    AutocompleteProvider,
    LocationProvider,
    PersistentKeyValueStore,
    PlaceResolver,
    ReverseGeocoder,
    TransitDataSource,
)
from transitsync.search import SearchCoordinator
from transitsync.state.channels import SyncState
from transitsync.storage import InMemoryKeyValueStore, JsonFileKeyValueStore

_logger = logging.getLogger(__name__)


class TransitSyncClient:
    """Owns the HTTP session, the favorites store and the controller.

    Usage::

        async with TransitSyncClient(
            config,
            location_provider=provider,
            reverse_geocoder=geocoder,
            autocomplete_provider=autocomplete,
        ) as client:
            client.state.waiting_times.subscribe(render)
            await client.controller.on_location_permission_granted()
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        location_provider: LocationProvider,
        reverse_geocoder: ReverseGeocoder,
        autocomplete_provider: AutocompleteProvider,
        place_resolver: PlaceResolver | None = None,
        key_value_store: PersistentKeyValueStore | None = None,
        data_source: TransitDataSource | None = None,
        session: aiohttp.ClientSession | None = None,
        on_trace: TraceCallback | None = None,
    ) -> None:
        self._config = config
        self._location_provider = location_provider
        self._reverse_geocoder = reverse_geocoder
        self._autocomplete_provider = autocomplete_provider
        self._place_resolver = place_resolver
        self._key_value_store = key_value_store
        self._data_source = data_source
        self._external_session = session is not None
        self._http_session = session
        self._on_trace = on_trace
        self._controller: SyncController | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TransitSyncClient:
        data_source = self._data_source
        if data_source is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            data_source = HttpTransitDataSource(self._config, self._http_session, on_trace=self._on_trace)

        store = self._key_value_store
        if store is None:
            if self._config.favorites_path:
                store = JsonFileKeyValueStore(self._config.favorites_path)
            else:
                store = InMemoryKeyValueStore()

        observer = LocationObserver(
            self._location_provider,
            self._reverse_geocoder,
            threshold_m=self._config.location_threshold_m,
            fallback_address=self._config.fallback_address,
        )
        self._controller = SyncController(
            self._config,
            data_source=data_source,
            observer=observer,
            favorites=FavoritesStore(store),
            autocomplete=self._autocomplete_provider,
            place_resolver=self._place_resolver,
        )
        await self._controller.load_favorites()
        _logger.debug("Transit sync client started (favorites=%s)", type(store).__name__)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._controller is not None:
            await self._controller.aclose()
            self._controller = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def controller(self) -> SyncController:
        if self._controller is None:
            raise TransitSyncError("Client not initialized. Use 'async with TransitSyncClient(...) as client:'")
        return self._controller

    @property
    def state(self) -> SyncState:
        return self.controller.state

    @property
    def favorites(self) -> FavoritesStore:
        return self.controller.favorites

    @property
    def search(self) -> SearchCoordinator:
        return self.controller.search
