"""Orchestration of location, refresh cadence, search and favorites.

The controller is the only writer of :class:`SyncState`. Location fixes,
network responses and favorites reads complete asynchronously and in any
order; each refresh is tagged with a generation number and a completion
whose generation is no longer current is dropped, so published departures
always belong to the most recently started refresh.

Network and permission failures stop here and are published on the
``error_message`` channel. Nothing raises past the controller.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Coroutine
from typing import Any

from transitsync.config import SyncConfig
from transitsync.exceptions import LocationPermissionError, TransitTransportError
from transitsync.favorites import FavoritesStore
from transitsync.ingestion.departures import aggregate, upcoming_only
from transitsync.location import LocationObserver
from transitsync.models.departures import WaitingTimeEntry
from transitsync.models.favorites import FavoriteRoute, PinnedArrival
from transitsync.models.location import Coordinates, LocationFix
from transitsync.models.search import BiasRegion, SearchResult
from transitsync.providers import AutocompleteProvider, PlaceResolver, TransitDataSource
from transitsync.search import SearchCoordinator, destination_categories
from transitsync.state.channels import SyncState
from transitsync.state.freshness import DataDomain, FreshnessGate

_logger = logging.getLogger(__name__)

PIN_ADDED_MESSAGE = "Aggiunto ai preferiti"
PIN_REMOVED_MESSAGE = "Rimosso dai preferiti"
PLACE_UNAVAILABLE_MESSAGE = "Impossibile trovare il luogo selezionato"


class SyncController:
    """Single owner of the published transit state.

    Parameters
    ----------
    config : SyncConfig
        Radius, look-ahead, freshness windows and user-facing messages.
    data_source : TransitDataSource
        Nearby departures backend.
    observer : LocationObserver
        Displacement-filtered location stream.
    favorites : FavoritesStore
        Persisted pinned arrivals and favorite routes.
    autocomplete : AutocompleteProvider
        Suggestion source for the search coordinator.
    place_resolver : PlaceResolver, optional
        Resolves search results that carry only a place id.
    freshness : FreshnessGate, optional
        Refresh cadence policy. Built from ``config`` when omitted.
    state : SyncState, optional
        Channels to publish on. A fresh set is created when omitted.
    search : SearchCoordinator, optional
        Autocomplete coordinator. One biased to the service area is built
        from ``autocomplete`` when omitted. Its listeners are rewired to
        the state channels either way.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        data_source: TransitDataSource,
        observer: LocationObserver,
        favorites: FavoritesStore,
        autocomplete: AutocompleteProvider,
        place_resolver: PlaceResolver | None = None,
        freshness: FreshnessGate | None = None,
        state: SyncState | None = None,
        search: SearchCoordinator | None = None,
    ) -> None:
        self._config = config
        self._data_source = data_source
        self._observer = observer
        self._favorites = favorites
        self._place_resolver = place_resolver
        self._gate = freshness or FreshnessGate(
            {DataDomain.NEARBY: config.nearby_ttl, DataDomain.REALTIME: config.realtime_ttl}
        )
        self._state = state or SyncState()
        if search is None:
            area = config.service_area
            search = SearchCoordinator(
                autocomplete,
                bias_region=BiasRegion(north=area.north, south=area.south, east=area.east, west=area.west),
            )
        search.set_listeners(
            on_results=lambda results: self._state.search_results.publish(tuple(results)),
            on_searching=self._state.is_searching.publish,
        )
        self._search = search
        self._refresh_generation = 0
        self._manual_mode = False
        self._watcher: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def freshness(self) -> FreshnessGate:
        return self._gate

    @property
    def search(self) -> SearchCoordinator:
        return self._search

    @property
    def favorites(self) -> FavoritesStore:
        return self._favorites

    @property
    def is_manual_mode(self) -> bool:
        return self._manual_mode

    def upcoming_waiting_times(self) -> list[WaitingTimeEntry]:
        """Published waiting times without already-departed entries."""
        return upcoming_only(self._state.waiting_times.value)

    def pinned_waiting_times(self) -> list[WaitingTimeEntry]:
        """Upcoming waiting times matching a pinned arrival."""
        pinned = {arrival.identity_key for arrival in self._state.pinned_arrivals.value}
        return [
            entry
            for entry in self.upcoming_waiting_times()
            if (entry.route_id, entry.destination_label, entry.stop_id) in pinned
        ]

    def clear_error(self) -> None:
        """Reset the error message once it has been shown."""
        if self._state.error_message.value is not None:
            self._state.error_message.publish(None)

    def clear_toast(self) -> None:
        """Reset the toast message once it has been shown."""
        if self._state.toast_message.value is not None:
            self._state.toast_message.publish(None)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    async def on_location_changed(self, fix: LocationFix) -> None:
        """Publish *fix*; refresh nearby departures when they are stale."""
        self._state.current_location.publish(fix)
        if not self._gate.is_stale(DataDomain.NEARBY):
            _logger.debug("Nearby departures still fresh, skipping refresh")
            return
        await self._refresh(fix.coordinates, DataDomain.NEARBY)

    async def on_location_permission_granted(self) -> None:
        """Start following the device position and resolve it once."""
        try:
            self._observer.start()
        except LocationPermissionError:
            _logger.warning("Location permission reported granted but provider refused it")
            self.on_location_permission_denied()
            return
        if self._watcher is None or self._watcher.done():
            self._watcher = self._spawn(self._watch_location())

        if self._manual_mode:
            return
        fix = await self._observer.get_current_fix()
        if fix is None:
            self._state.error_message.publish(self._config.location_unavailable_message)
            return
        await self.on_location_changed(fix)

    def on_location_permission_denied(self) -> None:
        """Fall back to the default location and report the denial.

        No departures are fetched: refresh paths stop at the permission check.
        """
        if not self._manual_mode:
            self._state.current_location.publish(
                LocationFix(
                    address=self._config.default_location_address,
                    coordinates=self._config.default_location,
                )
            )
        self._state.error_message.publish(self._config.permission_denied_message)

    async def _watch_location(self) -> None:
        try:
            async for fix in self._observer.fixes():
                if self._manual_mode:
                    _logger.debug("Manual location active, ignoring device fix")
                    continue
                await self.on_location_changed(fix)
        except LocationPermissionError:
            self.on_location_permission_denied()
        except Exception:
            _logger.warning("Location stream ended with an error", exc_info=True)
            self._state.error_message.publish(self._config.location_unavailable_message)

    async def set_manual_location(self, fix: LocationFix) -> None:
        """Pin the current location to *fix* until :meth:`return_to_gps_mode`."""
        if not fix.is_manual:
            fix = fix.model_copy(update={"is_manual": True})
        self._manual_mode = True
        self._gate.invalidate(DataDomain.NEARBY)
        await self.on_location_changed(fix)

    async def return_to_gps_mode(self) -> None:
        """Leave manual mode and go back to the device position."""
        self._manual_mode = False
        if not self._observer.has_permission():
            self.on_location_permission_denied()
            return
        fix = self._observer.last_fix or await self._observer.get_current_fix()
        if fix is None:
            self._state.error_message.publish(self._config.location_unavailable_message)
            return
        self._gate.invalidate(DataDomain.NEARBY)
        await self.on_location_changed(fix)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def _current_coordinates(self) -> Coordinates | None:
        fix = self._state.current_location.value
        if fix is None:
            message = (
                self._config.location_unavailable_message
                if self._observer.has_permission()
                else self._config.permission_denied_message
            )
            self._state.error_message.publish(message)
            return None
        if not fix.is_manual and not self._observer.has_permission():
            self._state.error_message.publish(self._config.permission_denied_message)
            return None
        return fix.coordinates

    async def force_refresh(self) -> bool:
        """Refresh nearby departures regardless of their age.

        Returns ``True`` when new data was published.
        """
        self._gate.invalidate(DataDomain.NEARBY)
        coordinates = self._current_coordinates()
        if coordinates is None:
            return False
        return await self._refresh(coordinates, DataDomain.NEARBY)

    async def refresh_realtime(self) -> bool:
        """Refresh departures if the realtime window has expired.

        Skipped while another refresh is in flight: starting one would
        supersede it, and a nearby refresh already updates realtime data.
        """
        if self._state.is_loading_departures.value:
            _logger.debug("Refresh in flight, skipping realtime refresh")
            return False
        if not self._gate.is_stale(DataDomain.REALTIME):
            return False
        coordinates = self._current_coordinates()
        if coordinates is None:
            return False
        return await self._refresh(coordinates, DataDomain.REALTIME)

    async def _refresh(self, coordinates: Coordinates, domain: DataDomain) -> bool:
        self._refresh_generation += 1
        generation = self._refresh_generation
        self._state.is_loading_departures.publish(True)
        _logger.debug(
            "Refreshing %s departures at %s,%s (generation=%d)",
            domain,
            coordinates.lat,
            coordinates.lng,
            generation,
        )
        try:
            payloads = await self._data_source.fetch_nearby_departures_payloads(
                coordinates,
                self._config.radius_meters,
                self._config.look_ahead_minutes,
            )
        except asyncio.CancelledError:
            if generation == self._refresh_generation:
                self._state.is_loading_departures.publish(False)
            raise
        except Exception as exc:
            if generation != self._refresh_generation:
                return False
            _logger.warning(
                "Departures refresh failed: %s",
                exc,
                exc_info=not isinstance(exc, TransitTransportError),
            )
            self._state.error_message.publish(self._config.network_error_message)
            self._state.is_loading_departures.publish(False)
            return False

        if generation != self._refresh_generation:
            _logger.debug("Discarding refresh generation=%d (current=%d)", generation, self._refresh_generation)
            return False

        result = aggregate(payloads)
        self._state.waiting_times.publish(result.waiting_times)
        self._state.nearby_stops.publish(result.stops)
        self._gate.mark_refreshed(domain)
        if domain == DataDomain.NEARBY:
            # The nearby endpoint carries realtime flags too.
            self._gate.mark_refreshed(DataDomain.REALTIME)
        self.clear_error()
        self._state.is_loading_departures.publish(False)
        _logger.debug(
            "Published %d waiting times across %d stops",
            len(result.waiting_times),
            len(result.stops),
        )
        return True

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def open_search(self) -> None:
        self._state.search_open.publish(True)
        self._state.search_query.publish("")
        self._state.search_results.publish(tuple(destination_categories()))

    def update_query(self, text: str) -> asyncio.Task[None] | None:
        self._state.search_query.publish(text)
        task = self._search.update_query(text)
        if task is None and self._state.search_open.value:
            self._state.search_results.publish(tuple(destination_categories()))
        return task

    def close_search(self) -> None:
        self._search.stop()
        self._state.search_open.publish(False)
        self._state.search_query.publish("")
        self._state.search_results.publish(())

    async def select_search_result(self, result: SearchResult) -> bool:
        """Move the manual location to *result*.

        Results without coordinates are resolved through the place resolver.
        Returns ``False`` (with a toast) when no position could be found.
        """
        coordinates = result.coordinates
        address = result.title
        if coordinates is None and result.place_id and self._place_resolver is not None:
            try:
                details = await self._place_resolver.resolve_place(result.place_id)
            except Exception:
                _logger.warning("Place lookup failed for %s", result.place_id, exc_info=True)
                details = None
            if details is not None:
                coordinates = details.coordinates
                address = details.address or details.name
        if coordinates is None:
            self._state.toast_message.publish(PLACE_UNAVAILABLE_MESSAGE)
            return False

        self.close_search()
        await self.set_manual_location(LocationFix(address=address, coordinates=coordinates, is_manual=True))
        return True

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    async def load_favorites(self) -> None:
        """Publish both persisted collections."""
        self._state.pinned_arrivals.publish(tuple(await self._favorites.get_pinned_arrivals()))
        self._state.favorite_routes.publish(tuple(await self._favorites.get_favorite_routes()))

    async def _publish_pinned(self) -> None:
        self._state.pinned_arrivals.publish(tuple(await self._favorites.get_pinned_arrivals()))

    async def _publish_routes(self) -> None:
        self._state.favorite_routes.publish(tuple(await self._favorites.get_favorite_routes()))

    async def add_pinned_arrival(self, arrival: PinnedArrival) -> bool:
        added = await self._favorites.add_pinned_arrival(arrival)
        await self._publish_pinned()
        if added:
            self._state.toast_message.publish(PIN_ADDED_MESSAGE)
        return added

    async def remove_pinned_arrival(self, route_id: str, destination: str, stop_id: str) -> bool:
        removed = await self._favorites.remove_pinned_arrival(route_id, destination, stop_id)
        await self._publish_pinned()
        if removed:
            self._state.toast_message.publish(PIN_REMOVED_MESSAGE)
        return removed

    async def toggle_pinned_arrival(self, entry: WaitingTimeEntry, stop_name: str = "") -> bool:
        """Pin or unpin the arrival shown by *entry*. Returns the new pinned state."""
        if await self._favorites.is_pinned_arrival(entry.route_id, entry.destination_label, entry.stop_id):
            await self.remove_pinned_arrival(entry.route_id, entry.destination_label, entry.stop_id)
            return False
        await self.add_pinned_arrival(
            PinnedArrival(
                route_id=entry.route_id,
                destination=entry.destination_label,
                stop_id=entry.stop_id,
                stop_name=stop_name,
            )
        )
        return True

    async def add_favorite_route(self, route: FavoriteRoute) -> bool:
        added = await self._favorites.add_favorite_route(route)
        await self._publish_routes()
        return added

    async def remove_favorite_route(self, route_id: str, destination: str) -> bool:
        removed = await self._favorites.remove_favorite_route(route_id, destination)
        await self._publish_routes()
        return removed

    async def clear_favorites(self) -> None:
        await self._favorites.clear_all()
        self._state.pinned_arrivals.publish(())
        self._state.favorite_routes.publish(())

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Stop the location stream and wait for background work."""
        await self._observer.stop()
        await self._search.aclose()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._watcher = None
