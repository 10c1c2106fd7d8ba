"""Persisted, deduplicated favorites.

Two collections, pinned arrivals and favorite routes, each stored as one JSON
blob under a fixed key. Every mutation reads the whole collection, changes it
in memory and writes the whole collection back.

Mutations of one collection are serialized through a per-collection
``asyncio.Lock``, so concurrent ``add``/``remove`` calls made through the same
store cannot lose updates. Two stores (or two processes) sharing one backing
store are not coordinated.

A blob that fails to decode is treated as an empty collection. The strict
decoder raises :class:`MalformedPersistedDataError`; only this module maps it
to "empty".
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from transitsync.exceptions import MalformedPersistedDataError
from transitsync.models.favorites import FavoriteRoute, FavoriteRouteKey, PinnedArrival, PinnedArrivalKey
from transitsync.providers import PersistentKeyValueStore

_logger = logging.getLogger(__name__)

PINNED_ARRIVALS_KEY = "pinned_arrivals"
FAVORITE_ROUTES_KEY = "favorite_routes"

ItemT = TypeVar("ItemT", PinnedArrival, FavoriteRoute)

ChangeListener = Callable[[str, tuple[PinnedArrival, ...] | tuple[FavoriteRoute, ...]], None]


def decode_collection(blob: str | None, adapter: TypeAdapter[list[ItemT]], *, key: str = "") -> list[ItemT]:
    """Strictly decode a persisted collection.

    A missing or blank blob is an empty collection. Anything else that does
    not validate raises :class:`MalformedPersistedDataError`.
    """
    if blob is None or not blob.strip():
        return []
    try:
        return adapter.validate_json(blob)
    except ValidationError as exc:
        raise MalformedPersistedDataError(f"Persisted collection {key!r} does not decode: {exc}", key=key) from exc


class _Collection(Generic[ItemT]):
    """One persisted collection with identity-key deduplication."""

    def __init__(
        self,
        store: PersistentKeyValueStore,
        key: str,
        item_type: type[ItemT],
        identity: Callable[[ItemT], Hashable],
    ) -> None:
        self._store = store
        self.key = key
        self._adapter: TypeAdapter[list[ItemT]] = TypeAdapter(list[item_type])  # type: ignore[valid-type]
        self._identity = identity
        self._lock = asyncio.Lock()

    async def read(self) -> list[ItemT]:
        blob = await self._store.read_blob(self.key)
        try:
            return decode_collection(blob, self._adapter, key=self.key)
        except MalformedPersistedDataError:
            _logger.warning("Discarding unreadable favorites collection %s", self.key, exc_info=True)
            return []

    async def _write(self, items: list[ItemT]) -> None:
        await self._store.write_blob(self.key, self._adapter.dump_json(items).decode("utf-8"))

    async def add(self, item: ItemT) -> tuple[list[ItemT], bool]:
        async with self._lock:
            items = await self.read()
            wanted = self._identity(item)
            if any(self._identity(existing) == wanted for existing in items):
                return items, False
            items.append(item)
            await self._write(items)
            return items, True

    async def remove(self, identity_key: Hashable) -> tuple[list[ItemT], bool]:
        async with self._lock:
            items = await self.read()
            # Drop every match: older builds could persist duplicates.
            kept = [existing for existing in items if self._identity(existing) != identity_key]
            removed = len(kept) != len(items)
            if removed:
                await self._write(kept)
            return kept, removed

    async def contains(self, identity_key: Hashable) -> bool:
        items = await self.read()
        return any(self._identity(existing) == identity_key for existing in items)


class FavoritesStore:
    """Pinned arrivals and favorite routes over a key-value store.

    Parameters
    ----------
    store : PersistentKeyValueStore
        Backing store; the two collections use independent keys.
    on_change : callable, optional
        Called with ``(collection_key, items)`` after every write.
    """

    def __init__(
        self,
        store: PersistentKeyValueStore,
        *,
        on_change: ChangeListener | None = None,
    ) -> None:
        self._store = store
        self._on_change = on_change
        self._pinned: _Collection[PinnedArrival] = _Collection(
            store, PINNED_ARRIVALS_KEY, PinnedArrival, lambda item: item.identity_key
        )
        self._routes: _Collection[FavoriteRoute] = _Collection(
            store, FAVORITE_ROUTES_KEY, FavoriteRoute, lambda item: item.identity_key
        )

    def _notify(self, key: str, items: list[PinnedArrival] | list[FavoriteRoute]) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(key, tuple(items))
        except Exception:
            _logger.debug("favorites change listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Pinned arrivals
    # ------------------------------------------------------------------

    async def get_pinned_arrivals(self) -> list[PinnedArrival]:
        return await self._pinned.read()

    async def add_pinned_arrival(self, arrival: PinnedArrival) -> bool:
        """Insert unless an arrival with the same identity key exists."""
        items, added = await self._pinned.add(arrival)
        if added:
            self._notify(PINNED_ARRIVALS_KEY, items)
        return added

    async def remove_pinned_arrival(self, route_id: str, destination: str, stop_id: str) -> bool:
        key: PinnedArrivalKey = (route_id, destination, stop_id)
        items, removed = await self._pinned.remove(key)
        if removed:
            self._notify(PINNED_ARRIVALS_KEY, items)
        return removed

    async def is_pinned_arrival(self, route_id: str, destination: str, stop_id: str) -> bool:
        return await self._pinned.contains((route_id, destination, stop_id))

    # ------------------------------------------------------------------
    # Favorite routes
    # ------------------------------------------------------------------

    async def get_favorite_routes(self) -> list[FavoriteRoute]:
        return await self._routes.read()

    async def add_favorite_route(self, route: FavoriteRoute) -> bool:
        """Insert unless a route with the same identity key exists."""
        items, added = await self._routes.add(route)
        if added:
            self._notify(FAVORITE_ROUTES_KEY, items)
        return added

    async def remove_favorite_route(self, route_id: str, destination: str) -> bool:
        key: FavoriteRouteKey = (route_id, destination)
        items, removed = await self._routes.remove(key)
        if removed:
            self._notify(FAVORITE_ROUTES_KEY, items)
        return removed

    async def is_favorite_route(self, route_id: str, destination: str) -> bool:
        return await self._routes.contains((route_id, destination))

    async def clear_all(self) -> None:
        """Wipe both collections."""
        async with self._pinned._lock, self._routes._lock:  # noqa: SLF001
            await self._store.clear()
        self._notify(PINNED_ARRIVALS_KEY, [])
        self._notify(FAVORITE_ROUTES_KEY, [])
