from __future__ import annotations

import asyncio
import json

import pytest
from pydantic import TypeAdapter

from transitsync.exceptions import MalformedPersistedDataError
from transitsync.favorites import (
    FAVORITE_ROUTES_KEY,
    PINNED_ARRIVALS_KEY,
    FavoritesStore,
    decode_collection,
)
from transitsync.models.favorites import FavoriteRoute, PinnedArrival
from transitsync.storage import InMemoryKeyValueStore


class _SlowStore(InMemoryKeyValueStore):
    """Yields between read and write so unsynchronized updates would interleave."""

    async def read_blob(self, key: str) -> str | None:
        value = await super().read_blob(key)
        await asyncio.sleep(0)
        return value

    async def write_blob(self, key: str, value: str) -> None:
        await asyncio.sleep(0)
        await super().write_blob(key, value)


def _pin(route: str = "4", destination: str = "Falchera", stop: str = "S1") -> PinnedArrival:
    return PinnedArrival(route_id=route, destination=destination, stop_id=stop, stop_name="Porta Nuova")


@pytest.mark.asyncio
async def test_repeated_add_stores_single_entry() -> None:
    kv = InMemoryKeyValueStore()
    store = FavoritesStore(kv)

    assert await store.add_pinned_arrival(_pin()) is True
    assert await store.add_pinned_arrival(_pin()) is False
    assert await store.add_pinned_arrival(_pin()) is False

    persisted = json.loads(await kv.read_blob(PINNED_ARRIVALS_KEY) or "[]")
    assert len(persisted) == 1
    assert persisted[0]["route_id"] == "4"


@pytest.mark.asyncio
async def test_identity_key_ignores_non_key_fields() -> None:
    store = FavoritesStore(InMemoryKeyValueStore())
    await store.add_pinned_arrival(_pin())
    other_name = PinnedArrival(route_id="4", destination="Falchera", stop_id="S1", stop_name="Renamed")

    assert await store.add_pinned_arrival(other_name) is False
    assert await store.add_pinned_arrival(_pin(stop="S2")) is True
    assert len(await store.get_pinned_arrivals()) == 2


@pytest.mark.asyncio
async def test_remove_missing_key_is_noop() -> None:
    kv = InMemoryKeyValueStore()
    store = FavoritesStore(kv)
    await store.add_pinned_arrival(_pin())
    before = await kv.read_blob(PINNED_ARRIVALS_KEY)

    assert await store.remove_pinned_arrival("99", "Nowhere", "S0") is False

    assert await kv.read_blob(PINNED_ARRIVALS_KEY) == before
    assert await store.is_pinned_arrival("4", "Falchera", "S1")


@pytest.mark.asyncio
async def test_remove_drops_all_duplicates() -> None:
    duplicated = [_pin().model_dump(), _pin().model_dump(), _pin(stop="S2").model_dump()]
    kv = InMemoryKeyValueStore({PINNED_ARRIVALS_KEY: json.dumps(duplicated)})
    store = FavoritesStore(kv)

    assert await store.remove_pinned_arrival("4", "Falchera", "S1") is True

    remaining = await store.get_pinned_arrivals()
    assert [item.stop_id for item in remaining] == ["S2"]


@pytest.mark.asyncio
async def test_corrupt_blob_reads_as_empty() -> None:
    kv = InMemoryKeyValueStore(
        {
            PINNED_ARRIVALS_KEY: "{not json",
            FAVORITE_ROUTES_KEY: json.dumps([{"unexpected": True}]),
        }
    )
    store = FavoritesStore(kv)

    assert await store.get_pinned_arrivals() == []
    assert await store.get_favorite_routes() == []
    assert await store.is_favorite_route("4", "Falchera") is False


@pytest.mark.asyncio
async def test_add_after_corrupt_blob_replaces_it() -> None:
    kv = InMemoryKeyValueStore({PINNED_ARRIVALS_KEY: "garbage"})
    store = FavoritesStore(kv)

    assert await store.add_pinned_arrival(_pin()) is True
    assert [item.identity_key for item in await store.get_pinned_arrivals()] == [("4", "Falchera", "S1")]


def test_strict_decoder_raises_on_malformed_blob() -> None:
    adapter: TypeAdapter[list[PinnedArrival]] = TypeAdapter(list[PinnedArrival])

    assert decode_collection(None, adapter) == []
    assert decode_collection("  ", adapter) == []
    with pytest.raises(MalformedPersistedDataError) as exc_info:
        decode_collection('[{"route_id": 4}]', adapter, key=PINNED_ARRIVALS_KEY)
    assert exc_info.value.key == PINNED_ARRIVALS_KEY


def test_decoder_accepts_legacy_camel_case() -> None:
    adapter: TypeAdapter[list[PinnedArrival]] = TypeAdapter(list[PinnedArrival])
    blob = json.dumps(
        [{"routeId": "4", "destination": "Falchera", "stopId": "S1", "stopName": "X", "addedDate": 1700000000000}]
    )

    items = decode_collection(blob, adapter)

    assert items[0].identity_key == ("4", "Falchera", "S1")
    assert items[0].added_at == 1700000000000


@pytest.mark.asyncio
async def test_concurrent_adds_are_not_lost() -> None:
    store = FavoritesStore(_SlowStore())

    await asyncio.gather(*(store.add_pinned_arrival(_pin(stop=f"S{i}")) for i in range(10)))

    assert len(await store.get_pinned_arrivals()) == 10


@pytest.mark.asyncio
async def test_concurrent_duplicate_adds_store_one() -> None:
    store = FavoritesStore(_SlowStore())

    results = await asyncio.gather(*(store.add_pinned_arrival(_pin()) for _ in range(5)))

    assert results.count(True) == 1
    assert len(await store.get_pinned_arrivals()) == 1


@pytest.mark.asyncio
async def test_favorite_routes_independent_from_pins() -> None:
    store = FavoritesStore(InMemoryKeyValueStore())
    await store.add_pinned_arrival(_pin())
    await store.add_favorite_route(FavoriteRoute(route_id="4", destination="Falchera"))
    await store.add_favorite_route(FavoriteRoute(route_id="4", destination="Falchera", stop_id="S1"))

    assert len(await store.get_favorite_routes()) == 1
    assert await store.is_favorite_route("4", "Falchera")

    assert await store.remove_favorite_route("4", "Falchera") is True
    assert await store.get_favorite_routes() == []
    assert len(await store.get_pinned_arrivals()) == 1


@pytest.mark.asyncio
async def test_clear_all_wipes_both_collections() -> None:
    store = FavoritesStore(InMemoryKeyValueStore())
    await store.add_pinned_arrival(_pin())
    await store.add_favorite_route(FavoriteRoute(route_id="15", destination="Sassi"))

    await store.clear_all()

    assert await store.get_pinned_arrivals() == []
    assert await store.get_favorite_routes() == []


@pytest.mark.asyncio
async def test_change_listener_receives_new_content() -> None:
    changes: list[tuple[str, tuple[object, ...]]] = []
    store = FavoritesStore(InMemoryKeyValueStore(), on_change=lambda key, items: changes.append((key, items)))

    await store.add_pinned_arrival(_pin())
    await store.add_pinned_arrival(_pin())
    await store.remove_pinned_arrival("4", "Falchera", "S1")
    await store.clear_all()

    assert [key for key, _ in changes] == [
        PINNED_ARRIVALS_KEY,
        PINNED_ARRIVALS_KEY,
        PINNED_ARRIVALS_KEY,
        FAVORITE_ROUTES_KEY,
    ]
    assert len(changes[0][1]) == 1
    assert changes[1][1] == ()
