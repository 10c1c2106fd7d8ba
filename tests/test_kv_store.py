from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from transitsync.storage import InMemoryKeyValueStore, JsonFileKeyValueStore


@pytest.mark.asyncio
async def test_in_memory_keys_are_independent() -> None:
    store = InMemoryKeyValueStore()
    await store.write_blob("a", "1")
    await store.write_blob("b", "2")

    assert await store.read_blob("a") == "1"
    assert await store.read_blob("b") == "2"
    assert await store.read_blob("missing") is None

    await store.clear()
    assert await store.read_blob("a") is None


@pytest.mark.asyncio
async def test_json_file_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "favorites.json"
    store = JsonFileKeyValueStore(path)

    await store.write_blob("pinned_arrivals", "[]")
    await store.write_blob("favorite_routes", '[{"route_id": "4"}]')

    reopened = JsonFileKeyValueStore(path)
    assert await reopened.read_blob("pinned_arrivals") == "[]"
    assert await reopened.read_blob("favorite_routes") == '[{"route_id": "4"}]'
    assert json.loads(path.read_text(encoding="utf-8")).keys() == {"pinned_arrivals", "favorite_routes"}


@pytest.mark.asyncio
async def test_json_file_missing_reads_none(tmp_path: Path) -> None:
    store = JsonFileKeyValueStore(tmp_path / "absent.json")
    assert await store.read_blob("pinned_arrivals") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["{broken", "[1, 2, 3]", '"just a string"'])
async def test_json_file_unreadable_content_reads_empty(tmp_path: Path, content: str) -> None:
    path = tmp_path / "favorites.json"
    path.write_text(content, encoding="utf-8")
    store = JsonFileKeyValueStore(path)

    assert await store.read_blob("pinned_arrivals") is None

    await store.write_blob("pinned_arrivals", "[]")
    assert json.loads(path.read_text(encoding="utf-8")) == {"pinned_arrivals": "[]"}


@pytest.mark.asyncio
async def test_json_file_concurrent_writes_keep_both_keys(tmp_path: Path) -> None:
    store = JsonFileKeyValueStore(tmp_path / "favorites.json")

    await asyncio.gather(*(store.write_blob(f"key{i}", str(i)) for i in range(8)))

    for i in range(8):
        assert await store.read_blob(f"key{i}") == str(i)


@pytest.mark.asyncio
async def test_json_file_clear_leaves_no_temp_files(tmp_path: Path) -> None:
    path = tmp_path / "favorites.json"
    store = JsonFileKeyValueStore(path)
    await store.write_blob("pinned_arrivals", "[]")

    await store.clear()

    assert await store.read_blob("pinned_arrivals") is None
    assert [p.name for p in tmp_path.iterdir()] == ["favorites.json"]
