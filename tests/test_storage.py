import sys
import os
import json

import pytest

# Add src to sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), "../src"))

from core.exceptions import ContentNotFoundError
from core.storage.factory import StorageFactory
from core.storage.kv import JsonFileStore, MemoryStore
from core.storage.local import LocalContentStore


@pytest.fixture
def media(tmp_path):
    root = tmp_path / "media"
    (root / "event-1" / "day2").mkdir(parents=True)
    (root / "event-1" / "a.jpg").write_bytes(b"aaa")
    (root / "event-1" / "day2" / "b.PNG").write_bytes(b"bbb")
    (root / "event-1" / "notes.txt").write_text("skip me")
    (tmp_path / "secret.jpg").write_bytes(b"outside")
    return root


@pytest.mark.asyncio
async def test_local_store_reads_and_lists(media):
    store = LocalContentStore(str(media))

    assert await store.read_bytes("event-1/a.jpg") == b"aaa"
    with store.open("event-1/day2/b.PNG") as f:
        assert f.read() == b"bbb"
    assert await store.list_handles("event-1") == ["event-1/a.jpg", "event-1/day2/b.PNG"]
    assert await store.list_handles("missing") == []


@pytest.mark.asyncio
async def test_local_store_rejects_missing_and_escaping_handles(media):
    store = LocalContentStore(str(media))

    with pytest.raises(ContentNotFoundError):
        await store.read_bytes("event-1/none.jpg")
    with pytest.raises(ContentNotFoundError):
        store.open("../secret.jpg")


@pytest.mark.asyncio
async def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "state" / "store.json"
    store = JsonFileStore(str(path))

    await store.set_many("PhotoShareJwtPrefs", {"jwt_token": "t", "jwt_timestamp": 1.5})
    await store.set("Other", "k", [1, 2])
    await store.delete("PhotoShareJwtPrefs", "jwt_timestamp")

    reopened = JsonFileStore(str(path))
    assert await reopened.get("PhotoShareJwtPrefs", "jwt_token") == "t"
    assert await reopened.get("PhotoShareJwtPrefs", "jwt_timestamp") is None
    assert await reopened.get("Other", "k") == [1, 2]
    assert json.loads(path.read_text())["Other"] == {"k": [1, 2]}


@pytest.mark.asyncio
async def test_json_file_store_survives_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{ not json")
    store = JsonFileStore(str(path))

    assert await store.get("ns", "key", "fallback") == "fallback"
    await store.set("ns", "key", "value")
    assert await JsonFileStore(str(path)).get("ns", "key") == "value"


@pytest.mark.asyncio
async def test_memory_store():
    store = MemoryStore()
    await store.set("ns", "a", 1)
    await store.set_many("ns", {"b": 2})
    await store.delete("ns", "a")

    assert await store.get("ns", "a") is None
    assert await store.get("ns", "b") == 2


def test_storage_factory():
    assert isinstance(StorageFactory.get_key_value_store("memory"), MemoryStore)
    with pytest.raises(ValueError):
        StorageFactory.get_key_value_store("redis")
