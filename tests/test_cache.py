import asyncio
import json

import pytest

from catalyst_crawler.application.cache import ContentCache
from catalyst_crawler.application.domain import Fingerprint
from catalyst_crawler.application.exceptions import CacheError
from catalyst_crawler.infrastructure.storage import FileArtifactStore, JsonCacheStorage

from conftest import MemoryCacheStorage


def test_remember_then_has(cache):
    fingerprint = Fingerprint.of("v24", "abc_windows")
    assert not cache.has(fingerprint)

    cache.remember(fingerprint, "https://cdn.test/v24/abc_windows")

    assert cache.has(fingerprint)
    assert len(cache) == 1


def test_last_write_wins(cache, cache_storage):
    fingerprint = Fingerprint.of("v24", "abc_windows")
    cache.remember(fingerprint, "https://old")
    cache.remember(fingerprint, "https://new")

    cache.save()

    assert cache_storage.mapping == {str(fingerprint): "https://new"}


def test_save_is_wholesale_and_idempotent(cache, cache_storage):
    cache.remember(Fingerprint.of("v1", "a"), "https://a")
    cache.save()
    cache.save()

    assert cache_storage.writes == 2
    assert len(cache_storage.mapping) == 1


def test_load_populates_entries():
    fingerprint = Fingerprint.of("v1", "a")
    cache = ContentCache(MemoryCacheStorage({str(fingerprint): "https://a"}))

    cache.load()

    assert cache.has(fingerprint)
    assert [entry.source_url for entry in cache.entries()] == ["https://a"]


def test_load_rejects_invalid_fingerprint():
    cache = ContentCache(MemoryCacheStorage({"not-hex": "https://a"}))

    with pytest.raises(CacheError):
        cache.load()


def test_json_cache_file_round_trips(tmp_path):
    path = tmp_path / "state" / "cache.json"
    first = ContentCache(JsonCacheStorage(path))
    first.remember(Fingerprint.of("v1", "a_windows"), "https://cdn.test/v1/a_windows")
    first.remember(Fingerprint.of("v2", "b_windows"), "https://cdn.test/v2/b_windows")
    first.save()

    second = ContentCache(JsonCacheStorage(path))
    second.load()
    second.save()

    assert json.loads(path.read_text()) == {
        str(entry.fingerprint): entry.source_url for entry in first.entries()
    }
    assert not path.with_suffix(".json.part").exists()


def test_json_cache_missing_file_is_empty(tmp_path):
    assert JsonCacheStorage(tmp_path / "missing.json").read() == {}


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"a": 1}'])
def test_json_cache_rejects_malformed_file(tmp_path, content):
    path = tmp_path / "cache.json"
    path.write_text(content)

    with pytest.raises(CacheError):
        JsonCacheStorage(path).read()


def test_artifact_store_writes_atomically(tmp_path):
    store = FileArtifactStore(tmp_path / "artifacts")
    fingerprint = Fingerprint.of("v24", "abc_windows")
    assert not store.contains(fingerprint)

    asyncio.run(store.store(fingerprint, b"bundle"))

    path = store.path_for(fingerprint)
    assert store.contains(fingerprint)
    assert path.read_bytes() == b"bundle"
    assert path.parent.name == str(fingerprint)[:2]
    assert list(path.parent.glob("*.part")) == []
