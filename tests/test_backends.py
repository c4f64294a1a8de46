"""
Contract tests shared by the unordered and ordered cache backends.
"""

import time
from datetime import timedelta
from typing import Type

import pytest
import yaml

from spectra_cache.backends import CacheStats, FilteredCache, OrderedCache, UnorderedCache
from spectra_cache.config import get_settings, reset_settings


@pytest.fixture(autouse=True)
def _clean_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(params=[UnorderedCache, OrderedCache], ids=["unordered", "ordered"])
def cache_cls(request) -> Type[FilteredCache]:
    return request.param


@pytest.fixture
def cache(cache_cls: Type[FilteredCache]) -> FilteredCache:
    return cache_cls(capacity=1000, false_positive_rate=0.01)


class TestConstruction:
    def test_create_empty_cache(self, cache: FilteredCache) -> None:
        assert cache.size == 0
        assert len(cache) == 0
        assert cache.is_empty()
        assert cache.filter.is_empty()

    def test_defaults_come_from_settings(
        self, cache_cls: Type[FilteredCache], tmp_path
    ) -> None:
        cfg = tmp_path / "config.yaml"
        cfg.write_text(yaml.dump({
            "cache": {"filter_capacity": 500, "false_positive_rate": 0.05},
        }))
        get_settings(yaml_path=cfg, _force_reload=True)

        cache = cache_cls()

        assert cache.filter.capacity == 500
        assert cache.filter.false_positive_rate == 0.05

    def test_default_ttl_from_settings(
        self, cache_cls: Type[FilteredCache], tmp_path
    ) -> None:
        cfg = tmp_path / "config.yaml"
        cfg.write_text(yaml.dump({"cache": {"default_ttl_seconds": 0.05}}))
        get_settings(yaml_path=cfg, _force_reload=True)

        cache = cache_cls(capacity=100, false_positive_rate=0.01)
        cache.insert("k", "v")
        time.sleep(0.1)

        assert cache.get("k") is None


class TestInsertGet:
    def test_insert_and_get(self, cache: FilteredCache) -> None:
        cache.insert("test_key", "test_value")
        assert cache.size == 1
        assert not cache.is_empty()
        assert cache.get("test_key") == "test_value"

    def test_get_miss(self, cache: FilteredCache) -> None:
        assert cache.get("missing") is None

    def test_overwrite_keeps_size(self, cache: FilteredCache) -> None:
        cache.insert("test_key", "value1")
        assert cache.get("test_key") == "value1"

        cache.insert("test_key", "value2")
        assert cache.get("test_key") == "value2"
        assert cache.size == 1

    def test_overwrite_records_filter_again(self, cache: FilteredCache) -> None:
        cache.insert("k", "v1")
        cache.insert("k", "v2")
        assert cache.filter.size == 2

    def test_get_touches_entry(self, cache: FilteredCache) -> None:
        cache.insert("k", "v")
        entry = cache._store["k"]
        before = entry.accessed_at
        time.sleep(0.01)

        cache.get("k")

        assert entry.accessed_at > before

    def test_filter_rejection_counted(self, cache: FilteredCache) -> None:
        assert cache.get("never-inserted") is None
        assert cache.stats().filter_rejections == 1

    def test_filter_guards_unrecorded_index_entries(self, cache: FilteredCache) -> None:
        cache.insert("real", "v")
        entry = cache._store["real"].model_copy(update={"key": "sneaky"})
        cache._store["sneaky"] = entry

        assert cache.get("sneaky") is None
        assert not cache.contains_key("sneaky")


class TestTTL:
    def test_insert_with_ttl(self, cache: FilteredCache) -> None:
        cache.insert_with_ttl("test_key", "test_value", timedelta(milliseconds=50))
        assert cache.size == 1
        assert cache.get("test_key") == "test_value"

        time.sleep(0.1)

        assert cache.get("test_key") is None
        assert cache.is_empty()
        assert cache.stats().expirations == 1

    def test_ttl_in_seconds(self, cache: FilteredCache) -> None:
        cache.insert_with_ttl("k", "v", 0.05)
        time.sleep(0.1)
        assert cache.get("k") is None

    def test_constructor_default_ttl(self, cache_cls: Type[FilteredCache]) -> None:
        cache = cache_cls(1000, 0.01, default_ttl=timedelta(milliseconds=50))
        cache.insert("k", "v")
        assert cache.get("k") == "v"

        time.sleep(0.1)
        assert cache.get("k") is None

    def test_expired_entry_stays_until_observed(self, cache: FilteredCache) -> None:
        cache.insert_with_ttl("k", "v", timedelta(milliseconds=50))
        time.sleep(0.1)

        assert cache.size == 1
        assert list(cache.keys()) == ["k"]
        assert list(cache.values()) == ["v"]

    def test_contains_key_evicts_expired(self, cache: FilteredCache) -> None:
        cache.insert_with_ttl("k", "v", timedelta(milliseconds=50))
        time.sleep(0.1)

        assert not cache.contains_key("k")
        assert cache.size == 0
        assert cache.filter.contains("k")

    def test_only_expired_entry_is_evicted(self, cache: FilteredCache) -> None:
        cache.insert_with_ttl("short", "1", timedelta(milliseconds=50))
        cache.insert("long", "2")
        time.sleep(0.1)

        assert cache.get("short") is None
        assert cache.get("long") == "2"
        assert cache.size == 1


class TestContainsKey:
    def test_contains_key(self, cache: FilteredCache) -> None:
        assert not cache.contains_key("test_key")

        cache.insert("test_key", "test_value")
        assert cache.contains_key("test_key")
        assert "test_key" in cache

        cache.remove("test_key")
        assert not cache.contains_key("test_key")

    def test_contains_key_does_not_touch(self, cache: FilteredCache) -> None:
        cache.insert("k", "v")
        before = cache._store["k"].accessed_at
        time.sleep(0.01)

        cache.contains_key("k")

        assert cache._store["k"].accessed_at == before


class TestUpdate:
    def test_update_existing(self, cache: FilteredCache) -> None:
        cache.insert("k", "v1")
        assert cache.update("k", "v2") is True
        assert cache.get("k") == "v2"
        assert cache.size == 1

    def test_update_absent(self, cache: FilteredCache) -> None:
        assert cache.update("missing", "v") is False
        assert cache.size == 0
        assert not cache.contains_key("missing")

    def test_update_does_not_record_filter(self, cache: FilteredCache) -> None:
        cache.insert("k", "v1")
        cache.update("k", "v2")
        assert cache.filter.size == 1

    def test_update_expired_unobserved_entry(self, cache: FilteredCache) -> None:
        cache.insert_with_ttl("k", "v1", timedelta(milliseconds=50))
        time.sleep(0.1)

        # Accepted without an expiry check; TTL still counts from creation.
        assert cache.update("k", "v2") is True
        assert cache.size == 1
        assert cache.get("k") is None
        assert cache.size == 0


class TestRemoveClear:
    def test_remove(self, cache: FilteredCache) -> None:
        cache.insert("test_key", "test_value")
        assert cache.size == 1

        assert cache.remove("test_key") == "test_value"
        assert cache.is_empty()
        assert cache.remove("non_existent") is None

    def test_remove_keeps_filter_bits(self, cache: FilteredCache) -> None:
        cache.insert("k", "v")
        cache.remove("k")

        assert not cache.contains_key("k")
        assert cache.filter.contains("k")
        assert cache.filter.size == 1

    def test_reinsert_after_remove(self, cache: FilteredCache) -> None:
        cache.insert("k", "v1")
        cache.remove("k")
        cache.insert("k", "v2")
        assert cache.get("k") == "v2"
        assert cache.size == 1

    def test_clear(self, cache: FilteredCache) -> None:
        cache.insert("key1", "value1")
        cache.insert("key2", "value2")
        assert cache.size == 2

        assert cache.clear() == 2
        assert cache.is_empty()
        assert cache.size == 0
        assert cache.filter.is_empty()
        assert not cache.filter.contains("key1")
        assert cache.get("key1") is None


class TestIteration:
    def test_keys(self, cache: FilteredCache) -> None:
        cache.insert("key1", "value1")
        cache.insert("key2", "value2")

        keys = list(cache.keys())
        assert len(keys) == 2
        assert set(keys) == {"key1", "key2"}

    def test_values(self, cache: FilteredCache) -> None:
        cache.insert("key1", "value1")
        cache.insert("key2", "value2")

        values = list(cache.values())
        assert len(values) == 2
        assert set(values) == {"value1", "value2"}

    def test_items_pair_keys_with_values(self, cache: FilteredCache) -> None:
        cache.insert("key1", "value1")
        cache.insert("key2", "value2")
        assert dict(cache.items()) == {"key1": "value1", "key2": "value2"}

    def test_iterators_are_lazy_and_one_shot(self, cache: FilteredCache) -> None:
        cache.insert("key1", "value1")
        keys = cache.keys()
        assert next(keys) == "key1"
        assert list(keys) == []
        assert list(cache.keys()) == ["key1"]


class TestHousekeeping:
    def test_cleanup_expired(self, cache: FilteredCache) -> None:
        cache.insert_with_ttl("q1", "r1", timedelta(milliseconds=50))
        cache.insert_with_ttl("q2", "r2", timedelta(milliseconds=50))
        cache.insert("q3", "r3")
        time.sleep(0.1)

        assert cache.cleanup_expired() == 2
        assert cache.size == 1
        assert list(cache.keys()) == ["q3"]

    def test_cleanup_nothing_expired(self, cache: FilteredCache) -> None:
        cache.insert("q1", "r1")
        assert cache.cleanup_expired() == 0

    def test_stats(self, cache: FilteredCache) -> None:
        cache.insert("q1", "r1")
        cache.get("q1")  # hit
        cache.get("q1")  # hit
        cache.get("missing")  # miss

        stats = cache.stats()
        assert isinstance(stats, CacheStats)
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3, abs=0.01)
        assert stats.entry_count == 1
        assert stats.filter_size == 1

    def test_stats_empty(self, cache: FilteredCache) -> None:
        stats = cache.stats()
        assert stats.hits == 0
        assert stats.misses == 0
        assert stats.hit_rate == 0.0
        assert stats.entry_count == 0
