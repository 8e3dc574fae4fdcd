"""Unit tests for the persistent cache partitions."""

import asyncio
import json

import pytest

from m3_mcp_server.cache.persistent import CacheStores, PersistentCache
from m3_mcp_server.utils.constants import CACHE_VERSION_KEY

from conftest import FakeClock


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def cache(cache_dir, clock):
    return PersistentCache("components", cache_dir, clock=clock)


class TestGetSet:
    """Test reads and writes."""

    def test_get_after_set_returns_value(self, cache):
        cache.set("a", {"x": 1}, 5)

        assert cache.get("a") == {"x": 1}
        assert cache.has("a") is True

    def test_get_missing_key_returns_default(self, cache):
        assert cache.get("missing") is None
        assert cache.get("missing", "fallback") == "fallback"
        assert cache.get_stats().misses == 2

    def test_expired_entry_is_absent_and_counted_as_miss(self, cache, clock):
        cache.set("a", {"x": 1}, 5)
        assert cache.get("a") == {"x": 1}

        clock.advance(6)

        assert cache.get("a") is None
        stats = cache.get_stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.size == 0

    def test_entry_is_valid_until_ttl_elapses(self, cache, clock):
        cache.set("a", 1, 5)
        clock.advance(5)

        assert cache.get("a") == 1

    def test_zero_ttl_expires_immediately(self, cache):
        cache.set("a", "value", 0)

        assert cache.get("a") is None

    def test_set_overwrites_existing_entry(self, cache):
        cache.set("a", 1)
        cache.set("a", 2)

        assert cache.get("a") == 2
        assert cache.get_stats().writes == 2

    def test_none_value_is_cached(self, cache):
        cache.set("a", None)

        assert cache.has("a") is True

    def test_has_counts_a_single_lookup(self, cache):
        cache.set("a", 1)
        cache.has("a")
        cache.has("b")

        stats = cache.get_stats()
        assert stats.hits == 1
        assert stats.misses == 1

    def test_delete_removes_entry(self, cache):
        cache.set("a", 1)
        cache.delete("a")
        cache.delete("never-set")

        assert cache.get("a") is None

    def test_mutating_results_does_not_change_the_cache(
        self, cache, cache_dir, clock
    ):
        value = {"tags": ["a"]}
        cache.set("k", value)
        value["tags"].append("from-caller")

        fetched = cache.get("k")
        fetched["tags"].append("from-reader")

        assert cache.get("k") == {"tags": ["a"]}
        reopened = PersistentCache("components", cache_dir, clock=clock)
        assert reopened.get("k") == cache.get("k")


class TestStats:
    """Test statistics reporting."""

    def test_hit_rate_without_lookups(self, cache):
        assert cache.get_stats().hit_rate == "0%"

    def test_hit_rate_is_a_percentage(self, cache):
        cache.set("a", 1)
        cache.get("a")
        cache.get("a")
        cache.get("b")

        assert cache.get_stats().hit_rate == "66.67%"

    def test_clear_resets_everything(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.get("c")

        cache.clear()

        stats = cache.get_stats()
        assert (stats.hits, stats.misses, stats.writes, stats.size) == (0, 0, 0, 0)

    def test_reserved_keys_are_not_counted(self, cache_dir, clock):
        cache = PersistentCache(
            "components", cache_dir, clock=clock, reserved_keys=(CACHE_VERSION_KEY,)
        )
        cache.put(CACHE_VERSION_KEY, {"version": "1.0.0"})
        cache.set("a", 1)

        assert cache.keys() == ["a"]
        assert cache.get_stats().size == 1


class TestPersistence:
    """Test that entries survive a restart."""

    def test_entries_survive_reopen(self, cache, cache_dir, clock):
        cache.set("button", {"source": "<md-button>", "tags": ["a", "b"]}, 60)

        reopened = PersistentCache("components", cache_dir, clock=clock)

        assert reopened.get("button") == {"source": "<md-button>", "tags": ["a", "b"]}

    def test_file_layout(self, cache, cache_dir, clock):
        cache.set("a", {"x": 1}, 30)

        with open(cache_dir / "components.json", encoding="utf-8") as f:
            stored = json.load(f)

        assert stored == {"a": {"data": {"x": 1}, "timestamp": clock.now, "ttl": 30}}

    def test_expired_entries_are_not_resurrected_after_reopen(
        self, cache, cache_dir, clock
    ):
        cache.set("a", 1, 5)
        clock.advance(10)

        reopened = PersistentCache("components", cache_dir, clock=clock)

        assert reopened.get("a") is None

    def test_corrupt_file_starts_empty(self, cache_dir, clock):
        cache_dir.mkdir(parents=True)
        (cache_dir / "icons.json").write_text("{not json", encoding="utf-8")

        cache = PersistentCache("icons", cache_dir, clock=clock)

        assert cache.size() == 0
        cache.set("a", 1)
        assert cache.get("a") == 1

    def test_malformed_entries_are_dropped(self, cache_dir, clock):
        cache_dir.mkdir(parents=True)
        (cache_dir / "docs.json").write_text(
            json.dumps(
                {
                    "good": {"data": 1, "timestamp": clock.now, "ttl": 60},
                    "bad": {"data": 2},
                    "worse": "oops",
                }
            ),
            encoding="utf-8",
        )

        cache = PersistentCache("docs", cache_dir, clock=clock)

        assert cache.keys() == ["good"]

    def test_clear_recreates_backing_file(self, cache, cache_dir, clock):
        cache.set("a", 1)
        old_entries = cache._entries

        cache.clear()
        old_entries["a"] = {"data": 1, "timestamp": clock.now, "ttl": 60}

        assert cache.get("a") is None
        reopened = PersistentCache("components", cache_dir, clock=clock)
        assert reopened.size() == 0

    def test_unserializable_value_does_not_break_other_entries(
        self, cache, cache_dir, clock
    ):
        cache.set("good", [1, 2, 3])
        cache.set("bad", object())

        assert cache.get("bad") is not None
        reopened = PersistentCache("components", cache_dir, clock=clock)
        assert reopened.get("good") == [1, 2, 3]
        assert reopened.get("bad") is None


class TestPrune:
    def test_prune_removes_only_expired_entries(self, cache, clock):
        cache.set("short", 1, 5)
        cache.set("long", 2, 500)
        clock.advance(10)

        assert cache.prune() == 1
        assert cache.keys() == ["long"]


class TestCachingToggle:
    """Test the global caching switch."""

    def test_disabled_cache_neither_stores_nor_returns(self, cache_dir, clock):
        enabled = {"value": True}
        cache = PersistentCache(
            "components", cache_dir, clock=clock, enabled=lambda: enabled["value"]
        )
        cache.set("a", 1)

        enabled["value"] = False
        assert cache.get("a") is None
        cache.set("b", 2)

        enabled["value"] = True
        assert cache.get("a") == 1
        assert cache.get("b") is None

    def test_toggle_is_read_from_config_on_every_call(self, config, clock):
        stores = CacheStores.create(config, clock=clock)
        stores.icons.set("a", 1)

        config.set_cache_enabled(False)

        assert stores.icons.get("a") is None


class TestWrap:
    """Test the get-or-compute helper."""

    @pytest.mark.asyncio
    async def test_compute_runs_once_while_fresh(self, cache):
        calls = []

        async def fetch():
            calls.append(1)
            return {"value": 42}

        first = await cache.wrap("k", fetch, 10)
        second = await cache.wrap("k", fetch, 10)

        assert first == second == {"value": 42}
        assert len(calls) == 1
        assert cache.get_stats().hits == 1

    @pytest.mark.asyncio
    async def test_compute_runs_again_after_expiry(self, cache, clock):
        calls = []

        async def fetch():
            calls.append(1)
            return len(calls)

        assert await cache.wrap("k", fetch, 10) == 1
        clock.advance(11)
        assert await cache.wrap("k", fetch, 10) == 2

    @pytest.mark.asyncio
    async def test_sync_compute_function(self, cache):
        assert await cache.wrap("k", lambda: "sync", 10) == "sync"
        assert cache.get("k") == "sync"

    @pytest.mark.asyncio
    async def test_disabled_cache_always_recomputes(self, cache_dir):
        cache = PersistentCache(
            "components", cache_dir, clock=FakeClock(), enabled=lambda: False
        )
        calls = []

        async def fetch():
            calls.append(1)
            return "fresh"

        await cache.wrap("k", fetch)
        await cache.wrap("k", fetch)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_compute_errors_are_not_cached(self, cache):
        async def fail():
            raise RuntimeError("network down")

        with pytest.raises(RuntimeError):
            await cache.wrap("k", fail)

        assert cache.has("k") is False

    @pytest.mark.asyncio
    async def test_concurrent_misses_each_compute_and_last_write_wins(self, cache):
        gates = {"first": asyncio.Event(), "second": asyncio.Event()}
        started = []

        def fetcher(name):
            async def fetch():
                started.append(name)
                await gates[name].wait()
                return name

            return fetch

        async def release():
            while len(started) < 2:
                await asyncio.sleep(0)
            gates["second"].set()
            while cache.peek("k") is None:
                await asyncio.sleep(0)
            gates["first"].set()

        results = await asyncio.gather(
            cache.wrap("k", fetcher("first")),
            cache.wrap("k", fetcher("second")),
            release(),
        )

        assert sorted(started) == ["first", "second"]
        assert results[:2] == ["first", "second"]
        assert cache.get("k") == "first"
        assert cache.get_stats().writes == 2
