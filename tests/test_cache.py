"""Tests for the expiring result cache and its key helpers"""
from fleetwatch.utils.cache import ResultCache, build_cache_key, fleet_scope


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_get_within_ttl_returns_value():
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.set("k", {"answer": 42}, ttl_seconds=300)

    clock.advance(300)
    assert cache.get("k") == {"answer": 42}
    assert cache.get("k") == cache.get("k")


def test_get_after_ttl_evicts():
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.set("k", "v", ttl_seconds=300)

    clock.advance(301)
    assert cache.get("k") is None
    assert "k" not in cache
    assert len(cache) == 0


def test_set_overwrites_and_restarts_ttl():
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.set("k", "old", ttl_seconds=10)
    clock.advance(8)
    cache.set("k", "new", ttl_seconds=10)
    clock.advance(8)

    assert cache.get("k") == "new"


def test_set_sweeps_expired_entries_past_max_entries():
    clock = FakeClock()
    cache = ResultCache(max_entries=2, clock=clock)
    cache.set("a", 1, ttl_seconds=1)
    cache.set("b", 2, ttl_seconds=1)
    clock.advance(5)

    cache.set("c", 3, ttl_seconds=60)

    assert len(cache) == 1
    assert cache.get("c") == 3


def test_no_sweep_at_or_below_max_entries():
    clock = FakeClock()
    cache = ResultCache(max_entries=2, clock=clock)
    cache.set("a", 1, ttl_seconds=1)
    clock.advance(5)
    cache.set("b", 2, ttl_seconds=60)

    # "a" is expired but only dropped lazily
    assert len(cache) == 2


def test_invalidate_returns_removed_count():
    cache = ResultCache()
    for key in ("x|fleet=F1", "x|fleet=F2", "y|fleet=F1"):
        cache.set(key, 1, ttl_seconds=60)

    assert cache.invalidate(lambda key: key.endswith("F1")) == 2
    assert len(cache) == 1


def test_clear():
    cache = ResultCache()
    cache.set("a", 1, ttl_seconds=60)
    cache.clear()
    assert len(cache) == 0


def test_stats_reports_keys_and_insertion_range():
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.set("a", 1, ttl_seconds=60)
    clock.advance(10)
    cache.set("b", 2, ttl_seconds=60)

    stats = cache.stats()
    assert stats["size"] == 2
    assert sorted(stats["keys"]) == ["a", "b"]
    assert (stats["newestEntry"] - stats["oldestEntry"]).total_seconds() == 10


def test_stats_empty_cache():
    stats = ResultCache().stats()
    assert stats["size"] == 0
    assert stats["oldestEntry"] is None
    assert stats["newestEntry"] is None


def test_cache_key_is_deterministic():
    first = build_cache_key("alert_summary", "F1", time_window=24, severities=["High", "Critical"])
    second = build_cache_key("alert_summary", "F1", severities=["Critical", "High"], time_window=24.0)
    assert first == second
    assert first == "alert_summary|fleet=F1|severities=Critical,High|time_window=24"


def test_cache_key_normalizes_missing_fleet_and_params():
    assert build_cache_key("fleet_analytics", None, resolved=None) == "fleet_analytics|fleet=all|resolved=all"
    assert build_cache_key("x", None, resolved=False) == "x|fleet=all|resolved=false"


def test_fleet_scope_keeps_other_fleets():
    cache = ResultCache()
    keys = [
        build_cache_key("distance_analytics", "F1", time_window=24),
        build_cache_key("distance_analytics", "F2", time_window=24),
        build_cache_key("distance_analytics", "F10", time_window=24),
        build_cache_key("distance_analytics", None, time_window=24),
    ]
    for key in keys:
        cache.set(key, 1, ttl_seconds=60)

    removed = cache.invalidate(fleet_scope("F1"))

    assert removed == 2
    assert sorted(cache.stats()["keys"]) == sorted([keys[1], keys[2]])


def test_fleet_scope_without_fleet_matches_everything():
    matches = fleet_scope(None)
    assert matches("a|fleet=F1")
    assert matches("anything")
