import threading

import pytest

from norm_core.interpolation import build_interpolation
from norm_core.interpolation_cache import InterpolationCache, ValueCache, ValueCacheEntry


def test_function_is_built_once_and_reused(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    first = cache.get_function("N1")
    second = cache.get_function("N1")

    assert first is second
    assert cache.cache_info()["builds"] == 1


def test_unchanged_upsert_keeps_function_identity(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    before = cache.get_function("N1")

    store.upsert("N1", list(reversed(hyperbola_points)))

    assert cache.get_function("N1") is before


def test_changed_curve_rebuilds_function(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    assert cache.evaluate("N1", 20.0) == pytest.approx(60.0)

    store.upsert("N1", [(10.0, 200.0), (20.0, 120.0)])

    assert cache.evaluate("N1", 20.0) == pytest.approx(120.0)
    assert cache.cache_info()["builds"] == 2


def test_invalidation_is_targeted(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    store.upsert("N2", [(10.0, 50.0), (30.0, 30.0)])
    other = cache.get_function("N2")
    cache.evaluate("N2", 15.0)

    store.upsert("N1", [(10.0, 1.0)])

    assert cache.get_function("N2") is other
    assert ("N2", 15.0) in cache.value_cache


def test_removed_norm_is_unavailable(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    cache.evaluate("N1", 20.0)

    store.remove("N1")

    assert cache.get_function("N1") is None
    assert cache.evaluate("N1", 20.0) is None


def test_concurrent_first_evaluation_builds_once(store, hyperbola_points):
    calls = []
    barrier = threading.Barrier(8)

    def counting_builder(points):
        calls.append(1)
        return build_interpolation(points)

    store.upsert("N1", hyperbola_points)
    cache = InterpolationCache(store, builder=counting_builder)
    results = []

    def worker():
        barrier.wait()
        results.append(cache.get_function("N1"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert all(r is results[0] for r in results)


def test_build_failure_is_reported_and_cached(store, cache):
    store.upsert("bad", [(-1.0, 10.0), (5.0, 20.0)])

    assert cache.evaluate("bad", 10.0) is None
    assert cache.get_function("bad") is None
    assert "положительными" in cache.build_error("bad")
    assert cache.cache_info()["failures"] == 1


def test_unparseable_load_returns_none(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    assert cache.evaluate("N1", "abc") is None
    assert cache.evaluate("N1", "20,0") == pytest.approx(60.0)


def test_value_cache_hit_within_tolerance(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    value = cache.evaluate("N1", 20.0)

    assert cache.evaluate("N1", 20.005) == value
    assert cache.value_cache.hits == 1
    assert ("N1", 20.009) in cache.value_cache
    assert ("N1", 20.02) not in cache.value_cache


def test_value_cache_ignores_stale_generation():
    values = ValueCache(max_entries=10)
    generation = values.generation("N1")
    values.invalidate("N1")

    values.put("N1", 10.0, 5.0, generation)

    assert len(values) == 0


def test_value_cache_evicts_lowest_priority_entries(clock):
    values = ValueCache(max_entries=3, clock=clock, max_entries_per_norm=None, max_age=None)
    values.put("N1", 10.0, 1.0)
    values.put("N1", 20.0, 2.0)
    values.put("N1", 30.0, 3.0)

    clock.advance_days(1)
    values.get("N1", 10.0)
    clock.advance_days(1.5)
    values.get("N1", 30.0)
    clock.advance_days(0.5)
    values.put("N1", 40.0, 4.0)

    # 10.0: 2 дня без обращений, 2 обращения за 3 дня -> 3.0
    # 20.0: 3 дня без обращений, 1 обращение за 3 дня -> 9.0
    # 30.0: 0.5 дня без обращений, 2 обращения за 3 дня -> 0.75
    assert len(values) == 2
    assert ("N1", 10.0) not in values
    assert ("N1", 30.0) not in values
    assert ("N1", 20.0) in values
    assert ("N1", 40.0) in values
    assert values.evictions == 2


def test_value_cache_evicts_in_batches():
    values = ValueCache(max_entries=10, max_entries_per_norm=None, max_age=None)
    for i in range(11):
        values.put("N1", float(i + 1), float(i))

    assert len(values) == 9
    assert values.evictions == 2
    assert ("N1", 11.0) in values

    values.put("N1", 12.0, 11.0)
    assert len(values) == 10
    assert values.evictions == 2


def test_value_cache_caps_entries_per_norm(clock):
    values = ValueCache(max_entries=100, clock=clock, max_entries_per_norm=10, max_age=None)
    values.put("cold", 5.0, 1.0)
    for i in range(11):
        values.put("hot", float(i + 1), float(i))

    assert values.count("hot") == 9
    assert values.count("cold") == 1
    assert ("hot", 11.0) in values
    assert ("cold", 5.0) in values


def test_value_cache_entries_expire(clock):
    values = ValueCache(clock=clock, max_age=3600.0)
    values.put("N1", 10.0, 42.0)
    assert values.get("N1", 10.0) == 42.0

    clock.advance_days(0.1)

    assert values.get("N1", 10.0) is None
    assert values.expired == 1
    assert len(values) == 0


def test_value_cache_lookup_across_bucket_boundary():
    values = ValueCache(tolerance=0.01)
    values.put("N1", 20.0, 60.0)

    assert values.get("N1", 19.995) == 60.0
    assert values.get("N1", 20.0099) == 60.0
    assert values.get("N1", 20.03) is None


def test_eviction_priority_formula():
    entry = ValueCacheEntry("N1", 10.0, 1.0, created_at=0.0, last_used=86400.0, hits=4)
    # 1 день без обращений, частота 4 / 2 дня = 2
    assert entry.eviction_priority(2 * 86400.0) == pytest.approx(0.5)


def test_cache_disabled_value_layer(store, hyperbola_points):
    cache = InterpolationCache(store)
    store.upsert("N1", hyperbola_points)

    assert cache.evaluate("N1", 40.0) == pytest.approx(40.0)
    assert "value_cache" not in cache.cache_info()


def test_clear_drops_functions(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    cache.evaluate("N1", 20.0)

    cache.clear()

    assert cache.cache_info()["cached_functions"] == 0
    assert len(cache.value_cache) == 0


def test_overflowing_load_string_returns_none(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    assert cache.evaluate("N1", "1e999") is None
    assert cache.evaluate("N1", "+nan") is None


def test_clear_during_concurrent_lookups(store, cache, hyperbola_points):
    store.upsert("N1", hyperbola_points)
    store.upsert("N2", [(10.0, 50.0), (30.0, 30.0)])
    errors = []
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            try:
                for norm_id in ("N1", "N2"):
                    assert cache.get_function(norm_id) is not None
            except Exception as e:
                errors.append(e)
                return

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for _ in range(50):
        cache.clear()
    stop.set()
    for t in threads:
        t.join()

    assert errors == []
    assert cache.evaluate("N1", 20.0) == pytest.approx(60.0)
