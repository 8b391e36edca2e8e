from datetime import date
from uuid import uuid4

from apps.bookings.infrastructure.cache import AvailabilityCache
from apps.bookings.tests.fakes import DictCacheBackend

DAY = date(2030, 5, 10)


class Ticker:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_cache(timeout=300):
    clock = Ticker()
    return AvailabilityCache(backend=DictCacheBackend(), timeout=timeout, clock=clock), clock


def counting(result):
    calls = []

    def compute():
        calls.append(1)
        return list(result)

    return compute, calls


def test_second_read_is_served_from_cache():
    cache, _ = make_cache()
    court_id = uuid4()
    compute, calls = counting(["a"])

    assert cache.get_or_compute(court_id, DAY, compute) == ["a"]
    assert cache.get_or_compute(court_id, DAY, compute) == ["a"]
    assert len(calls) == 1


def test_entries_expire_after_timeout():
    cache, clock = make_cache(timeout=300)
    court_id = uuid4()
    compute, calls = counting(["a"])
    cache.get_or_compute(court_id, DAY, compute)

    clock.now += 299
    cache.get_or_compute(court_id, DAY, compute)
    assert len(calls) == 1

    clock.now += 1
    cache.get_or_compute(court_id, DAY, compute)
    assert len(calls) == 2


def test_invalidate_forces_recompute_for_that_key_only():
    cache, _ = make_cache()
    court_id, other_court = uuid4(), uuid4()
    compute, calls = counting(["a"])
    cache.get_or_compute(court_id, DAY, compute)
    cache.get_or_compute(other_court, DAY, compute)

    cache.invalidate(court_id, DAY)
    cache.get_or_compute(court_id, DAY, compute)
    cache.get_or_compute(other_court, DAY, compute)

    assert len(calls) == 3


def test_result_computed_across_an_invalidation_is_not_stored():
    cache, _ = make_cache()
    court_id = uuid4()

    def racing_compute():
        # A booking lands while availability is being computed
        cache.invalidate(court_id, DAY)
        return ["stale"]

    assert cache.get_or_compute(court_id, DAY, racing_compute) == ["stale"]

    fresh, calls = counting(["fresh"])
    assert cache.get_or_compute(court_id, DAY, fresh) == ["fresh"]
    assert len(calls) == 1


def test_zero_timeout_disables_caching():
    cache, _ = make_cache(timeout=0)
    court_id = uuid4()
    compute, calls = counting(["a"])

    cache.get_or_compute(court_id, DAY, compute)
    cache.get_or_compute(court_id, DAY, compute)

    assert len(calls) == 2


def test_invalidate_before_any_read_is_harmless():
    cache, _ = make_cache()
    court_id = uuid4()

    cache.invalidate(court_id, DAY)
    cache.invalidate(court_id, DAY)

    compute, calls = counting(["a"])
    cache.get_or_compute(court_id, DAY, compute)
    cache.get_or_compute(court_id, DAY, compute)
    assert len(calls) == 1


def test_evicted_version_key_does_not_resurrect_old_entry():
    backend = DictCacheBackend()
    cache = AvailabilityCache(backend=backend, timeout=300, clock=Ticker())
    court_id = uuid4()
    cache.get_or_compute(court_id, DAY, lambda: ["old"])

    cache.invalidate(court_id, DAY)
    del backend.data[cache._version_key(court_id, DAY)]

    fresh, calls = counting(["new"])
    assert cache.get_or_compute(court_id, DAY, fresh) == ["new"]
    assert len(calls) == 1
