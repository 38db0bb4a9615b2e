import pytest

from similar_items.cache import ResultCache
from similar_items.pipeline_types import CandidateScore


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def _results(*ids):
    return [CandidateScore(item_id=i, overall_score=1.0) for i in ids]


def test_hit_returns_exactly_what_was_stored():
    cache = ResultCache(default_ttl=60, clock=FakeClock())
    stored = cache.set(10, 4, _results(11, 12))
    assert isinstance(stored, tuple)
    assert cache.get(10, 4) is stored


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ResultCache(default_ttl=60, clock=clock)
    cache.set(10, 4, _results(11))

    clock.now = 59.9
    assert cache.get(10, 4) is not None
    clock.now = 60.0
    assert cache.get(10, 4) is None
    assert len(cache) == 0


def test_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache = ResultCache(default_ttl=60, clock=clock)
    cache.set(10, 4, _results(11), ttl=5)
    clock.now = 6
    assert cache.get(10, 4) is None


def test_limits_are_independent_keys():
    cache = ResultCache(clock=FakeClock())
    cache.set(10, 1, _results(11))
    cache.set(10, 4, _results(11, 12))
    assert [r.item_id for r in cache.get(10, 1)] == [11]
    assert [r.item_id for r in cache.get(10, 4)] == [11, 12]
    assert cache.get(10, 2) is None


def test_empty_results_are_cached():
    cache = ResultCache(clock=FakeClock())
    cache.set(999, 4, [])
    assert cache.get(999, 4) == ()


def test_last_write_wins():
    cache = ResultCache(clock=FakeClock())
    cache.set(10, 4, _results(11))
    cache.set(10, 4, _results(12))
    assert [r.item_id for r in cache.get(10, 4)] == [12]
    assert len(cache) == 1


def test_set_purges_expired_entries():
    clock = FakeClock()
    cache = ResultCache(default_ttl=10, clock=clock)
    cache.set(1, 4, _results(2))
    clock.now = 11
    cache.set(3, 4, _results(4))
    assert len(cache) == 1


def test_clear():
    cache = ResultCache(clock=FakeClock())
    cache.set(1, 4, _results(2))
    cache.clear()
    assert len(cache) == 0


def test_rejects_non_positive_ttl():
    with pytest.raises(ValueError):
        ResultCache(default_ttl=0)
