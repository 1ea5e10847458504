import math

from snipebot.data import ObservationStore
from snipebot.domain import SLOT_COUNT


def test_max_tracks_largest_sample_per_slot() -> None:
    store = ObservationStore(round_id=5)
    store.record_sample(0.003, 4)
    store.record_sample(0.002)
    store.record_sample(0.001, 4)
    assert store.max_for_slot(4) == 0.003
    assert store.max_for_slot(0) == 0.002
    assert store.max_overall() == 0.003
    assert all(v >= 0.002 for v in store.max_per_slot())
    assert store.total_samples() == 3


def test_reset_clears_everything() -> None:
    store = ObservationStore(round_id=1)
    store.record_sample(0.5)
    store.reset(2)
    assert store.round_id == 2
    assert store.max_overall() == 0.0
    assert not store.has_samples()
    assert store.max_per_slot() == (0.0,) * SLOT_COUNT


def test_invalid_samples_are_dropped() -> None:
    store = ObservationStore(round_id=1)
    assert not store.record_sample(0)
    assert not store.record_sample(-1.0)
    assert not store.record_sample(math.nan)
    assert not store.record_sample(math.inf)
    assert not store.record_sample("abc")
    assert not store.record_sample(0.1, SLOT_COUNT)
    assert not store.record_sample(0.1, -1)
    assert store.total_samples() == 0


def test_stale_round_sample_is_dropped() -> None:
    store = ObservationStore(round_id=8)
    assert not store.record_sample(0.2, 3, round_id=7)
    assert store.record_sample(0.2, 3, round_id=8)
    assert store.total_samples() == 1


def test_rank_orders_descending_and_clamps() -> None:
    store = ObservationStore()
    assert store.rank(0) == 0.0
    for value in (0.001, 0.005, 0.003):
        store.record_sample(value)
    assert store.rank(0) == store.max_overall() == 0.005
    assert store.rank(1) == 0.003
    assert store.rank(2) == 0.001
    assert store.rank(10) == 0.001
    assert store.rank(-3) == 0.005


def test_stats_snapshot() -> None:
    store = ObservationStore(round_id=3)
    for i in range(12):
        store.record_sample(0.001 * (i + 1), i)
    stats = store.stats(top=5)
    assert stats.round_id == 3
    assert stats.total_samples == 12
    assert len(stats.top_samples) == 5
    assert stats.top_samples[0] == stats.max_overall
