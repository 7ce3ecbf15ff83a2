"""PR tracker."""

from datetime import date

import pytest

from conftest import make_item
from spotter.exceptions import StoreError
from spotter.models import PRIndex, SetRecord
from spotter.progression.records import PRTracker, best_set
from spotter.store import InMemoryStore


class FailingPRStore(InMemoryStore):
    """Store whose PR table can't be read."""

    def fetch_pr(self, exercise_id):
        raise StoreError("pr_index unavailable")


def test_best_set_is_highest_volume_first_on_ties():
    records = [SetRecord(100, 10), SetRecord(125, 8), SetRecord(110, 9)]
    assert best_set(records) == SetRecord(100, 10)
    assert best_set([]) is None


def test_first_logged_set_becomes_baseline_pr():
    store = InMemoryStore()
    item = make_item('hack_squat', loads=[200], reps=[10], name='Hack Squat')

    update = PRTracker(store).update(item, on=date(2026, 3, 2))

    assert update.is_record
    assert item.is_pr
    pr = store.fetch_pr('hack_squat')
    assert pr.best_set_volume == 2000
    assert pr.best_load == 200
    assert pr.best_reps == 10
    assert pr.best_date == date(2026, 3, 2)
    assert pr.exercise_name == 'Hack Squat'


def test_pr_uses_best_set_across_all_working_sets():
    store = InMemoryStore()
    item = make_item('bench_press', loads=[185, 185, 185, 165], reps=[8, 7, 6, 12])
    update = PRTracker(store).update(item)
    assert update.volume == 1980
    assert store.fetch_pr('bench_press').best_load == 165


def test_pr_updates_only_on_strictly_greater_volume():
    store = InMemoryStore(prs=[PRIndex('bench_press', 1480.0, 185.0, 8, date(2026, 1, 5), 'Bench')])
    tracker = PRTracker(store)

    tie = make_item('bench_press', loads=[185], reps=[8])
    assert not tracker.update(tie).is_record
    assert not tie.is_pr
    assert store.fetch_pr('bench_press').best_date == date(2026, 1, 5)

    better = make_item('bench_press', loads=[187.5], reps=[8])
    assert tracker.update(better, on=date(2026, 3, 2)).is_record
    assert better.is_pr
    pr = store.fetch_pr('bench_press')
    assert pr.best_set_volume == 1500
    assert pr.exercise_name == 'Bench'


def test_nothing_logged_clears_flag_without_writing():
    store = InMemoryStore()
    item = make_item('bench_press', loads=[185], reps=[0])
    item.is_pr = True

    update = PRTracker(store).update(item)

    assert not update.is_record
    assert not item.is_pr
    assert store.fetch_pr('bench_press') is None


def test_unreadable_pr_table_claims_no_record():
    store = FailingPRStore()
    item = make_item('bench_press', loads=[185], reps=[8])
    item.is_pr = True

    update = PRTracker(store).update(item)

    assert not update.is_record
    assert not item.is_pr
    assert update.volume == 1480
    assert update.warning.startswith("PR not checked")


def test_current_returns_none_when_unreadable():
    assert PRTracker(FailingPRStore()).current('bench_press') is None


def test_write_failures_propagate():
    class ReadOnlyStore(InMemoryStore):
        def upsert_pr(self, pr):
            raise StoreError("read-only")

    with pytest.raises(StoreError):
        PRTracker(ReadOnlyStore()).update(make_item('bench_press', loads=[185], reps=[8]))
