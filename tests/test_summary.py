"""Session recap."""

from datetime import date

from conftest import make_item
from spotter.models import Session
from spotter.progression.summary import (
    LOW_REPS,
    LOW_SETS,
    NOT_LOGGED,
    ON_TARGET,
    format_volume,
    recap_item,
    recap_session,
    top_set_description,
)


def test_status_labels():
    assert recap_item(make_item('bench_press', target_sets=3)).status == NOT_LOGGED
    assert recap_item(make_item('bench_press', loads=[185, 185], reps=[10, 10], target_sets=3)).status == LOW_SETS
    assert recap_item(make_item('bench_press', loads=[185] * 3, reps=[10, 9, 8],
                                planned_reps=[10, 10, 10])).status == ON_TARGET
    assert recap_item(make_item('bench_press', loads=[185] * 3, reps=[9, 9, 8],
                                planned_reps=[10, 10, 10])).status == LOW_REPS


def test_recap_counts_only_valid_sets():
    recap = recap_item(make_item('bench_press', loads=[185, 185, 0], reps=[10, 8, 10], target_sets=3))
    assert recap.logged_sets == 2
    assert recap.volume == 185 * 18
    assert recap.best_reps == 10


def test_top_set_description_with_rest_pause_pattern():
    item = make_item('cable_lateral_raise', loads=[20, 20], reps=[15, 17], rest_pause=[False, True])
    item.log.rest_pause_patterns = ["", "10+4+3"]
    assert top_set_description(item) == "20.0 x 17 (RP: 10+4+3)"
    assert item.log.rest_pause_description(1) == "RP: 10+4+3"
    assert item.log.rest_pause_description(0) is None


def test_top_set_description_without_rest_pause():
    item = make_item('bench_press', loads=[185, 185], reps=[8, 8])
    assert top_set_description(item) == "185.0 x 8"
    assert top_set_description(make_item('bench_press')) is None


def test_session_totals():
    session = Session(date=date(2026, 3, 2), week_index=1, items=[
        make_item('lateral_raise', order=2, loads=[20, 20], reps=[15, 15]),
        make_item('bench_press', order=1, loads=[185, 185, 185], reps=[10, 10, 10]),
    ])
    session.items[1].is_pr = True

    recap = recap_session(session)

    assert [e.exercise_id for e in recap.exercises] == ['bench_press', 'lateral_raise']
    assert recap.total_sets == 5
    assert recap.total_volume == 185 * 30 + 20 * 30
    assert recap.pr_count == 1


def test_format_volume():
    assert format_volume(5550) == "5550"
    assert format_volume(12345) == "12.3k"
