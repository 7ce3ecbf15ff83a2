"""Shared fixtures for the Spotter test suite."""

from datetime import date

import pytest

from spotter.config import CoachConfig
from spotter.models import ExerciseLog, ExercisePlan, Session, SessionItem, SessionStatus
from spotter.store import InMemoryStore


def make_item(exercise_id, loads=(), reps=(), rirs=(), rest_pause=(), order=1,
              target_reps=10, target_sets=3, target_rir=0.0, suggested_load=0.0,
              planned_reps=None, planned_loads=None, name=None):
    """Session item with a plan and (optionally) a log."""
    return SessionItem(
        exercise_id=exercise_id,
        exercise_name=name,
        order=order,
        plan=ExercisePlan(
            target_reps=target_reps,
            target_sets=target_sets,
            target_rir=target_rir,
            suggested_load=suggested_load,
            planned_reps_by_set=list(planned_reps or []),
            planned_loads_by_set=list(planned_loads or []),
        ),
        log=ExerciseLog(
            actual_loads=list(loads),
            actual_reps=list(reps),
            actual_rirs=list(rirs),
            rest_pause_flags=list(rest_pause),
        ),
    )


@pytest.fixture
def coach_config():
    return CoachConfig()


@pytest.fixture
def today_session():
    """Week-1 session with a logged bench press."""
    return Session(
        date=date(2026, 3, 2),
        week_index=1,
        status=SessionStatus.IN_PROGRESS,
        items=[
            make_item(
                'bench_press',
                loads=[185, 185, 185],
                reps=[10, 10, 10],
                rirs=[2.5, 2.5, 2.5],
                target_reps=10,
                planned_reps=[10, 10, 10],
                planned_loads=[185, 185, 185],
            ),
        ],
    )


@pytest.fixture
def future_sessions():
    """Two later sessions, each with an unplanned bench press."""
    return [
        Session(date=date(2026, 3, 5), week_index=1, items=[
            make_item('lateral_raise', order=1),
            make_item('bench_press', order=2, target_reps=10, planned_reps=[10, 10, 10]),
        ]),
        Session(date=date(2026, 3, 9), week_index=2, items=[
            make_item('bench_press', order=1, target_reps=10, planned_reps=[10, 10, 10]),
        ]),
    ]


@pytest.fixture
def store(today_session, future_sessions):
    return InMemoryStore(sessions=[today_session] + future_sessions)
