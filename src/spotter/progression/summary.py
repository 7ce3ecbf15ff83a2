"""
Session recap: planned vs logged per exercise, plus session totals.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..models import Session, SessionItem

NOT_LOGGED = "Not logged"
LOW_SETS = "Low sets"
ON_TARGET = "On target"
LOW_REPS = "Low reps"


@dataclass
class ExerciseRecap:
    exercise_id: str
    exercise_name: Optional[str]
    status: str
    planned_sets: int
    planned_top_reps: int
    logged_sets: int
    best_reps: int
    volume: float
    top_set: Optional[str]
    is_pr: bool
    coach_note: Optional[str] = None


@dataclass
class SessionRecap:
    week_index: int
    exercises: List[ExerciseRecap] = field(default_factory=list)

    @property
    def total_sets(self) -> int:
        return sum(e.logged_sets for e in self.exercises)

    @property
    def total_volume(self) -> float:
        return sum(e.volume for e in self.exercises)

    @property
    def pr_count(self) -> int:
        return sum(1 for e in self.exercises if e.is_pr)


def format_volume(volume: float) -> str:
    if volume >= 10_000:
        return f"{volume / 1000.0:.1f}k"
    return f"{volume:.0f}"


def top_set_description(item: SessionItem) -> Optional[str]:
    """Highest-rep working set, e.g. "120.0 x 17 (RP: 10+4+3)"."""
    log = item.log
    indices = log.logged_set_indices()
    if not indices:
        return None
    best = max(indices, key=lambda i: (log.actual_reps[i], -i))
    base = f"{log.actual_loads[best]:.1f} x {log.actual_reps[best]}"
    pattern = log.rest_pause_patterns[best] if best < len(log.rest_pause_patterns) else ""
    used_rp = best < len(log.rest_pause_flags) and log.rest_pause_flags[best]
    if used_rp and pattern:
        return f"{base} (RP: {pattern})"
    return base


def recap_item(item: SessionItem) -> ExerciseRecap:
    log = item.log
    indices = log.logged_set_indices()
    planned_sets = item.plan.planned_set_count
    planned_top = item.plan.planned_top_reps
    best_reps = max((log.actual_reps[i] for i in indices), default=0)

    if not indices:
        status = NOT_LOGGED
    elif len(indices) < planned_sets:
        status = LOW_SETS
    elif best_reps >= planned_top:
        status = ON_TARGET
    else:
        status = LOW_REPS

    return ExerciseRecap(
        exercise_id=item.exercise_id,
        exercise_name=item.exercise_name,
        status=status,
        planned_sets=planned_sets,
        planned_top_reps=planned_top,
        logged_sets=len(indices),
        best_reps=best_reps,
        volume=sum(log.actual_loads[i] * log.actual_reps[i] for i in indices),
        top_set=top_set_description(item),
        is_pr=item.is_pr,
        coach_note=item.coach_note,
    )


def recap_session(session: Session) -> SessionRecap:
    return SessionRecap(
        week_index=session.week_index,
        exercises=[recap_item(item) for item in sorted(session.items, key=lambda i: i.order)],
    )
