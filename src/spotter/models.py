"""
Spotter - Data Model

Dataclasses shared by the progression engine, the store and the CLI.
Field names match the database schema in postgres_store.py.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import ConfigError


# =============================================================================
# Enums
# =============================================================================

class MesoPhase(Enum):
    """Where a week sits inside a mesocycle block."""
    EARLY = "early"      # Accumulation, 2-3 RIR
    MID = "mid"          # Building, RIR drifts down
    LATE = "late"        # Peak / overreach, ~1 RIR
    DELOAD = "deload"    # Reset


class ProgressionAction(Enum):
    """Coarse label for what the engine decided."""
    INCREASE_LOAD = "Increase Load"
    HOLD_LOAD = "Hold Load"
    REDUCE_LOAD = "Reduce Load"
    REDUCE_SETS = "Reduce Sets"
    DELOAD = "Deload"


class SessionStatus(Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# =============================================================================
# Set-level records
# =============================================================================

@dataclass(frozen=True)
class SetRecord:
    """One valid working set (load > 0 and reps > 0)."""
    load: float
    reps: int
    rir: Optional[float] = None
    used_rest_pause: bool = False

    @property
    def volume(self) -> float:
        return self.load * self.reps


# =============================================================================
# Progression configuration and output
# =============================================================================

@dataclass(frozen=True)
class ProgressionConfig:
    """How one movement cluster is allowed to progress.

    repRange and set bounds are validated on construction.
    """
    rep_range: Tuple[int, int]
    base_target_rir: float
    primary_load_increment: float
    secondary_load_increment: float
    min_sets: int
    max_sets: int
    allow_set_increase: bool = True
    allow_load_decrease: bool = True
    is_low_back_or_stability: bool = False

    def __post_init__(self):
        rep_min, rep_max = self.rep_range
        if rep_min > rep_max:
            raise ConfigError(f"rep_range min {rep_min} exceeds max {rep_max}")
        if self.min_sets > self.max_sets:
            raise ConfigError(f"min_sets {self.min_sets} exceeds max_sets {self.max_sets}")
        if self.min_sets < 1:
            raise ConfigError("min_sets must be at least 1")
        if self.primary_load_increment < 0 or self.secondary_load_increment < 0:
            raise ConfigError("load increments must be non-negative")

    @property
    def rep_min(self) -> int:
        return self.rep_range[0]

    @property
    def rep_max(self) -> int:
        return self.rep_range[1]

    def with_rep_range(self, rep_min: int, rep_max: int) -> 'ProgressionConfig':
        return replace(self, rep_range=(rep_min, rep_max))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: Optional['ProgressionConfig'] = None) -> 'ProgressionConfig':
        """Build from a YAML mapping, filling gaps from `defaults`."""
        base = {} if defaults is None else {
            'rep_range': defaults.rep_range,
            'base_target_rir': defaults.base_target_rir,
            'primary_load_increment': defaults.primary_load_increment,
            'secondary_load_increment': defaults.secondary_load_increment,
            'min_sets': defaults.min_sets,
            'max_sets': defaults.max_sets,
            'allow_set_increase': defaults.allow_set_increase,
            'allow_load_decrease': defaults.allow_load_decrease,
            'is_low_back_or_stability': defaults.is_low_back_or_stability,
        }
        base.update(data)
        try:
            rep_range = tuple(int(r) for r in base['rep_range'])
            if len(rep_range) != 2:
                raise ConfigError(f"rep_range needs two values, got {base['rep_range']!r}")
            return cls(
                rep_range=rep_range,
                base_target_rir=float(base['base_target_rir']),
                primary_load_increment=float(base['primary_load_increment']),
                secondary_load_increment=float(base['secondary_load_increment']),
                min_sets=int(base['min_sets']),
                max_sets=int(base['max_sets']),
                allow_set_increase=bool(base.get('allow_set_increase', True)),
                allow_load_decrease=bool(base.get('allow_load_decrease', True)),
                is_low_back_or_stability=bool(base.get('is_low_back_or_stability', False)),
            )
        except KeyError as e:
            raise ConfigError(f"Missing progression setting: {e}") from e
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"Invalid progression setting: {e}") from e


@dataclass(frozen=True)
class ProgressionDecision:
    """What to do next time on one exercise. Produced once, never mutated."""
    next_load: float
    next_sets: int
    action: ProgressionAction
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'next_load': self.next_load,
            'next_sets': self.next_sets,
            'action': self.action.value,
            'notes': list(self.notes),
        }


# =============================================================================
# Plan / log per exercise-in-session
# =============================================================================

def _resize(values: list, size: int) -> list:
    """Truncate, or extend by repeating the last value."""
    if size <= len(values):
        return list(values[:size])
    if not values:
        return list(values)
    return list(values) + [values[-1]] * (size - len(values))


@dataclass
class ExercisePlan:
    """Planned targets for one exercise in one session."""
    target_reps: int = 0
    target_sets: int = 0
    target_rir: float = 0.0
    suggested_load: float = 0.0
    planned_reps_by_set: List[int] = field(default_factory=list)
    planned_loads_by_set: List[float] = field(default_factory=list)

    @property
    def planned_set_count(self) -> int:
        if self.planned_reps_by_set:
            return len(self.planned_reps_by_set)
        return max(self.target_sets, 1)

    @property
    def planned_top_reps(self) -> int:
        if self.planned_reps_by_set:
            return max(self.planned_reps_by_set)
        return self.target_reps

    def is_empty(self) -> bool:
        """No planned load anywhere. Reps are ignored: programs pre-fill them."""
        return all(load == 0 for load in self.planned_loads_by_set) and self.suggested_load == 0

    def is_meaningful(self) -> bool:
        return (
            any(r > 0 for r in self.planned_reps_by_set)
            or any(load > 0 for load in self.planned_loads_by_set)
            or self.suggested_load > 0
        )

    def copy(self) -> 'ExercisePlan':
        return replace(
            self,
            planned_reps_by_set=list(self.planned_reps_by_set),
            planned_loads_by_set=list(self.planned_loads_by_set),
        )

    def with_decision(self, decision: ProgressionDecision) -> 'ExercisePlan':
        """Next session's plan after applying a decision.

        A decision with no load (nothing logged) leaves the plan as it was.
        """
        if decision.next_load <= 0:
            return self.copy()

        sets = max(decision.next_sets, 1)
        reps_by_set = _resize(self.planned_reps_by_set, sets)
        loads_by_set = [decision.next_load] * sets if self.planned_loads_by_set or reps_by_set else []
        return ExercisePlan(
            target_reps=self.target_reps,
            target_sets=sets,
            target_rir=self.target_rir,
            suggested_load=decision.next_load,
            planned_reps_by_set=reps_by_set,
            planned_loads_by_set=loads_by_set,
        )


@dataclass
class ExerciseLog:
    """What was actually done, as index-aligned arrays (index 0 = set 1)."""
    actual_loads: List[float] = field(default_factory=list)
    actual_reps: List[int] = field(default_factory=list)
    actual_rirs: List[Optional[float]] = field(default_factory=list)
    rest_pause_flags: List[bool] = field(default_factory=list)
    rest_pause_patterns: List[str] = field(default_factory=list)

    def logged_set_indices(self) -> List[int]:
        count = min(len(self.actual_loads), len(self.actual_reps))
        return [
            i for i in range(count)
            if self.actual_reps[i] > 0 and self.actual_loads[i] > 0
        ]

    @property
    def logged_sets_count(self) -> int:
        return len(self.logged_set_indices())

    def rest_pause_description(self, index: int) -> Optional[str]:
        """e.g. "RP: 10+4+3", "RP" when no pattern, None when not used."""
        if index >= len(self.rest_pause_flags) or not self.rest_pause_flags[index]:
            return None
        pattern = self.rest_pause_patterns[index] if index < len(self.rest_pause_patterns) else ""
        return f"RP: {pattern}" if pattern else "RP"


# =============================================================================
# Personal records
# =============================================================================

@dataclass
class PRIndex:
    """Best single working set (load x reps) ever hit for an exercise."""
    exercise_id: str
    best_set_volume: float
    best_load: float
    best_reps: int
    best_date: date
    exercise_name: str = "Unknown"


# =============================================================================
# Sessions
# =============================================================================

@dataclass
class SessionItem:
    """One exercise inside a session."""
    exercise_id: str
    order: int = 1
    exercise_name: Optional[str] = None
    plan: ExercisePlan = field(default_factory=ExercisePlan)
    log: ExerciseLog = field(default_factory=ExerciseLog)
    is_pr: bool = False
    coach_note: Optional[str] = None
    next_suggested_load: Optional[float] = None
    id: Optional[int] = None


@dataclass
class Session:
    date: date
    week_index: int
    status: SessionStatus = SessionStatus.PLANNED
    readiness_stars: int = 0
    notes: Optional[str] = None
    items: List[SessionItem] = field(default_factory=list)
    id: Optional[int] = None

    def item_for(self, exercise_id: str) -> Optional[SessionItem]:
        for item in sorted(self.items, key=lambda i: i.order):
            if item.exercise_id == exercise_id:
                return item
        return None
