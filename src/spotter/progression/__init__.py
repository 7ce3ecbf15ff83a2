"""
Progression core: snapshot -> classify -> decide, plus PRs and plan carry-forward.

Everything here is pure except PRTracker and PlanPropagator, which write
through a Store.
"""

from .classifier import ClassifiedSets, classify_working_sets
from .engine import DecisionThresholds, ProgressionEngine, load_step, suggest_next
from .mesocycle import MesoBlock, PhaseRange, effective_target_rir
from .propagation import PlanPropagator, swap_exercise_forward
from .readiness import allow_test_set, load_modifier, readiness_adjusted_load
from .records import PRTracker, PRUpdate
from .rulebook import ExerciseCluster, LiftPattern, infer_pattern, progression_config_for, rep_range
from .snapshots import build_set_records, snapshots_from_log
from .summary import recap_item, recap_session

__all__ = [
    'ClassifiedSets',
    'classify_working_sets',
    'DecisionThresholds',
    'ProgressionEngine',
    'load_step',
    'suggest_next',
    'MesoBlock',
    'PhaseRange',
    'effective_target_rir',
    'PlanPropagator',
    'swap_exercise_forward',
    'allow_test_set',
    'load_modifier',
    'readiness_adjusted_load',
    'PRTracker',
    'PRUpdate',
    'ExerciseCluster',
    'LiftPattern',
    'infer_pattern',
    'progression_config_for',
    'rep_range',
    'build_set_records',
    'snapshots_from_log',
    'recap_item',
    'recap_session',
]
