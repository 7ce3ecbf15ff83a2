"""
Rep-Range & Pattern Rulebook

Infers a lift pattern from an exercise id / display name and maps it to a
rep range and a progression cluster.

Pattern inference is a declarative, ordered table of (predicate, pattern)
pairs: id keywords first, then name keywords, first match wins.
"""

import re
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from ..models import ProgressionConfig

if TYPE_CHECKING:
    from ..config import CoachConfig


class LiftPattern(Enum):
    COMPOUND_PRESS = "compound_press"
    PULL = "pull"
    SQUAT = "squat"
    HINGE = "hinge"
    HAM_CURL_LEG_EXT = "ham_curl_leg_ext"
    LATERAL_REAR_DELT = "lateral_rear_delt"
    BICEPS = "biceps"
    TRICEPS = "triceps"
    CALVES = "calves"
    ABS = "abs"
    UNKNOWN = "unknown"


class ExerciseCluster(Enum):
    """How an exercise is treated by the progression rules."""
    PRIMARY_PRESS = "primary_press"                      # Bench, main incline
    SECONDARY_PRESS_OR_ARMS = "secondary_press_or_arms"  # Machine press, dips, rows
    PRIMARY_LEG = "primary_leg"                          # Hack squat, leg press
    PUMP_ISOLATION = "pump_isolation"                    # Flys, curls, raises, calves
    LOW_BACK_STABILITY = "low_back_stability"            # Pull-throughs, back ext, core


# =============================================================================
# Pattern -> rep range
# =============================================================================

REP_RANGES: Dict[LiftPattern, Tuple[int, int]] = {
    LiftPattern.COMPOUND_PRESS: (8, 12),
    LiftPattern.PULL: (10, 15),
    LiftPattern.SQUAT: (8, 12),
    LiftPattern.HINGE: (8, 12),
    LiftPattern.HAM_CURL_LEG_EXT: (10, 15),
    LiftPattern.LATERAL_REAR_DELT: (15, 25),
    LiftPattern.BICEPS: (10, 15),
    LiftPattern.TRICEPS: (10, 15),
    LiftPattern.CALVES: (10, 20),
    LiftPattern.ABS: (12, 20),
    LiftPattern.UNKNOWN: (8, 12),
}

# When the back is fussy, hinges collapse to a fixed 10
SPINE_SENSITIVE_HINGE_RANGE = (10, 10)


# =============================================================================
# Inference table
# =============================================================================

Predicate = Callable[[str, str], bool]


def _id_has(*keywords: str) -> Predicate:
    return lambda exercise_id, name: any(k in exercise_id for k in keywords)


def _id_token(*tokens: str) -> Predicate:
    """Whole-token match on the id ("ab_wheel" yes, "narrow_grip_bench" and "hammer_curl" no)."""
    wanted = set(tokens)
    return lambda exercise_id, name: bool(wanted & set(re.split(r'[^a-z0-9]+', exercise_id)))


def _name_has(*keywords: str) -> Predicate:
    return lambda exercise_id, name: any(k in name for k in keywords)


PATTERN_RULES: List[Tuple[Predicate, LiftPattern]] = [
    # By id
    (_id_has('hack', 'leg_press', 'squat'), LiftPattern.SQUAT),
    (_id_has('rdl', 'deadlift', 'pull_through', 'hinge'), LiftPattern.HINGE),
    (_id_has('pulldown', 'pull_down', 'chin', 'pullup', 'pull_up'), LiftPattern.PULL),
    (_id_token('row', 'rows'), LiftPattern.PULL),
    (_id_has('tricep', 'pressdown', 'pushdown'), LiftPattern.TRICEPS),
    (_id_has('bench', 'press', 'dip'), LiftPattern.COMPOUND_PRESS),
    (_id_has('leg_curl', 'leg_extension'), LiftPattern.HAM_CURL_LEG_EXT),
    (_id_token('ham', 'hamstring', 'hamstrings'), LiftPattern.HAM_CURL_LEG_EXT),
    (_id_has('lateral', 'rear_delt', 'reverse_fly', 'rear_fly'), LiftPattern.LATERAL_REAR_DELT),
    (_id_has('curl'), LiftPattern.BICEPS),
    (_id_has('overhead'), LiftPattern.TRICEPS),
    (_id_has('calf'), LiftPattern.CALVES),
    (_id_has('crunch', 'hanging'), LiftPattern.ABS),
    (_id_token('ab', 'abs'), LiftPattern.ABS),
    # By display name
    (_name_has('pulldown', 'row'), LiftPattern.PULL),
    (_name_has('tricep', 'pushdown', 'pressdown'), LiftPattern.TRICEPS),
    (_name_has('hack', 'leg press', 'squat'), LiftPattern.SQUAT),
    (_name_has('press', 'bench'), LiftPattern.COMPOUND_PRESS),
    (_name_has('rdl', 'deadlift'), LiftPattern.HINGE),
    (_name_has('curl'), LiftPattern.BICEPS),
    (_name_has('calf'), LiftPattern.CALVES),
    (_name_has('crunch', 'hanging'), LiftPattern.ABS),
]


def infer_pattern(exercise_id: str, exercise_name: Optional[str] = None) -> LiftPattern:
    """
    Infer a lift pattern from an exercise id, then its display name.

    Args:
        exercise_id: Catalog id (e.g. "hack_squat", "db_bench_press")
        exercise_name: Optional display name (e.g. "Seated Cable Row")

    Returns:
        First matching LiftPattern, or UNKNOWN
    """
    id_lower = (exercise_id or "").lower()
    name_lower = (exercise_name or "").lower()
    for predicate, pattern in PATTERN_RULES:
        if predicate(id_lower, name_lower):
            return pattern
    return LiftPattern.UNKNOWN


def rep_range_for(pattern: LiftPattern, spine_sensitive: bool = False) -> Tuple[int, int]:
    if pattern == LiftPattern.HINGE and spine_sensitive:
        return SPINE_SENSITIVE_HINGE_RANGE
    return REP_RANGES[pattern]


def rep_range(exercise_id: str, exercise_name: Optional[str] = None, spine_sensitive: bool = False) -> Tuple[int, int]:
    """Rep range straight from an exercise id / name."""
    return rep_range_for(infer_pattern(exercise_id, exercise_name), spine_sensitive)


def display_range(target_reps: int, reps: Tuple[int, int]) -> str:
    """Human-friendly `10 (8-12)`."""
    return f"{target_reps} ({reps[0]}-{reps[1]})"


# =============================================================================
# Clusters
# =============================================================================

DEFAULT_CLUSTER_CONFIGS: Dict[ExerciseCluster, ProgressionConfig] = {
    ExerciseCluster.PRIMARY_PRESS: ProgressionConfig(
        rep_range=(6, 10),
        base_target_rir=2.5,
        primary_load_increment=5.0,
        secondary_load_increment=2.5,
        min_sets=3,
        max_sets=4,
        allow_set_increase=True,
        allow_load_decrease=True,
    ),
    ExerciseCluster.SECONDARY_PRESS_OR_ARMS: ProgressionConfig(
        rep_range=(8, 12),
        base_target_rir=2.5,
        primary_load_increment=5.0,
        secondary_load_increment=2.5,
        min_sets=2,
        max_sets=4,
        allow_set_increase=True,
        allow_load_decrease=True,
    ),
    ExerciseCluster.PRIMARY_LEG: ProgressionConfig(
        rep_range=(8, 12),
        base_target_rir=2.5,
        primary_load_increment=10.0,
        secondary_load_increment=5.0,
        min_sets=3,
        max_sets=4,
        allow_set_increase=False,   # Volume already high, no auto set add
        allow_load_decrease=True,
    ),
    ExerciseCluster.PUMP_ISOLATION: ProgressionConfig(
        rep_range=(10, 15),
        base_target_rir=2.5,
        primary_load_increment=2.5,
        secondary_load_increment=1.0,
        min_sets=2,
        max_sets=4,
        allow_set_increase=True,
        allow_load_decrease=True,
    ),
    ExerciseCluster.LOW_BACK_STABILITY: ProgressionConfig(
        rep_range=(8, 15),
        base_target_rir=3.0,
        primary_load_increment=0.0,  # Quality over load
        secondary_load_increment=2.5,
        min_sets=2,
        max_sets=3,
        allow_set_increase=False,
        allow_load_decrease=True,
        is_low_back_or_stability=True,
    ),
}

_PATTERN_CLUSTERS: Dict[LiftPattern, ExerciseCluster] = {
    LiftPattern.COMPOUND_PRESS: ExerciseCluster.PRIMARY_PRESS,
    LiftPattern.PULL: ExerciseCluster.SECONDARY_PRESS_OR_ARMS,
    LiftPattern.SQUAT: ExerciseCluster.PRIMARY_LEG,
    LiftPattern.HINGE: ExerciseCluster.PRIMARY_LEG,
    LiftPattern.HAM_CURL_LEG_EXT: ExerciseCluster.PUMP_ISOLATION,
    LiftPattern.LATERAL_REAR_DELT: ExerciseCluster.PUMP_ISOLATION,
    LiftPattern.BICEPS: ExerciseCluster.PUMP_ISOLATION,
    LiftPattern.TRICEPS: ExerciseCluster.SECONDARY_PRESS_OR_ARMS,
    LiftPattern.CALVES: ExerciseCluster.PUMP_ISOLATION,
    LiftPattern.ABS: ExerciseCluster.LOW_BACK_STABILITY,
    LiftPattern.UNKNOWN: ExerciseCluster.SECONDARY_PRESS_OR_ARMS,
}


def default_cluster(pattern: LiftPattern, spine_sensitive: bool = False) -> ExerciseCluster:
    if pattern == LiftPattern.HINGE and spine_sensitive:
        return ExerciseCluster.LOW_BACK_STABILITY
    return _PATTERN_CLUSTERS[pattern]


def progression_config_for(
    exercise_id: str,
    exercise_name: Optional[str] = None,
    spine_sensitive: Optional[bool] = None,
    coach_config: Optional['CoachConfig'] = None,
) -> Tuple[ProgressionConfig, LiftPattern, ExerciseCluster]:
    """
    Select the ProgressionConfig for an exercise.

    The cluster comes from the coach config's explicit exercise mapping when
    present, else from the inferred pattern. The cluster's rep range is then
    replaced by the pattern's rep range.

    Args:
        exercise_id: Catalog id
        exercise_name: Optional display name
        spine_sensitive: Overrides the coach config's spine-sensitive list
        coach_config: CoachConfig (defaults when None)

    Returns:
        Tuple of (config, pattern, cluster)
    """
    clusters = coach_config.clusters if coach_config else DEFAULT_CLUSTER_CONFIGS
    explicit = coach_config.exercise_clusters if coach_config else {}
    if spine_sensitive is None:
        spine_sensitive = bool(coach_config and exercise_id in coach_config.spine_sensitive_exercises)

    pattern = infer_pattern(exercise_id, exercise_name)
    cluster = explicit.get(exercise_id) or default_cluster(pattern, spine_sensitive)
    rep_min, rep_max = rep_range_for(pattern, spine_sensitive)
    config = clusters[cluster].with_rep_range(rep_min, rep_max)
    return config, pattern, cluster
