"""
Set Snapshot Builder

Turns the parallel per-set arrays logged for one exercise into SetRecords.
Half-logged sets (missing load or reps) never reach the engine.
"""

from typing import List, Optional, Sequence

from ..models import ExerciseLog, SetRecord


def build_set_records(
    loads: Sequence[float],
    reps: Sequence[int],
    rirs: Optional[Sequence[Optional[float]]] = None,
    rest_pause_flags: Optional[Sequence[bool]] = None,
) -> List[SetRecord]:
    """
    Build working-set records from index-aligned arrays.

    Mismatched load/rep arrays are truncated to the shorter one; RIR and
    rest-pause entries are optional per index.

    Args:
        loads: Load per set
        reps: Completed reps per set
        rirs: Logged RIR per set (None entries allowed)
        rest_pause_flags: Whether each set used rest-pause

    Returns:
        Records for every index with load > 0 and reps > 0, in set order
    """
    rirs = rirs or []
    rest_pause_flags = rest_pause_flags or []
    records = []
    for i in range(min(len(loads), len(reps))):
        load = loads[i]
        rep_count = reps[i]
        if load is None or rep_count is None or load <= 0 or rep_count <= 0:
            continue
        rir = rirs[i] if i < len(rirs) else None
        records.append(SetRecord(
            load=float(load),
            reps=int(rep_count),
            rir=float(rir) if rir is not None else None,
            used_rest_pause=bool(rest_pause_flags[i]) if i < len(rest_pause_flags) else False,
        ))
    return records


def snapshots_from_log(log: ExerciseLog) -> List[SetRecord]:
    """Working-set records for a logged exercise."""
    return build_set_records(log.actual_loads, log.actual_reps, log.actual_rirs, log.rest_pause_flags)
