"""
Progression Decision Engine

Internal Codename: PUMPING-IRON
"Three to grow, one to know."

Compares what was lifted against what was planned and decides the next
working load and set count. Pure: no state, no I/O.

Rule cascade (first match wins):
    1. No data
    2. Deload phase override
    3. Low-back / stability override
    4. Downshift / re-baseline
    5. Failure + fatigue crash
    6. Under-target reps
    7. Harder than planned
    8. Clean top-of-range on all growth sets
    9. Comfortable overperformance
    10. On target
    11. Catch-all hold
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..exceptions import ConfigError
from ..models import (
    MesoPhase,
    ProgressionAction,
    ProgressionConfig,
    ProgressionDecision,
    SetRecord,
)
from .mesocycle import effective_target_rir

logger = logging.getLogger(__name__)


def load_step(load: float) -> float:
    """Realistic equipment increment for a load."""
    if load >= 200:
        return 5.0
    if load >= 100:
        return 2.5
    return 2.0


def _fmt(load: float) -> str:
    return f"{load:.1f}"


@dataclass(frozen=True)
class DecisionThresholds:
    """Tunable cut-offs used by the rule cascade."""
    rir_tolerance: float = 0.5  # |avg RIR - target| counted as on target
    set_increase_rir_margin: float = 0.7  # RIR above target needed to add a set
    rebaseline_drop_ratio: float = 0.10  # heavy-to-light drop that counts as re-baseline
    fatigue_crash_rep_drop: int = 3  # first-to-last growth rep drop
    rest_pause_limit: int = 2  # rest-pause sets that mean "harder than planned"
    overperformance_reps: int = 2  # reps over planned top for a comfortable increase

    def __post_init__(self):
        if self.rir_tolerance < 0 or self.set_increase_rir_margin < 0:
            raise ConfigError("RIR tolerances must be non-negative")
        if not 0 < self.rebaseline_drop_ratio < 1:
            raise ConfigError("rebaseline_drop_ratio must be between 0 and 1")
        if self.fatigue_crash_rep_drop < 1 or self.rest_pause_limit < 1 or self.overperformance_reps < 0:
            raise ConfigError("Rep and set thresholds must be positive")


@dataclass(frozen=True)
class GrowthStats:
    """Aggregates over the growth sets the rules look at."""
    count: int
    best_reps: int
    first_reps: int
    last_reps: int
    last_load: float
    avg_rir: Optional[float]
    min_rir: Optional[float]
    rest_pause_count: int

    @classmethod
    def from_sets(cls, sets: Sequence[SetRecord]) -> 'GrowthStats':
        rirs = [s.rir for s in sets if s.rir is not None]
        return cls(
            count=len(sets),
            best_reps=max(s.reps for s in sets),
            first_reps=sets[0].reps,
            last_reps=sets[-1].reps,
            last_load=sets[-1].load,
            avg_rir=sum(rirs) / len(rirs) if rirs else None,
            min_rir=min(rirs) if rirs else None,
            rest_pause_count=sum(1 for s in sets if s.used_rest_pause),
        )


class ProgressionEngine:
    """
    Decides load/sets for the next session of one exercise.

    Inputs are the growth sets (first three working sets), all working sets,
    the exercise's ProgressionConfig and the current meso phase.
    """

    def __init__(self, thresholds: Optional[DecisionThresholds] = None):
        self.thresholds = thresholds or DecisionThresholds()

    def suggest_next(
        self,
        growth_sets: Sequence[SetRecord],
        working_sets: Sequence[SetRecord],
        config: ProgressionConfig,
        phase: MesoPhase,
        planned_top_reps: int,
        current_sets: int,
        target_reps: Optional[int] = None,
        base_target_rir: Optional[float] = None,
        diagnostic_sets: Optional[Sequence[SetRecord]] = None,
    ) -> ProgressionDecision:
        """
        Run the rule cascade.

        Args:
            growth_sets: First up-to-3 working sets
            working_sets: All working sets (growth + diagnostic), in order
            config: Cluster progression settings
            phase: Current meso phase
            planned_top_reps: max(plannedRepsBySet) or targetReps
            current_sets: Planned working sets this session
            target_reps: Planned target reps (defaults to planned_top_reps)
            base_target_rir: Base RIR overriding config.base_target_rir
            diagnostic_sets: 4th+ sets (defaults to working_sets[3:])

        Returns:
            ProgressionDecision
        """
        th = self.thresholds
        current_sets = max(current_sets, 1)
        if target_reps is None or target_reps <= 0:
            target_reps = planned_top_reps
        if diagnostic_sets is None:
            diagnostic_sets = list(working_sets)[len(growth_sets):]

        # 1. No data
        if not growth_sets:
            logger.debug("Rule fired: no data")
            return self._decision(
                0.0, max(config.min_sets, current_sets), ProgressionAction.HOLD_LOAD,
                [f"No prior data - pick a starting load and stay within {config.rep_min}-{config.rep_max} reps."],
            )

        stats = GrowthStats.from_sets(growth_sets)
        base_rir = base_target_rir if base_target_rir is not None and base_target_rir > 0 else config.base_target_rir
        target_rir = effective_target_rir(phase, base_rir)
        avg_rir = stats.avg_rir if stats.avg_rir is not None else target_rir
        last_load = stats.last_load

        # 2. Deload phase override
        if phase == MesoPhase.DELOAD:
            logger.debug("Rule fired: deload phase")
            return self._decision(
                max(0.0, last_load - config.secondary_load_increment),
                max(config.min_sets, current_sets - 1),
                ProgressionAction.DELOAD,
                ["Deload phase - reduce load and sets regardless of performance."],
            )

        # 3. Low-back / stability: quality over progression
        if config.is_low_back_or_stability:
            logger.debug("Rule fired: low-back / stability")
            next_sets = min(current_sets, config.max_sets)
            if avg_rir < target_rir - th.rir_tolerance or stats.best_reps < config.rep_min:
                if config.allow_load_decrease:
                    return self._decision(
                        max(0.0, last_load - config.secondary_load_increment), next_sets,
                        ProgressionAction.REDUCE_LOAD,
                        ["Low-back / stability work - prioritize control. Take a little load off next time."],
                    )
                return self._decision(
                    last_load, next_sets, ProgressionAction.HOLD_LOAD,
                    ["Low-back / stability work - prioritize control. Hold the load and own the reps."],
                )
            return self._decision(
                last_load, next_sets, ProgressionAction.HOLD_LOAD,
                [f"Low-back / stability work - hold load, keep reps in {config.rep_min}-{config.rep_max} "
                 f"with {target_rir:.1f} RIR."],
            )

        # 4. Downshift / re-baseline, over all working sets
        rebaseline = self._rebaseline_load(working_sets)
        if rebaseline is not None:
            logger.debug("Rule fired: re-baseline")
            heaviest = max(s.load for s in working_sets)
            return self._decision(
                rebaseline, current_sets, ProgressionAction.REDUCE_LOAD,
                [f"Opened at {_fmt(heaviest)} and dropped to {_fmt(rebaseline)} by the last set - "
                 f"treat {_fmt(rebaseline)} as the new baseline and build from there."],
            )

        diagnostic_note = self._diagnostic_note(diagnostic_sets, planned_top_reps)

        # 5. Failure + fatigue crash
        if (stats.min_rir is not None and stats.min_rir <= 0
                and stats.first_reps - stats.last_reps >= th.fatigue_crash_rep_drop):
            logger.debug("Rule fired: failure + fatigue crash")
            return self._decision(
                last_load, current_sets, ProgressionAction.HOLD_LOAD,
                [f"Went to failure and reps crashed from {stats.first_reps} to {stats.last_reps}. "
                 f"Hold {_fmt(last_load)} and aim for more even reps across the growth sets."],
                diagnostic_note,
            )

        # 6. Under-target reps
        if stats.best_reps < target_reps:
            logger.debug("Rule fired: under-target reps")
            return self._decision(
                last_load, current_sets, ProgressionAction.HOLD_LOAD,
                [f"Best set reached {stats.best_reps} reps against a target of {target_reps}. "
                 f"Keep {_fmt(last_load)} and hit the full target before progressing."],
                diagnostic_note,
            )

        # 7. Harder than planned
        if avg_rir < target_rir - th.rir_tolerance or stats.rest_pause_count >= th.rest_pause_limit:
            logger.debug("Rule fired: harder than planned")
            if stats.rest_pause_count >= th.rest_pause_limit:
                reason = f"{stats.rest_pause_count} growth sets needed rest-pause"
            else:
                reason = f"RIR ~{avg_rir:.1f} vs target {target_rir:.1f}"
            return self._decision(
                last_load, current_sets, ProgressionAction.HOLD_LOAD,
                [f"Session was harder than planned ({reason}). Hold {_fmt(last_load)} until it moves cleaner."],
                diagnostic_note,
            )

        on_target_rir = abs(avg_rir - target_rir) <= th.rir_tolerance

        # 8. Clean top-of-range on all growth sets
        if (stats.count >= 3
                and all(s.reps >= planned_top_reps for s in growth_sets)
                and on_target_rir
                and stats.rest_pause_count == 0):
            logger.debug("Rule fired: clean top of range")
            step = load_step(last_load)
            next_sets = current_sets
            if (config.allow_set_increase and current_sets < config.max_sets
                    and avg_rir >= target_rir + th.set_increase_rir_margin):
                next_sets = current_sets + 1
            notes = [
                f"All growth sets hit {planned_top_reps}+ reps at RIR ~{avg_rir:.1f} (target {target_rir:.1f}).",
                f"Increase load by {step:.1f} to {_fmt(last_load + step)}.",
                "Add one set next time." if next_sets > current_sets else "Keep set count the same.",
            ]
            return self._decision(last_load + step, next_sets, ProgressionAction.INCREASE_LOAD, notes, diagnostic_note)

        # 9. Comfortable overperformance
        if (stats.best_reps >= planned_top_reps + th.overperformance_reps
                and (stats.min_rir is None or stats.min_rir > 0)
                and stats.rest_pause_count == 0):
            logger.debug("Rule fired: comfortable overperformance")
            step = load_step(last_load)
            return self._decision(
                last_load + step, current_sets, ProgressionAction.INCREASE_LOAD,
                [f"Beat the rep target by {stats.best_reps - planned_top_reps} without grinding. "
                 f"Increase to {_fmt(last_load + step)} next time."],
                diagnostic_note,
            )

        # 10. On target
        if stats.best_reps >= planned_top_reps and on_target_rir:
            logger.debug("Rule fired: on target")
            return self._decision(
                last_load, current_sets, ProgressionAction.HOLD_LOAD,
                [f"On target at {_fmt(last_load)}. Repeat once more to consolidate before adding load."],
                diagnostic_note,
            )

        # 11. Catch-all
        logger.debug("Rule fired: catch-all hold")
        return self._decision(
            last_load, current_sets, ProgressionAction.HOLD_LOAD,
            [f"Mixed signals - repeat {_fmt(last_load)} and work on even reps and clean quality across sets."],
            diagnostic_note,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _decision(
        next_load: float,
        next_sets: int,
        action: ProgressionAction,
        notes: List[str],
        extra_note: Optional[str] = None,
    ) -> ProgressionDecision:
        if extra_note:
            notes = notes + [extra_note]
        return ProgressionDecision(
            next_load=next_load,
            next_sets=max(int(next_sets), 1),
            action=action,
            notes=tuple(notes),
        )

    def _rebaseline_load(self, working_sets: Sequence[SetRecord]) -> Optional[float]:
        """Lightest load if the lifter opened heavy and corrected down, else None."""
        if len(working_sets) < 2:
            return None
        loads = [s.load for s in working_sets]
        heaviest = max(loads)
        lightest = min(loads)
        if heaviest <= 0:
            return None
        if ((heaviest - lightest) / heaviest >= self.thresholds.rebaseline_drop_ratio
                and loads[0] == heaviest
                and loads[-1] == lightest):
            return lightest
        return None

    @staticmethod
    def _diagnostic_note(diagnostic_sets: Sequence[SetRecord], planned_top_reps: int) -> Optional[str]:
        if not diagnostic_sets:
            return None
        best = max(s.reps for s in diagnostic_sets)
        if best >= planned_top_reps:
            return ("Diagnostic set stayed strong - you tolerate this volume well. "
                    "Keep the extra set in the mix if recovery allows.")
        if best <= planned_top_reps - 3:
            return ("Diagnostic set dropped off - keep it as an occasional test only "
                    "and base volume on the growth sets.")
        return ("Diagnostic set was okay but not dominant - keep the growth sets as the baseline "
                "and add the extra set only when recovery is excellent.")


def suggest_next(
    growth_sets: Sequence[SetRecord],
    working_sets: Sequence[SetRecord],
    config: ProgressionConfig,
    phase: MesoPhase,
    planned_top_reps: int,
    current_sets: int,
    target_reps: Optional[int] = None,
    base_target_rir: Optional[float] = None,
    thresholds: Optional[DecisionThresholds] = None,
) -> ProgressionDecision:
    """Module-level shortcut for ProgressionEngine(thresholds).suggest_next(...)."""
    return ProgressionEngine(thresholds).suggest_next(
        growth_sets, working_sets, config, phase, planned_top_reps, current_sets,
        target_reps=target_reps, base_target_rir=base_target_rir,
    )
