"""
Session Coach

Internal Codename: SPOTTER
"Saving a set is a transaction."

Runs the save-an-exercise flow end to end:
    snapshot -> classify -> phase -> config -> decide
    -> coach note -> PR update -> propagate -> store.save()

Decisions are pure and always returned. Store failures along the way are
logged and reported as warnings on the evaluation, never raised. The
store's lock is held from the first read to the final save.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from .config import CoachConfig
from .exceptions import StoreError
from .models import (
    MesoPhase,
    ProgressionDecision,
    Session,
    SessionItem,
    SessionStatus,
)
from .progression.classifier import classify_working_sets
from .progression.engine import ProgressionEngine
from .progression.propagation import PlanPropagator
from .progression.readiness import readiness_adjusted_load
from .progression.records import PRTracker, PRUpdate
from .progression.rulebook import ExerciseCluster, LiftPattern, progression_config_for
from .progression.snapshots import snapshots_from_log
from .store import Store

logger = logging.getLogger(__name__)


@dataclass
class ExerciseEvaluation:
    """Everything the save flow produced for one exercise-in-session."""
    exercise_id: str
    decision: ProgressionDecision
    phase: MesoPhase
    pattern: LiftPattern
    cluster: ExerciseCluster
    pr: Optional[PRUpdate] = None
    propagated_to: Optional[SessionItem] = None
    readiness_load: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def is_record(self) -> bool:
        return bool(self.pr and self.pr.is_record)


class SessionCoach:
    """
    Evaluates logged exercises and writes the results back to the store.

    Example:
        coach = SessionCoach(store, CoachConfig.from_yaml())
        result = coach.save_exercise(session, session.item_for('hack_squat'))
        print(result.decision.action.value)
    """

    def __init__(self, store: Store, coach_config: Optional[CoachConfig] = None,
                 engine: Optional[ProgressionEngine] = None):
        self.store = store
        self.config = coach_config or CoachConfig()
        self.engine = engine or ProgressionEngine(self.config.thresholds)
        self.pr_tracker = PRTracker(store)
        self.propagator = PlanPropagator(store)

    def evaluate_item(self, session: Session, item: SessionItem) -> ExerciseEvaluation:
        """Decide the next load/sets for one item. No side effects."""
        records = snapshots_from_log(item.log)
        classified = classify_working_sets(records)
        phase = self.config.meso_block.phase(session.week_index)
        config, pattern, cluster = progression_config_for(
            item.exercise_id, item.exercise_name, coach_config=self.config,
        )

        decision = self.engine.suggest_next(
            classified.growth,
            classified.all,
            config,
            phase,
            planned_top_reps=item.plan.planned_top_reps,
            current_sets=item.plan.planned_set_count,
            target_reps=item.plan.target_reps,
            base_target_rir=item.plan.target_rir,
            diagnostic_sets=classified.diagnostic,
        )

        readiness_load = None
        if session.readiness_stars > 0 and decision.next_load > 0:
            readiness_load = readiness_adjusted_load(decision.next_load, session.readiness_stars)

        return ExerciseEvaluation(
            exercise_id=item.exercise_id,
            decision=decision,
            phase=phase,
            pattern=pattern,
            cluster=cluster,
            readiness_load=readiness_load,
        )

    def save_exercise(self, session: Session, item: SessionItem, on: Optional[date] = None) -> ExerciseEvaluation:
        """
        Evaluate a logged exercise, update its PR, carry the plan forward and save.

        Args:
            session: Session containing the item
            item: The logged exercise
            on: Date credited to a new PR (default: session date)

        Returns:
            ExerciseEvaluation (warnings list any store failures)
        """
        with self.store.lock:
            result = self._apply(session, item, on)
            self._save(result.warnings, f"exercise {item.exercise_id}")
        return result

    def complete_session(self, session: Session, on: Optional[date] = None) -> List[ExerciseEvaluation]:
        """Evaluate every item, mark the session completed, and save once."""
        warnings: List[str] = []
        with self.store.lock:
            results = [
                self._apply(session, item, on)
                for item in sorted(session.items, key=lambda i: i.order)
            ]
            session.status = SessionStatus.COMPLETED
            self._save(warnings, f"session {session.date.isoformat()}")
        for result in results:
            result.warnings.extend(warnings)

        records = sum(1 for r in results if r.is_record)
        logger.info(f"Completed session {session.date.isoformat()}: {len(results)} exercises, {records} PRs")
        return results

    # =========================================================================
    # Internals
    # =========================================================================

    def _apply(self, session: Session, item: SessionItem, on: Optional[date]) -> ExerciseEvaluation:
        result = self.evaluate_item(session, item)
        decision = result.decision

        item.coach_note = " ".join(decision.notes)
        item.next_suggested_load = decision.next_load if decision.next_load > 0 else None

        try:
            result.pr = self.pr_tracker.update(item, on=on or session.date)
            if result.pr.warning:
                result.warnings.append(result.pr.warning)
        except StoreError as e:
            logger.warning(f"PR update failed for {item.exercise_id}: {e}")
            result.warnings.append(f"PR not saved: {e}")
            item.is_pr = False

        plan = item.plan.with_decision(decision)
        if not plan.is_meaningful():
            return result

        try:
            sessions = self.store.fetch_sessions()
        except StoreError as e:
            logger.warning(f"Not carrying {item.exercise_id} forward: {e}")
            result.warnings.append(f"Plan not carried forward: {e}")
            return result

        result.propagated_to = self.propagator.propagate(
            session, item.exercise_id, plan, sessions=sessions,
        )
        return result

    def _save(self, warnings: List[str], what: str):
        try:
            self.store.save()
        except StoreError as e:
            logger.warning(f"Could not save {what}: {e}")
            warnings.append(f"Save failed, retry to persist: {e}")
