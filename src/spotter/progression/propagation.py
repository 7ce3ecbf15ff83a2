"""
Plan Forward-Propagation

Carries an evaluated plan into the next scheduled occurrence of the same
exercise. Conservative: a future item that already has a planned load is
never touched, so user and program edits win over automatic carry-forward.
"""

import logging
from datetime import date
from typing import List, Optional

from ..exceptions import StoreError
from ..models import ExercisePlan, Session, SessionItem, SessionStatus
from ..store import Store

logger = logging.getLogger(__name__)


class PlanPropagator:
    """
    Writes plans into future sessions.

    Propagations hold the store's lock, so two writes into the same future
    item never interleave, even from different propagators.
    """

    def __init__(self, store: Store):
        self.store = store

    def next_occurrence(self, sessions: List[Session], session: Session, exercise_id: str) -> Optional[SessionItem]:
        """First item for exercise_id in a session strictly after `session`."""
        index = next((i for i, s in enumerate(sessions) if s is session or (
            s.id is not None and s.id == session.id)), None)
        if index is None:
            later = [s for s in sessions if s.date > session.date]
        else:
            later = sessions[index + 1:]
        for future in later:
            item = future.item_for(exercise_id)
            if item is not None:
                return item
        return None

    def propagate(self, session: Session, exercise_id: str, plan: ExercisePlan,
                  sessions: Optional[List[Session]] = None) -> Optional[SessionItem]:
        """
        Copy `plan` into the nearest future item for exercise_id if its plan is empty.

        Args:
            session: Session the plan was evaluated in
            exercise_id: Exercise to carry forward
            plan: Plan to write
            sessions: Chronological sessions (fetched from the store if None)

        Returns:
            The updated future item, or None if nothing was written
        """
        if not plan.is_meaningful():
            logger.debug(f"Skipping propagation for {exercise_id}: source plan is empty")
            return None

        with self.store.lock:
            if sessions is None:
                try:
                    sessions = self.store.fetch_sessions()
                except StoreError as e:
                    logger.warning(f"Skipping propagation for {exercise_id}, sessions unavailable: {e}")
                    return None

            target = self.next_occurrence(sessions, session, exercise_id)
            if target is None:
                logger.debug(f"No future session contains {exercise_id}")
                return None
            if not target.plan.is_empty():
                logger.debug(f"Future plan for {exercise_id} already set, leaving it alone")
                return None

            target.plan = plan.copy()
            logger.info(
                f"Carried {exercise_id} forward: {plan.target_sets} sets, "
                f"load {plan.suggested_load:.1f}"
            )
            return target

    def carry_forward_session(self, session: Session) -> List[SessionItem]:
        """Propagate every item's current plan from a completed session."""
        with self.store.lock:
            try:
                sessions = self.store.fetch_sessions()
            except StoreError as e:
                logger.warning(f"Skipping carry-forward, sessions unavailable: {e}")
                return []

            updated = []
            for item in sorted(session.items, key=lambda i: i.order):
                target = self.propagate(session, item.exercise_id, item.plan, sessions=sessions)
                if target is not None:
                    updated.append(target)
            return updated


def swap_exercise_forward(store: Store, from_exercise_id: str, to_exercise_id: str,
                          after: Optional[date] = None) -> int:
    """
    Replace an exercise in every planned session dated after `after`.

    Returns:
        Number of replaced items (0 if the store is unavailable)
    """
    after = after or date.today()
    with store.lock:
        try:
            sessions = store.fetch_sessions()
        except StoreError as e:
            logger.warning(f"Swap {from_exercise_id} -> {to_exercise_id} skipped: {e}")
            return 0

        replaced = 0
        for session in sessions:
            if session.date <= after or session.status != SessionStatus.PLANNED:
                continue
            for item in session.items:
                if item.exercise_id == from_exercise_id:
                    item.exercise_id = to_exercise_id
                    replaced += 1

        if replaced:
            try:
                store.save()
            except StoreError as e:
                logger.warning(f"Swap {from_exercise_id} -> {to_exercise_id} not saved: {e}")
                return 0
            logger.info(f"Swapped {from_exercise_id} -> {to_exercise_id} in {replaced} planned items")
        return replaced
