"""
PR Tracker

Best single-set volume (load x reps) per exercise. The first logged
working set for an exercise becomes its baseline PR.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ..exceptions import StoreError
from ..models import PRIndex, SessionItem, SetRecord
from ..store import Store
from .snapshots import snapshots_from_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PRUpdate:
    """Outcome of checking one exercise-in-session against its PR."""
    is_record: bool
    volume: float
    pr: Optional[PRIndex] = None
    warning: Optional[str] = None


def best_set(records: Sequence[SetRecord]) -> Optional[SetRecord]:
    """Highest-volume working set (first one wins ties)."""
    best = None
    for record in records:
        if best is None or record.volume > best.volume:
            best = record
    return best


class PRTracker:
    """Keeps the PR table in the store current."""

    def __init__(self, store: Store):
        self.store = store

    def update(self, item: SessionItem, on: Optional[date] = None) -> PRUpdate:
        """
        Check a completed exercise-in-session and update its PR.

        Sets item.is_pr. Writes through store.upsert_pr only; the caller
        commits with store.save().

        Args:
            item: Session item with its log filled in
            on: Date credited to a new PR (default: today)

        Returns:
            PRUpdate
        """
        top = best_set(snapshots_from_log(item.log))
        if top is None or top.volume <= 0:
            item.is_pr = False
            return PRUpdate(is_record=False, volume=0.0)

        on = on or date.today()

        try:
            existing = self.store.fetch_pr(item.exercise_id)
        except StoreError as e:
            # Without the stored PR there is nothing to compare against
            logger.warning(f"No PR data available for {item.exercise_id}: {e}")
            item.is_pr = False
            return PRUpdate(is_record=False, volume=top.volume, warning=f"PR not checked: {e}")

        if existing is None:
            pr = PRIndex(
                exercise_id=item.exercise_id,
                exercise_name=item.exercise_name or "Unknown",
                best_set_volume=top.volume,
                best_load=top.load,
                best_reps=top.reps,
                best_date=on,
            )
            logger.info(f"Baseline PR for {item.exercise_id}: {top.load:.1f} x {top.reps}")
        elif top.volume > existing.best_set_volume:
            pr = PRIndex(
                exercise_id=existing.exercise_id,
                exercise_name=item.exercise_name or existing.exercise_name,
                best_set_volume=top.volume,
                best_load=top.load,
                best_reps=top.reps,
                best_date=on,
            )
            logger.info(
                f"New PR for {item.exercise_id}: {top.load:.1f} x {top.reps} "
                f"({top.volume:.0f} > {existing.best_set_volume:.0f})"
            )
        else:
            item.is_pr = False
            return PRUpdate(is_record=False, volume=top.volume, pr=existing)

        self.store.upsert_pr(pr)
        item.is_pr = True
        return PRUpdate(is_record=True, volume=top.volume, pr=pr)

    def current(self, exercise_id: str) -> Optional[PRIndex]:
        """Stored PR for display; None if missing or unreadable."""
        try:
            return self.store.fetch_pr(exercise_id)
        except StoreError as e:
            logger.warning(f"Could not read PR for {exercise_id}: {e}")
            return None
