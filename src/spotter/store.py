"""
Store interface for sessions and personal records.

The progression core only talks to this interface. Any call may raise
StoreError; callers decide how to degrade.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .models import PRIndex, Session

logger = logging.getLogger(__name__)


class Store(ABC):
    """
    Keyed record store for sessions and PRs.

    `lock` is shared by everything writing through this store; hold it
    across a read-modify-save sequence.
    """

    def __init__(self):
        self.lock = threading.RLock()

    @abstractmethod
    def fetch_sessions(self) -> List[Session]:
        """All sessions in chronological order (oldest first)."""

    @abstractmethod
    def fetch_pr(self, exercise_id: str) -> Optional[PRIndex]:
        """Stored PR for an exercise, or None."""

    @abstractmethod
    def upsert_pr(self, pr: PRIndex) -> None:
        """Insert or replace the PR for pr.exercise_id."""

    @abstractmethod
    def save(self) -> None:
        """Persist pending changes (PRs, mutated session plans)."""

    def fetch_session(self, session_id: int) -> Optional[Session]:
        for session in self.fetch_sessions():
            if session.id == session_id:
                return session
        return None

    def close(self) -> None:
        """Release any connection held by the store."""


class InMemoryStore(Store):
    """
    Store backed by plain Python objects.

    Sessions are returned by reference, so mutations made by the
    propagator are visible immediately; save() only counts commits.
    """

    def __init__(self, sessions: Optional[Iterable[Session]] = None, prs: Optional[Iterable[PRIndex]] = None):
        super().__init__()
        self._sessions: List[Session] = []
        self._prs: Dict[str, PRIndex] = {}
        self.save_count = 0
        for session in sessions or []:
            self.add_session(session)
        for pr in prs or []:
            self._prs[pr.exercise_id] = replace(pr)

    def add_session(self, session: Session) -> Session:
        if session.id is None:
            session.id = max((s.id or 0 for s in self._sessions), default=0) + 1
        next_id = self._next_item_id(session)
        for item in session.items:
            if item.id is None:
                item.id = next_id
                next_id += 1
        self._sessions.append(session)
        return session

    def _next_item_id(self, incoming: Session) -> int:
        ids = [item.id or 0 for s in self._sessions + [incoming] for item in s.items]
        return max(ids, default=0) + 1

    def fetch_sessions(self) -> List[Session]:
        # Stable sort keeps insertion order for sessions on the same date
        return sorted(self._sessions, key=lambda s: s.date)

    def fetch_pr(self, exercise_id: str) -> Optional[PRIndex]:
        pr = self._prs.get(exercise_id)
        return replace(pr) if pr else None

    def upsert_pr(self, pr: PRIndex) -> None:
        self._prs[pr.exercise_id] = replace(pr)

    def save(self) -> None:
        self.save_count += 1
        logger.debug(f"In-memory store saved ({self.save_count} commits)")
