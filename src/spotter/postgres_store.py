"""Postgres store for Spotter sessions, plans and PRs.

Three tables:
- sessions: one row per training session
- session_items: one row per exercise in a session (plan + log arrays)
- pr_index: best single-set volume per exercise

Fetched session items are tracked; save() writes back whatever the
coach changed on them, plus any queued PR writes, in one transaction.
Nothing is written before save(), so a failed read (which rolls back)
never discards pending work.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

import psycopg2
from psycopg2.extras import RealDictCursor

from .config import postgres_dsn
from .exceptions import StoreError
from .models import (
    ExerciseLog,
    ExercisePlan,
    PRIndex,
    Session,
    SessionItem,
    SessionStatus,
)
from .store import Store

logger = logging.getLogger(__name__)


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS sessions (
        session_id SERIAL PRIMARY KEY,
        session_date DATE NOT NULL,
        week_index INTEGER NOT NULL DEFAULT 1,
        status TEXT NOT NULL DEFAULT 'planned',
        readiness_stars INTEGER NOT NULL DEFAULT 0,
        notes TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS session_items (
        item_id SERIAL PRIMARY KEY,
        session_id INTEGER NOT NULL REFERENCES sessions(session_id) ON DELETE CASCADE,
        item_order INTEGER NOT NULL DEFAULT 1,
        exercise_id TEXT NOT NULL,
        exercise_name TEXT,
        target_reps INTEGER NOT NULL DEFAULT 0,
        target_sets INTEGER NOT NULL DEFAULT 0,
        target_rir DOUBLE PRECISION NOT NULL DEFAULT 0,
        suggested_load DOUBLE PRECISION NOT NULL DEFAULT 0,
        planned_reps_by_set INTEGER[] NOT NULL DEFAULT '{}',
        planned_loads_by_set DOUBLE PRECISION[] NOT NULL DEFAULT '{}',
        actual_loads DOUBLE PRECISION[] NOT NULL DEFAULT '{}',
        actual_reps INTEGER[] NOT NULL DEFAULT '{}',
        actual_rirs DOUBLE PRECISION[] NOT NULL DEFAULT '{}',
        rest_pause_flags BOOLEAN[] NOT NULL DEFAULT '{}',
        rest_pause_patterns TEXT[] NOT NULL DEFAULT '{}',
        is_pr BOOLEAN NOT NULL DEFAULT FALSE,
        coach_note TEXT,
        next_suggested_load DOUBLE PRECISION
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pr_index (
        exercise_id TEXT PRIMARY KEY,
        exercise_name TEXT NOT NULL DEFAULT 'Unknown',
        best_set_volume DOUBLE PRECISION NOT NULL,
        best_load DOUBLE PRECISION NOT NULL,
        best_reps INTEGER NOT NULL,
        best_date DATE NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_date ON sessions (session_date)",
    "CREATE INDEX IF NOT EXISTS idx_session_items_exercise ON session_items (exercise_id)",
]


def _item_state(item: SessionItem) -> Tuple:
    """Everything the coach may change on an item."""
    plan = item.plan
    return (
        item.exercise_id,
        plan.target_reps, plan.target_sets, plan.target_rir, plan.suggested_load,
        tuple(plan.planned_reps_by_set), tuple(plan.planned_loads_by_set),
        item.is_pr, item.coach_note, item.next_suggested_load,
    )


def _session_state(session: Session) -> Tuple:
    return (session.status, session.readiness_stars, session.notes)


class PostgresStore(Store):
    """Postgres-backed Store."""

    def __init__(self, dsn: Optional[str] = None, connection=None):
        """
        Args:
            dsn: Connection string (defaults to SPOTTER_POSTGRES_DSN)
            connection: Existing DB-API connection to use instead of connecting
        """
        super().__init__()
        self.dsn = dsn or postgres_dsn()
        self._conn = connection
        self._loaded_items: Dict[int, Tuple[SessionItem, Tuple]] = {}
        self._loaded_sessions: Dict[int, Tuple[Session, Tuple]] = {}
        self._pending_prs: Dict[str, PRIndex] = {}

    @property
    def conn(self):
        """Lazy connection."""
        if self._conn is None or self._conn.closed:
            try:
                self._conn = psycopg2.connect(self.dsn)
            except psycopg2.Error as e:
                raise StoreError(f"Could not connect to Postgres: {e}") from e
        return self._conn

    def close(self):
        """Close connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def create_schema(self):
        """Create tables and indexes if they don't exist."""
        cursor = self.conn.cursor()
        try:
            for statement in SCHEMA:
                cursor.execute(statement)
            self.conn.commit()
            logger.info("Spotter schema ready")
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Error creating schema: {e}")
            raise StoreError(f"Could not create schema: {e}") from e

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def fetch_sessions(self) -> List[Session]:
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        try:
            cursor.execute("""
                SELECT session_id, session_date, week_index, status, readiness_stars, notes
                FROM sessions
                ORDER BY session_date, session_id
            """)
            session_rows = cursor.fetchall()
            cursor.execute("""
                SELECT *
                FROM session_items
                ORDER BY session_id, item_order, item_id
            """)
            item_rows = cursor.fetchall()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.warning(f"Error fetching sessions: {e}")
            raise StoreError(f"Could not fetch sessions: {e}") from e

        items_by_session: Dict[int, List[SessionItem]] = {}
        for row in item_rows:
            items_by_session.setdefault(row['session_id'], []).append(self._row_to_item(row))

        sessions = []
        for row in session_rows:
            session = Session(
                id=row['session_id'],
                date=row['session_date'],
                week_index=row['week_index'],
                status=SessionStatus(row['status']),
                readiness_stars=row['readiness_stars'],
                notes=row['notes'],
                items=items_by_session.get(row['session_id'], []),
            )
            sessions.append(self._track_session(session))
        return sessions

    def _track_session(self, session: Session) -> Session:
        """Reuse already-loaded objects so in-memory edits aren't lost."""
        if session.id in self._loaded_sessions:
            return self._loaded_sessions[session.id][0]
        self._loaded_sessions[session.id] = (session, _session_state(session))
        tracked = []
        for item in session.items:
            if item.id in self._loaded_items:
                tracked.append(self._loaded_items[item.id][0])
            else:
                self._loaded_items[item.id] = (item, _item_state(item))
                tracked.append(item)
        session.items = tracked
        return session

    @staticmethod
    def _row_to_item(row: Dict[str, Any]) -> SessionItem:
        return SessionItem(
            id=row['item_id'],
            order=row['item_order'],
            exercise_id=row['exercise_id'],
            exercise_name=row.get('exercise_name'),
            plan=ExercisePlan(
                target_reps=row['target_reps'],
                target_sets=row['target_sets'],
                target_rir=float(row['target_rir']),
                suggested_load=float(row['suggested_load']),
                planned_reps_by_set=list(row['planned_reps_by_set'] or []),
                planned_loads_by_set=[float(x) for x in row['planned_loads_by_set'] or []],
            ),
            log=ExerciseLog(
                actual_loads=[float(x) for x in row['actual_loads'] or []],
                actual_reps=list(row['actual_reps'] or []),
                actual_rirs=[float(x) if x is not None else None for x in row['actual_rirs'] or []],
                rest_pause_flags=list(row['rest_pause_flags'] or []),
                rest_pause_patterns=list(row['rest_pause_patterns'] or []),
            ),
            is_pr=row['is_pr'],
            coach_note=row.get('coach_note'),
            next_suggested_load=row.get('next_suggested_load'),
        )

    def insert_session(self, session: Session) -> Session:
        """Insert a session and its items, assigning ids. Commits."""
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        try:
            cursor.execute("""
                INSERT INTO sessions (session_date, week_index, status, readiness_stars, notes)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING session_id
            """, (session.date, session.week_index, session.status.value,
                  session.readiness_stars, session.notes))
            session.id = cursor.fetchone()['session_id']

            for item in session.items:
                plan, log = item.plan, item.log
                cursor.execute("""
                    INSERT INTO session_items (
                        session_id, item_order, exercise_id, exercise_name,
                        target_reps, target_sets, target_rir, suggested_load,
                        planned_reps_by_set, planned_loads_by_set,
                        actual_loads, actual_reps, actual_rirs,
                        rest_pause_flags, rest_pause_patterns,
                        is_pr, coach_note, next_suggested_load
                    ) VALUES (
                        %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                        %s, %s, %s, %s, %s, %s, %s, %s
                    )
                    RETURNING item_id
                """, (
                    session.id, item.order, item.exercise_id, item.exercise_name,
                    plan.target_reps, plan.target_sets, plan.target_rir, plan.suggested_load,
                    list(plan.planned_reps_by_set), list(plan.planned_loads_by_set),
                    list(log.actual_loads), list(log.actual_reps), list(log.actual_rirs),
                    list(log.rest_pause_flags), list(log.rest_pause_patterns),
                    item.is_pr, item.coach_note, item.next_suggested_load,
                ))
                item.id = cursor.fetchone()['item_id']

            self.conn.commit()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Error inserting session: {e}")
            raise StoreError(f"Could not insert session: {e}") from e

        self._track_session(session)
        return session

    # =========================================================================
    # PERSONAL RECORDS
    # =========================================================================

    def fetch_pr(self, exercise_id: str) -> Optional[PRIndex]:
        if exercise_id in self._pending_prs:
            return replace(self._pending_prs[exercise_id])

        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        try:
            cursor.execute("""
                SELECT exercise_id, exercise_name, best_set_volume, best_load, best_reps, best_date
                FROM pr_index
                WHERE exercise_id = %s
            """, (exercise_id,))
            row = cursor.fetchone()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.warning(f"Error fetching PR for {exercise_id}: {e}")
            raise StoreError(f"Could not fetch PR for {exercise_id}: {e}") from e

        if not row:
            return None
        return PRIndex(
            exercise_id=row['exercise_id'],
            exercise_name=row['exercise_name'],
            best_set_volume=float(row['best_set_volume']),
            best_load=float(row['best_load']),
            best_reps=row['best_reps'],
            best_date=row['best_date'],
        )

    def upsert_pr(self, pr: PRIndex) -> None:
        """Queue a PR write; save() sends it with the session changes."""
        self._pending_prs[pr.exercise_id] = replace(pr)

    @property
    def pending_prs(self) -> List[PRIndex]:
        return list(self._pending_prs.values())

    @staticmethod
    def _write_pr(cursor, pr: PRIndex):
        cursor.execute("""
            INSERT INTO pr_index (
                exercise_id, exercise_name, best_set_volume, best_load, best_reps, best_date
            ) VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (exercise_id) DO UPDATE SET
                exercise_name = EXCLUDED.exercise_name,
                best_set_volume = EXCLUDED.best_set_volume,
                best_load = EXCLUDED.best_load,
                best_reps = EXCLUDED.best_reps,
                best_date = EXCLUDED.best_date
        """, (pr.exercise_id, pr.exercise_name, pr.best_set_volume,
              pr.best_load, pr.best_reps, pr.best_date))

    # =========================================================================
    # COMMIT
    # =========================================================================

    def save(self) -> None:
        """Write queued PRs and changed sessions/items, then commit."""
        cursor = self.conn.cursor()
        try:
            prs = list(self._pending_prs.values())
            for pr in prs:
                self._write_pr(cursor, pr)

            changed_sessions = [
                session for session, state in self._loaded_sessions.values()
                if _session_state(session) != state
            ]
            for session in changed_sessions:
                cursor.execute("""
                    UPDATE sessions
                    SET status = %s, readiness_stars = %s, notes = %s
                    WHERE session_id = %s
                """, (session.status.value, session.readiness_stars, session.notes, session.id))

            changed_items = [
                item for item, state in self._loaded_items.values()
                if _item_state(item) != state
            ]
            for item in changed_items:
                plan = item.plan
                cursor.execute("""
                    UPDATE session_items
                    SET exercise_id = %s,
                        target_reps = %s,
                        target_sets = %s,
                        target_rir = %s,
                        suggested_load = %s,
                        planned_reps_by_set = %s,
                        planned_loads_by_set = %s,
                        is_pr = %s,
                        coach_note = %s,
                        next_suggested_load = %s
                    WHERE item_id = %s
                """, (
                    item.exercise_id, plan.target_reps, plan.target_sets, plan.target_rir,
                    plan.suggested_load, list(plan.planned_reps_by_set), list(plan.planned_loads_by_set),
                    item.is_pr, item.coach_note, item.next_suggested_load, item.id,
                ))

            self.conn.commit()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Error saving changes: {e}")
            raise StoreError(f"Could not save changes: {e}") from e

        for pr in prs:
            self._pending_prs.pop(pr.exercise_id, None)
        for session in changed_sessions:
            self._loaded_sessions[session.id] = (session, _session_state(session))
        for item in changed_items:
            self._loaded_items[item.id] = (item, _item_state(item))
        logger.debug(
            f"Saved {len(prs)} PRs, {len(changed_sessions)} sessions, {len(changed_items)} items"
        )
