"""PostgresStore against a fake psycopg2 connection (no database needed)."""

from datetime import date

import psycopg2
import pytest

from conftest import make_item
from spotter.coach import SessionCoach
from spotter.exceptions import StoreError
from spotter.models import PRIndex, Session, SessionStatus
from spotter.postgres_store import SCHEMA, PostgresStore


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self._result = []

    def execute(self, sql, params=None):
        if self.conn.fail_on and self.conn.fail_on in sql:
            raise psycopg2.OperationalError("server closed the connection unexpectedly")
        self.conn.executed.append((" ".join(sql.split()), params))
        if "FROM sessions" in sql:
            self._result = list(self.conn.session_rows)
        elif "FROM session_items" in sql:
            self._result = list(self.conn.item_rows)
        elif "FROM pr_index" in sql:
            self._result = [r for r in self.conn.pr_rows if r['exercise_id'] == params[0]]
        elif "INSERT INTO sessions" in sql:
            self.conn.next_id += 1
            self._result = [{'session_id': self.conn.next_id}]
        elif "INSERT INTO session_items" in sql:
            self.conn.next_id += 1
            self._result = [{'item_id': self.conn.next_id}]
        else:
            self._result = []

    def fetchall(self):
        return self._result

    def fetchone(self):
        return self._result[0] if self._result else None


class FakeConnection:
    def __init__(self, session_rows=(), item_rows=(), pr_rows=(), fail_on=None):
        self.session_rows = list(session_rows)
        self.item_rows = list(item_rows)
        self.pr_rows = list(pr_rows)
        self.fail_on = fail_on
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.next_id = 100

    def cursor(self, cursor_factory=None):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True

    def statements(self, prefix):
        return [(sql, params) for sql, params in self.executed if sql.startswith(prefix)]


def session_row(session_id, day, week=1, status='planned'):
    return {
        'session_id': session_id, 'session_date': day, 'week_index': week,
        'status': status, 'readiness_stars': 0, 'notes': None,
    }


def item_row(item_id, session_id, exercise_id, order=1, loads=(), reps=(), suggested_load=0.0):
    return {
        'item_id': item_id, 'session_id': session_id, 'item_order': order,
        'exercise_id': exercise_id, 'exercise_name': None,
        'target_reps': 10, 'target_sets': 3, 'target_rir': 0.0, 'suggested_load': suggested_load,
        'planned_reps_by_set': [10, 10, 10], 'planned_loads_by_set': [],
        'actual_loads': list(loads), 'actual_reps': list(reps), 'actual_rirs': [None] * len(loads),
        'rest_pause_flags': [], 'rest_pause_patterns': [],
        'is_pr': False, 'coach_note': None, 'next_suggested_load': None,
    }


@pytest.fixture
def conn():
    return FakeConnection(
        session_rows=[
            session_row(1, date(2026, 3, 2), status='in_progress'),
            session_row(2, date(2026, 3, 5)),
        ],
        item_rows=[
            item_row(11, 1, 'bench_press', loads=[185, 185, 185], reps=[10, 10, 10]),
            item_row(21, 2, 'bench_press'),
        ],
        pr_rows=[{
            'exercise_id': 'hack_squat', 'exercise_name': 'Hack Squat', 'best_set_volume': 2000.0,
            'best_load': 200.0, 'best_reps': 10, 'best_date': date(2026, 2, 1),
        }],
    )


def test_create_schema_runs_every_statement(conn):
    PostgresStore(connection=conn).create_schema()
    assert len(conn.executed) == len(SCHEMA)
    assert conn.commits == 1


def test_create_schema_failure_rolls_back():
    conn = FakeConnection(fail_on="CREATE TABLE")
    with pytest.raises(StoreError):
        PostgresStore(connection=conn).create_schema()
    assert conn.rollbacks == 1


def test_fetch_sessions_builds_models(conn):
    sessions = PostgresStore(connection=conn).fetch_sessions()

    assert [s.id for s in sessions] == [1, 2]
    assert sessions[0].status == SessionStatus.IN_PROGRESS
    item = sessions[0].items[0]
    assert item.id == 11
    assert item.log.actual_loads == [185.0, 185.0, 185.0]
    assert item.log.actual_rirs == [None, None, None]
    assert item.plan.planned_reps_by_set == [10, 10, 10]


def test_fetch_sessions_returns_the_same_objects(conn):
    store = PostgresStore(connection=conn)
    first = store.fetch_sessions()
    second = store.fetch_sessions()
    assert first[0] is second[0]
    assert first[1].items[0] is second[1].items[0]


def test_fetch_failure_is_a_store_error():
    conn = FakeConnection(fail_on="FROM sessions")
    with pytest.raises(StoreError):
        PostgresStore(connection=conn).fetch_sessions()
    assert conn.rollbacks == 1


def test_fetch_pr(conn):
    store = PostgresStore(connection=conn)
    pr = store.fetch_pr('hack_squat')
    assert pr.best_set_volume == 2000.0
    assert pr.exercise_name == 'Hack Squat'
    assert store.fetch_pr('bench_press') is None


def test_upsert_pr_waits_for_save(conn):
    store = PostgresStore(connection=conn)
    store.upsert_pr(PRIndex('bench_press', 1850.0, 185.0, 10, date(2026, 3, 2)))

    assert conn.statements("INSERT INTO pr_index") == []
    assert store.fetch_pr('bench_press').best_set_volume == 1850.0

    store.save()
    [(sql, params)] = conn.statements("INSERT INTO pr_index")
    assert "ON CONFLICT (exercise_id) DO UPDATE" in sql
    assert params[0] == 'bench_press'
    assert conn.commits == 1
    assert store.pending_prs == []


def test_failed_read_keeps_queued_pr(conn):
    store = PostgresStore(connection=conn)
    store.upsert_pr(PRIndex('bench_press', 1850.0, 185.0, 10, date(2026, 3, 2)))

    conn.fail_on = "FROM pr_index"
    with pytest.raises(StoreError):
        store.fetch_pr('hack_squat')
    assert conn.rollbacks == 1

    conn.fail_on = None
    store.save()
    [(_, params)] = conn.statements("INSERT INTO pr_index")
    assert params[0] == 'bench_press'
    assert conn.commits == 1


def test_failed_pr_write_stays_queued_for_retry(conn):
    store = PostgresStore(connection=conn)
    store.upsert_pr(PRIndex('bench_press', 1850.0, 185.0, 10, date(2026, 3, 2)))

    conn.fail_on = "INSERT INTO pr_index"
    with pytest.raises(StoreError):
        store.save()
    assert [pr.exercise_id for pr in store.pending_prs] == ['bench_press']

    conn.fail_on = None
    store.save()
    assert len(conn.statements("INSERT INTO pr_index")) == 1
    assert store.pending_prs == []


def test_coach_keeps_pr_when_session_read_fails(conn):
    store = PostgresStore(connection=conn)
    session = store.fetch_session(1)
    item = session.item_for('bench_press')

    conn.fail_on = "FROM sessions"
    result = SessionCoach(store).save_exercise(session, item)

    assert result.is_record
    assert any("Plan not carried forward" in w for w in result.warnings)
    [(_, pr_params)] = conn.statements("INSERT INTO pr_index")
    assert pr_params[0] == 'bench_press'
    [(_, item_params)] = conn.statements("UPDATE session_items")
    assert item_params[-1] == 11
    assert conn.commits == 1


def test_save_writes_back_only_changed_rows(conn):
    store = PostgresStore(connection=conn)
    sessions = store.fetch_sessions()
    future_item = sessions[1].items[0]
    future_item.plan.suggested_load = 187.5
    future_item.plan.planned_loads_by_set = [187.5, 187.5, 187.5]
    sessions[0].status = SessionStatus.COMPLETED

    store.save()

    [(item_sql, item_params)] = conn.statements("UPDATE session_items")
    assert item_params[-1] == 21
    assert item_params[4] == 187.5
    [(_, session_params)] = conn.statements("UPDATE sessions")
    assert session_params == ('completed', 0, None, 1)
    assert conn.commits == 1

    # Nothing changed since the last save
    store.save()
    assert len(conn.statements("UPDATE")) == 2


def test_save_failure_rolls_back_and_retries(conn):
    store = PostgresStore(connection=conn)
    sessions = store.fetch_sessions()
    sessions[1].items[0].plan.suggested_load = 187.5

    conn.fail_on = "UPDATE session_items"
    with pytest.raises(StoreError):
        store.save()
    assert conn.rollbacks == 1

    conn.fail_on = None
    store.save()
    assert len(conn.statements("UPDATE session_items")) == 1


def test_insert_session_assigns_ids(conn):
    store = PostgresStore(connection=conn)
    session = Session(date=date(2026, 3, 9), week_index=2, items=[
        make_item('bench_press', order=1),
        make_item('lateral_raise', order=2),
    ])

    store.insert_session(session)

    assert session.id == 101
    assert [i.id for i in session.items] == [102, 103]
    assert len(conn.statements("INSERT INTO session_items")) == 2
    assert conn.commits == 1


def test_connect_failure_is_a_store_error(monkeypatch):
    def refuse(dsn):
        raise psycopg2.OperationalError("could not connect to server")

    monkeypatch.setattr(psycopg2, 'connect', refuse)
    store = PostgresStore(dsn='postgresql://localhost:1/none')
    with pytest.raises(StoreError):
        store.fetch_pr('bench_press')


def test_context_manager_closes(conn):
    with PostgresStore(connection=conn):
        pass
    assert conn.closed
