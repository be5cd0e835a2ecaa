"""SQLite-backed session store."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator, List, Optional, Union

from worktime.core.checker import ConsistencyAudit, CorruptionHandler
from worktime.core.clock import Clock, SystemClock
from worktime.core.errors import (
    CorruptionError,
    DatabaseError,
    LogicError,
    NotFoundError,
)
from worktime.models.session import Session

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS work_sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    start_time TEXT NOT NULL,
    end_time TEXT
);
CREATE INDEX IF NOT EXISTS idx_work_sessions_start ON work_sessions(start_time);
"""

_COLUMNS = "id, start_time, end_time"


def _to_db(moment: datetime) -> str:
    return moment.isoformat(sep=" ")


def _from_row(row: sqlite3.Row) -> Session:
    end_time = row["end_time"]
    try:
        return Session(
            id=row["id"],
            start_time=datetime.fromisoformat(row["start_time"]),
            end_time=datetime.fromisoformat(end_time) if end_time is not None else None,
        )
    except (TypeError, ValueError) as e:
        raise CorruptionError(
            f"Session {row['id']} has an unreadable timestamp: {e}", row["id"]
        ) from e


class SessionStore:
    """Owns the persisted work sessions.

    Callers only ever receive ``Session`` snapshots. Opening a store launches
    a ``ConsistencyAudit`` over all sessions on a background thread; it shares
    this store's connection, so every statement runs under ``_lock``.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        clock: Optional[Clock] = None,
        on_corruption: Optional[CorruptionHandler] = None,
        audit: bool = True,
    ):
        self.db_path = db_path
        self.clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._conn = self._connect()
        self.audit = ConsistencyAudit(self.list_sessions, self.clock, on_corruption)
        if audit:
            self.audit.start()

    def _connect(self) -> sqlite3.Connection:
        if str(self.db_path) != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot open database {self.db_path}: {e}") from e
        logger.debug("Opened session store at %s", self.db_path)
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements under the store lock, committing on success."""
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                raise DatabaseError(str(e)) from e

    def close(self, timeout: Optional[float] = None) -> None:
        """Wait for the audit to finish, then close the connection."""
        if not self.audit.join(timeout):
            logger.warning("Consistency audit still running after %ss", timeout)
        with self._lock:
            self._conn.close()
        logger.debug("Closed session store at %s", self.db_path)

    def __enter__(self) -> "SessionStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Queries

    def get_last_session(self) -> Optional[Session]:
        """Most recently created session, or None for an empty store."""
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM work_sessions ORDER BY id DESC LIMIT 1"
            ).fetchone()
        return _from_row(row) if row else None

    def get_last_n_sessions(self, n: int) -> List[Session]:
        """The ``n`` most recent sessions, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM work_sessions ORDER BY id DESC LIMIT ?",
                (n,),
            ).fetchall()
        return [_from_row(row) for row in rows]

    def get_sessions_since(self, day: date) -> List[Session]:
        """Sessions starting on or after ``day``, oldest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM work_sessions "
                "WHERE date(start_time) >= date(?) ORDER BY id ASC",
                (day.isoformat(),),
            ).fetchall()
        return [_from_row(row) for row in rows]

    def get_session_by_id(self, session_id: int) -> Session:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM work_sessions WHERE id = ?", (session_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Session {session_id} not found", session_id)
        return _from_row(row)

    def list_sessions(self) -> List[Session]:
        """Every session, oldest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM work_sessions ORDER BY id ASC"
            ).fetchall()
        return [_from_row(row) for row in rows]

    # Mutations

    def insert_start(self, now: datetime) -> datetime:
        """Open a new session starting at ``now``.

        The open-session check and the insert are separate statements; only
        one writer process is supported.
        """
        with self._transaction() as conn:
            (open_count,) = conn.execute(
                "SELECT COUNT(*) FROM work_sessions WHERE end_time IS NULL"
            ).fetchone()
        if open_count > 1:
            raise CorruptionError(f"Found {open_count} open sessions")
        if open_count == 1:
            raise LogicError("Session already started")

        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO work_sessions (start_time) VALUES (?)", (_to_db(now),)
            )
        logger.info("Started session %s at %s", cursor.lastrowid, now)
        return now

    def insert_stop(self, session_id: int, now: datetime) -> datetime:
        self._update(session_id, "end_time", now)
        logger.info("Stopped session %s at %s", session_id, now)
        return now

    def update_start_time(self, session_id: int, moment: datetime) -> None:
        self._update(session_id, "start_time", moment)
        logger.info("Corrected start of session %s to %s", session_id, moment)

    def update_end_time(self, session_id: int, moment: datetime) -> None:
        self._update(session_id, "end_time", moment)
        logger.info("Corrected end of session %s to %s", session_id, moment)

    def _update(self, session_id: int, column: str, moment: datetime) -> None:
        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE work_sessions SET {column} = ? WHERE id = ?",
                (_to_db(moment), session_id),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Session {session_id} not found", session_id)
