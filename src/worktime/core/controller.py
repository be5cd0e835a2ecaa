"""Session lifecycle: start, stop, status, report and corrections."""

import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from worktime.core.clock import (
    Clock,
    aggregate_session_times,
    display_time,
    format_hours,
    get_today,
    reference_date,
)
from worktime.core.errors import CommandError, LogicError, NotFoundError
from worktime.core.store import SessionStore
from worktime.models.command import (
    Command,
    CommandResult,
    CorrectCommand,
    CorrectionField,
    LogCommand,
    ReportCommand,
    ReportKind,
    SessionLogEntry,
    StartCommand,
    StatusCommand,
    StopCommand,
)
from worktime.models.session import Session

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Tracking state derived from the most recent session."""

    IDLE = "idle"
    RUNNING = "running"


class ResultSink(Protocol):
    """Receives the outcome of every executed command."""

    def print(self, result: CommandResult) -> None:
        ...


def _format_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")


class SessionController:
    """Applies commands to a ``SessionStore``.

    Errors from the store are never recovered from here; a ``CommandError``
    reaches the caller unchanged and a ``CorruptionError`` is not caught at all.
    """

    def __init__(self, store: SessionStore, clock: Clock):
        self.store = store
        self.clock = clock

    def state(self) -> SessionState:
        last = self.store.get_last_session()
        if last is not None and last.is_active:
            return SessionState.RUNNING
        return SessionState.IDLE

    def handle(self, command: Command, sink: ResultSink) -> CommandResult:
        """Execute ``command`` and hand its outcome to ``sink``."""
        try:
            result = self.execute(command)
        except CommandError as e:
            logger.debug("%s failed: %s", command.title, e)
            result = CommandResult(command=command, error=e)
        sink.print(result)
        return result

    def execute(self, command: Command) -> CommandResult:
        if isinstance(command, LogCommand):
            return CommandResult(command=command, entries=self.log(command.limit))
        if isinstance(command, StatusCommand):
            message = self.status()
        elif isinstance(command, StartCommand):
            message = self.start()
        elif isinstance(command, StopCommand):
            message = self.stop()
        elif isinstance(command, ReportCommand):
            message = self.report(command.kind)
        elif isinstance(command, CorrectCommand):
            message = self.correct(
                command.position, command.field, command.hour, command.minute
            )
        else:
            raise AssertionError(f"Command not handled by the controller: {command!r}")
        return CommandResult(command=command, message=message)

    def status(self) -> str:
        last = self.store.get_last_session()
        if last is None:
            raise LogicError("No previous sessions")
        if last.is_active:
            return f"Running since {display_time(last.start_time)}"
        return "Not running"

    def start(self) -> str:
        now = self.store.insert_start(self.clock.get_now())
        return f"Started at {display_time(now)}"

    def stop(self) -> str:
        last = self.store.get_last_session()
        if last is None:
            raise LogicError("No previous sessions")
        if not last.is_active:
            raise LogicError("No session started")
        now = self.store.insert_stop(last.id, self.clock.get_now())
        return f"Stopped at {display_time(now)}"

    def report(self, kind: ReportKind) -> str:
        """Total hours worked since the start of the ``kind`` period."""
        since = reference_date(kind, get_today(self.clock))
        sessions = self.store.get_sessions_since(since)
        return format_hours(aggregate_session_times(sessions, self.clock.get_now()))

    def session_at(self, position: int) -> Session:
        """Resolve a recency position (0 = most recent) to a session."""
        if position < 0:
            raise LogicError(f"Invalid position {position}")
        sessions = self.store.get_last_n_sessions(position + 1)
        if len(sessions) <= position:
            raise NotFoundError(f"No session at position {position}")
        return sessions[position]

    def correct(
        self, position: int, field: CorrectionField, hour: int, minute: int
    ) -> str:
        """Replace the time-of-day of a session's start or end, keeping its date.

        The corrected interval is not validated against its neighbours; an
        inverted or overlapping result is stored as given and only logged.
        """
        session = self.session_at(position)
        if field is CorrectionField.START:
            base = session.start_time
        else:
            base = session.end_time or session.start_time
        try:
            moment = base.replace(hour=hour, minute=minute, second=0, microsecond=0)
        except ValueError as e:
            raise LogicError(f"Invalid time {hour:02d}:{minute:02d}") from e

        if field is CorrectionField.START:
            self.store.update_start_time(session.id, moment)
            corrected = session.model_copy(update={"start_time": moment})
        else:
            self.store.update_end_time(session.id, moment)
            corrected = session.model_copy(update={"end_time": moment})

        if corrected.end_time is not None and corrected.end_time < corrected.start_time:
            logger.warning("Session %s now ends before it starts", session.id)
        return f"Corrected {field.value} of session {session.id} to {_format_timestamp(moment)}"

    def correction_bounds(
        self, position: int, field: CorrectionField
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Earliest and latest times that keep the corrected session valid."""
        sessions = self.store.get_last_n_sessions(position + 2)
        if len(sessions) <= position:
            raise NotFoundError(f"No session at position {position}")
        session = sessions[position]
        older = sessions[position + 1] if len(sessions) > position + 1 else None
        newer = sessions[position - 1] if position > 0 else None

        if field is CorrectionField.START:
            lower = older.end_time if older else None
            upper = session.effective_end(self.clock.get_now())
        else:
            lower = session.start_time
            upper = newer.start_time if newer else self.clock.get_now()
        return lower, upper

    def recent_sessions(self, limit: int) -> List[Session]:
        return self.store.get_last_n_sessions(limit)

    def log(self, limit: int) -> List[SessionLogEntry]:
        """Recent sessions with their correction positions, newest first."""
        sessions = self.recent_sessions(limit)
        if not sessions:
            raise LogicError("No previous sessions")
        now = self.clock.get_now()
        return [
            SessionLogEntry(position=position, session=session, elapsed=session.elapsed(now))
            for position, session in enumerate(sessions)
        ]
