"""Consistency audit over every stored session.

The audit never repairs anything. A violation means stored state has drifted
in a way a user command cannot explain, so the default reaction is to
terminate the process.
"""

import logging
import os
import threading
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape

from worktime.core.clock import Clock
from worktime.core.errors import CommandError, CorruptionError
from worktime.models.session import Session

logger = logging.getLogger(__name__)

EXIT_CORRUPTION = 70

CorruptionHandler = Callable[[CorruptionError], None]


def check_sessions(sessions: Iterable[Session], now: datetime) -> None:
    """Raise ``CorruptionError`` on the first invariant violation.

    Sessions are checked in ``start_time`` order rather than id order, since
    corrections may move a session's wall-clock times. A running session
    counts as ending at ``now``.
    """
    ordered = sorted(sessions, key=lambda s: (s.start_time, s.id))

    open_ids = [s.id for s in ordered if s.is_active]
    if len(open_ids) > 1:
        raise CorruptionError(
            f"Found {len(open_ids)} open sessions: {open_ids}", open_ids[-1]
        )

    previous: Optional[Session] = None
    for session in ordered:
        if session.end_time is not None and session.end_time < session.start_time:
            raise CorruptionError(
                f"Session {session.id} ends at {session.end_time} "
                f"before it starts at {session.start_time}",
                session.id,
            )
        if previous is not None:
            previous_end = previous.effective_end(now)
            if session.start_time < previous_end:
                raise CorruptionError(
                    f"Session {session.id} starts at {session.start_time} "
                    f"before session {previous.id} ends at {previous_end}",
                    session.id,
                )
        previous = session


def abort_process(error: CorruptionError) -> None:
    """Report corruption and terminate the whole process immediately."""
    logger.critical("Session store corrupted: %s", error)
    Console(stderr=True).print(
        f"[bold red]Session store corrupted: {escape(str(error))}[/bold red]",
        soft_wrap=True,
    )
    os._exit(EXIT_CORRUPTION)


class ConsistencyAudit:
    """Runs ``check_sessions`` once on a background thread.

    Corruption is handed to ``on_corruption`` (``abort_process`` unless a
    caller injects another handler). A store read failure is only logged;
    it says nothing about the stored data.
    """

    def __init__(
        self,
        load_sessions: Callable[[], List[Session]],
        clock: Clock,
        on_corruption: Optional[CorruptionHandler] = None,
    ):
        self.load_sessions = load_sessions
        self.clock = clock
        self.on_corruption = on_corruption or abort_process
        self.error: Optional[Exception] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="worktime-audit", daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the audit; return True once it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        logger.debug("Consistency audit started")
        try:
            sessions = self.load_sessions()
            check_sessions(sessions, self.clock.get_now())
        except CorruptionError as e:
            self.error = e
            self.on_corruption(e)
            return
        except CommandError as e:
            self.error = e
            logger.warning("Consistency audit could not read sessions: %s", e)
            return
        logger.debug("Consistency audit passed for %d sessions", len(sessions))
