"""Command models passed from a command source to the session controller."""

from enum import Enum
from datetime import timedelta
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from worktime.models.session import Session


class ReportKind(str, Enum):
    """Reference period of a report."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class CorrectionField(str, Enum):
    """Which timestamp of a session a correction overwrites."""

    START = "start"
    END = "end"


class _BaseCommand(BaseModel):
    model_config = {"frozen": True}

    @property
    def title(self) -> str:
        return self.name.capitalize()


class StatusCommand(_BaseCommand):
    """Report whether a session is running."""

    name: Literal["status"] = "status"


class StartCommand(_BaseCommand):
    """Start tracking time."""

    name: Literal["start"] = "start"


class StopCommand(_BaseCommand):
    """Stop tracking time."""

    name: Literal["stop"] = "stop"


class ReportCommand(_BaseCommand):
    """Report total work time for a period."""

    name: Literal["report"] = "report"
    kind: ReportKind = ReportKind.DAY

    @property
    def title(self) -> str:
        return f"Report({self.kind.value})"


class CorrectCommand(_BaseCommand):
    """Overwrite the start or end time-of-day of a recent session."""

    name: Literal["correct"] = "correct"
    position: int = Field(ge=0)
    field: CorrectionField
    hour: int
    minute: int


class LogCommand(_BaseCommand):
    """List the most recent sessions."""

    name: Literal["log"] = "log"
    limit: int = Field(default=5, ge=1)


class SqlCommand(_BaseCommand):
    """Open the database in an external SQL shell."""

    name: Literal["sql"] = "sql"


class HelpCommand(_BaseCommand):
    """Print usage help."""

    name: Literal["help"] = "help"


class QuitCommand(_BaseCommand):
    """Leave the interactive menu."""

    name: Literal["quit"] = "quit"


Command = Annotated[
    Union[
        StatusCommand,
        StartCommand,
        StopCommand,
        ReportCommand,
        CorrectCommand,
        LogCommand,
        SqlCommand,
        HelpCommand,
        QuitCommand,
    ],
    Field(discriminator="name"),
]


class SessionLogEntry(BaseModel):
    """A recent session with its correction position."""

    position: int
    session: Session
    elapsed: timedelta

    model_config = {"frozen": True}


class CommandResult(BaseModel):
    """Outcome of one executed command.

    Holds a message, the listed sessions of a ``log`` command, or the command
    error that stopped it.
    """

    command: Command
    message: Optional[str] = None
    entries: Optional[List[SessionLogEntry]] = None
    error: Optional[Exception] = None

    model_config = {"arbitrary_types_allowed": True}

    @property
    def ok(self) -> bool:
        return self.error is None
