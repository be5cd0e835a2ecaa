"""Data models for Worktime."""

from .command import (
    Command,
    CommandResult,
    CorrectCommand,
    CorrectionField,
    HelpCommand,
    LogCommand,
    QuitCommand,
    ReportCommand,
    ReportKind,
    SessionLogEntry,
    SqlCommand,
    StartCommand,
    StatusCommand,
    StopCommand,
)
from .session import Session

__all__ = [
    "Command",
    "CommandResult",
    "CorrectCommand",
    "CorrectionField",
    "HelpCommand",
    "LogCommand",
    "QuitCommand",
    "ReportCommand",
    "ReportKind",
    "Session",
    "SessionLogEntry",
    "SqlCommand",
    "StartCommand",
    "StatusCommand",
    "StopCommand",
]
