"""Worktime error types.

``CommandError`` subclasses are recoverable: the command that raised them did
not succeed, and the program keeps running. ``CorruptionError`` is not one of
them; it signals that stored sessions violate their invariants and must
terminate the process.
"""

from typing import Optional


class CommandError(Exception):
    """A command failed without damaging stored state."""


class LogicError(CommandError):
    """The command is not valid in the current state."""


class NotFoundError(LogicError):
    def __init__(self, message: str, session_id: Optional[int] = None):
        super().__init__(message)
        self.session_id = session_id


class DatabaseError(CommandError):
    """The session store failed to read or write."""


class ConfigError(Exception):
    """The configuration file could not be loaded."""


class CorruptionError(Exception):
    """Stored sessions are inconsistent. Never handled as a command error."""

    def __init__(self, message: str, session_id: Optional[int] = None):
        super().__init__(message)
        self.session_id = session_id
