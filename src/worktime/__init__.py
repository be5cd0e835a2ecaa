"""Worktime - track work sessions and report worked hours."""

__version__ = "0.1.0"
