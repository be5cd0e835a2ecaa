"""Command-line interface for Worktime."""
