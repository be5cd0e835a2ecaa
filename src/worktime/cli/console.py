"""Console rendering of command results."""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from worktime.core.clock import format_hours
from worktime.core.errors import DatabaseError
from worktime.models.command import CommandResult, SessionLogEntry

console = Console()
err_console = Console(stderr=True)


def session_table(entries: List[SessionLogEntry]) -> Table:
    """Build the table of recent sessions, newest first."""
    table = Table(title="Recent Sessions")
    table.add_column("Position", style="cyan", no_wrap=True, justify="right")
    table.add_column("Start", style="magenta", no_wrap=True)
    table.add_column("End", style="green", no_wrap=True)
    table.add_column("Duration", style="blue", justify="right")

    for entry in entries:
        session = entry.session
        start_time = session.start_time.strftime("%Y-%m-%d %H:%M:%S")
        if session.is_active:
            end_time = "🟢 Running"
        else:
            end_time = session.end_time.strftime("%Y-%m-%d %H:%M:%S")
        table.add_row(
            str(entry.position), start_time, end_time, format_hours(entry.elapsed)
        )

    return table


class ConsoleSink:
    """Prints command results; failures go to stderr."""

    def __init__(
        self,
        out: Optional[Console] = None,
        err: Optional[Console] = None,
        spacing: bool = False,
    ):
        self.out = out or console
        self.err = err or err_console
        # Interactive mode separates results from the next menu prompt
        self.spacing = spacing

    def print(self, result: CommandResult) -> None:
        title = escape(result.command.title)
        if result.ok and result.entries is not None:
            self.out.print(session_table(result.entries))
        elif result.ok:
            self.out.print(result.message, highlight=False, markup=False, soft_wrap=True)
        elif isinstance(result.error, DatabaseError):
            self.err.print(
                f"[red]{title} failed with: {escape(str(result.error))}[/red]",
                soft_wrap=True,
            )
        else:
            self.err.print(
                f"[yellow]{title} skipped due to: {escape(str(result.error))}[/yellow]",
                soft_wrap=True,
            )
        if self.spacing:
            self.out.print()
