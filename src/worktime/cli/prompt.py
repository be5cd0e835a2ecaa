"""Interactive menu used when worktime runs without a subcommand."""

from typing import Protocol

import click
from rich.console import Console
from rich.markup import escape

from worktime.cli.console import session_table
from worktime.core.controller import SessionController
from worktime.core.errors import CommandError
from worktime.models.command import (
    Command,
    CorrectCommand,
    CorrectionField,
    HelpCommand,
    LogCommand,
    QuitCommand,
    ReportCommand,
    ReportKind,
    SqlCommand,
    StartCommand,
    StatusCommand,
    StopCommand,
)

MENU = {
    "status": StatusCommand,
    "start": StartCommand,
    "stop": StopCommand,
    "report": ReportCommand,
    "log": LogCommand,
    "correct": CorrectCommand,
    "sql": SqlCommand,
    "help": HelpCommand,
    "quit": QuitCommand,
}

RECENT_SESSIONS_SHOWN = 5


class CommandSource(Protocol):
    """Supplies the next command to execute."""

    def next_command(self) -> Command:
        ...


class PromptSource:
    """Asks the user for commands with ``click`` prompts."""

    def __init__(self, controller: SessionController, console: Console):
        self.controller = controller
        self.console = console

    def next_command(self) -> Command:
        state = self.controller.state().value
        choice = click.prompt(
            f"What do you want? ({state})",
            type=click.Choice(list(MENU)),
            default="status",
            show_choices=True,
        )
        if choice == "report":
            return self.prompt_report()
        if choice == "correct":
            return self.prompt_correction()
        return MENU[choice]()

    def prompt_report(self) -> ReportCommand:
        kind = click.prompt(
            "Which report?",
            type=click.Choice([k.value for k in ReportKind]),
            default=ReportKind.DAY.value,
            show_choices=True,
        )
        return ReportCommand(kind=ReportKind(kind))

    def prompt_correction(self) -> Command:
        """Walk the user through a correction, showing the valid range."""
        try:
            self.console.print(session_table(self.controller.log(RECENT_SESSIONS_SHOWN)))
        except CommandError as e:
            self.console.print(f"[yellow]Nothing to correct: {escape(str(e))}[/yellow]")
            return StatusCommand()

        position = click.prompt("Session position", type=click.IntRange(min=0), default=0)
        field = click.prompt(
            "Which time?",
            type=click.Choice([f.value for f in CorrectionField]),
            default=CorrectionField.START.value,
            show_choices=True,
        )
        field = CorrectionField(field)
        try:
            lower, upper = self.controller.correction_bounds(position, field)
        except CommandError as e:
            self.console.print(f"[yellow]{escape(str(e))}[/yellow]")
            return StatusCommand()

        earliest = lower.strftime("%Y-%m-%d %H:%M") if lower else "any time"
        latest = upper.strftime("%Y-%m-%d %H:%M") if upper else "any time"
        self.console.print(f"Keep the {field.value} between {earliest} and {latest}")

        hour = click.prompt("Hour", type=click.IntRange(0, 23))
        minute = click.prompt("Minute", type=click.IntRange(0, 59), default=0)
        return CorrectCommand(position=position, field=field, hour=hour, minute=minute)
