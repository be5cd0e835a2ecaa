"""Main CLI interface for Worktime."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

import click
from rich.logging import RichHandler
from rich.markup import escape

from worktime.cli.console import ConsoleSink, console, err_console
from worktime.cli.prompt import PromptSource
from worktime.core.clock import Clock, SystemClock
from worktime.core.config import WorktimeConfig, load_config
from worktime.core.controller import SessionController
from worktime.core.errors import CommandError, ConfigError, LogicError
from worktime.core.store import SessionStore
from worktime.models.command import (
    Command,
    CommandResult,
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

logger = logging.getLogger(__name__)


def get_clock() -> Clock:
    """Time source for one CLI invocation."""
    return SystemClock()


class WorktimeApp:
    """Everything one CLI invocation shares: config, store and controller."""

    def __init__(self, config: WorktimeConfig, clock: Clock, interactive: bool):
        self.config = config
        self.clock = clock
        self.store = SessionStore(config.db_path, clock)
        self.controller = SessionController(self.store, clock)
        self.sink = ConsoleSink(spacing=interactive)

    def close(self) -> None:
        self.store.close(self.config.audit_timeout)


def configure_logging(log_file: Path, verbose: bool) -> None:
    """Send worktime logs to ``log_file`` and, if verbose, to stderr."""
    root = logging.getLogger("worktime")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG)
    root.propagate = False

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    file_handler.setLevel(logging.INFO)
    root.addHandler(file_handler)

    if verbose:
        root.addHandler(RichHandler(console=err_console, level=logging.DEBUG))


def run_sql_shell(shell: str, db_path: Path) -> str:
    """Open ``db_path`` in an external SQL shell attached to this terminal."""
    try:
        result = subprocess.run([shell, str(db_path)], check=False)  # noqa: S603
    except FileNotFoundError as e:
        raise LogicError(f"{shell} not found. Make sure it is installed.") from e
    if result.returncode != 0:
        raise LogicError(f"{shell} exited with code {result.returncode}")
    return f"Closed {shell} session on {db_path}"


def dispatch(ctx: click.Context, app: WorktimeApp, command: Command) -> CommandResult:
    """Execute any command, including the ones handled outside the controller."""
    logger.debug("Dispatching %s", command.title)
    if isinstance(command, HelpCommand):
        result = CommandResult(command=command, message=ctx.get_help())
        app.sink.print(result)
        return result
    if isinstance(command, SqlCommand):
        try:
            message = run_sql_shell(app.config.sql_shell, app.config.db_path)
            result = CommandResult(command=command, message=message)
        except CommandError as e:
            result = CommandResult(command=command, error=e)
        app.sink.print(result)
        return result
    if isinstance(command, QuitCommand):
        ctx.exit(0)
    if isinstance(
        command,
        (StatusCommand, StartCommand, StopCommand, ReportCommand, CorrectCommand, LogCommand),
    ):
        return app.controller.handle(command, app.sink)
    raise AssertionError(f"Unhandled command: {command!r}")


def _run_once(ctx: click.Context, command: Command) -> None:
    app: WorktimeApp = ctx.obj
    result = dispatch(ctx, app, command)
    if not result.ok:
        ctx.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(package_name="worktime")
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="WORKTIME_DB",
    help="Path to the session database",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a JSON configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def main(
    ctx: click.Context,
    db_path: Optional[Path],
    config_file: Optional[Path],
    verbose: bool,
):
    """Worktime - track work sessions and report worked hours.

    Run without a command to pick one from an interactive menu.
    """
    clock = get_clock()

    try:
        config = load_config(config_file)
    except ConfigError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]", soft_wrap=True)
        ctx.exit(1)
    if db_path is not None:
        config.db_path = db_path

    configure_logging(config.log_file, verbose)
    interactive = ctx.invoked_subcommand is None
    try:
        app = WorktimeApp(config, clock, interactive)
    except CommandError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]", soft_wrap=True)
        ctx.exit(1)
    ctx.obj = app
    ctx.call_on_close(app.close)

    if interactive:
        source = PromptSource(app.controller, console)
        while True:
            dispatch(ctx, app, source.next_command())


@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Show whether a session is running."""
    _run_once(ctx, StatusCommand())


@main.command()
@click.pass_context
def start(ctx: click.Context):
    """Start tracking time."""
    _run_once(ctx, StartCommand())


@main.command()
@click.pass_context
def stop(ctx: click.Context):
    """Stop tracking time."""
    _run_once(ctx, StopCommand())


@main.command()
@click.argument(
    "kind",
    type=click.Choice([k.value for k in ReportKind]),
    default=ReportKind.DAY.value,
)
@click.pass_context
def report(ctx: click.Context, kind: str):
    """Report total work time for the current day, week or month."""
    _run_once(ctx, ReportCommand(kind=ReportKind(kind)))


@main.command()
@click.argument("position", type=click.IntRange(min=0))
@click.argument("field", type=click.Choice([f.value for f in CorrectionField]))
@click.argument("hour", type=int)
@click.argument("minute", type=int)
@click.pass_context
def correct(ctx: click.Context, position: int, field: str, hour: int, minute: int):
    """Correct the start or end time of a recent session.

    POSITION counts back from the most recent session (0). The session keeps
    its date; only the time of day changes.
    """
    _run_once(
        ctx,
        CorrectCommand(
            position=position, field=CorrectionField(field), hour=hour, minute=minute
        ),
    )


@main.command()
@click.option("--limit", default=5, type=click.IntRange(min=1), help="Number of sessions to show")
@click.pass_context
def log(ctx: click.Context, limit: int):
    """List recent sessions with their correction positions."""
    _run_once(ctx, LogCommand(limit=limit))


@main.command()
@click.pass_context
def sql(ctx: click.Context):
    """Open the session database in the sqlite3 shell."""
    _run_once(ctx, SqlCommand())


if __name__ == "__main__":
    main()
