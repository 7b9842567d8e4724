from __future__ import annotations

import typer
from rich import print

from . import __version__
from .commands import common
from .commands.chat_cmds import chat_send_cmd, chat_watch_cmd
from .commands.entry_cmds import (
    cycle_cmd,
    edit_cmd,
    entries_cmd,
    log_cmd,
    status_cmd,
    thread_cmd,
    timer_start_cmd,
    timer_stop_cmd,
)
from .commands.store_cmds import (
    config_set_cmd,
    config_show_cmd,
    migrate_local_cmd,
    snapshot_cmd,
)
from .logs import configure_logging
from .model import DEFAULT_PRIORITY, DEFAULT_STATUS

app = typer.Typer(help="timesheet: shared work log synced through a remote JSON document")
timer_app = typer.Typer(help="Start and stop the live timer")
chat_app = typer.Typer(help="Team chat stored alongside the timesheet")
config_app = typer.Typer(help="Inspect and edit configuration")
app.add_typer(timer_app, name="timer")
app.add_typer(chat_app, name="chat")
app.add_typer(config_app, name="config")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    config = common.load_config_or_exit()
    configure_logging(config.log_path, verbose=verbose)


@app.command()
def status() -> None:
    """Show where the document was loaded from and what it holds."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        status_cmd(controller)
    finally:
        common.finish(controller)


@app.command()
def entries(
    designer: str = typer.Option(None, help="Only entries by this designer"),
    priority: str = typer.Option(None, help="Low, Medium or High"),
    status: str = typer.Option(None, help="To Do, In Progress or Done"),
    search: str = typer.Option(None, "--search", "-s", help="Match task, comments or tags"),
    week: str = typer.Option(None, help="ISO week, e.g. 2025-W40"),
    limit: int = typer.Option(50, help="Maximum entries to print"),
) -> None:
    """List entries, newest first."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        entries_cmd(
            controller,
            designer=designer,
            priority=priority,
            status=status,
            search=search,
            limit=limit,
            week=week,
        )
    finally:
        common.finish(controller)


@app.command("log")
def log_entry(
    designer: str = typer.Argument(..., help="Designer name"),
    task: str = typer.Argument(..., help="What was worked on"),
    date: str = typer.Option(None, help="Day of the session (YYYY-MM-DD)"),
    start: str = typer.Option(None, help="Start time (HH:MM)"),
    end: str = typer.Option(None, help="End time (HH:MM)"),
    priority: str = typer.Option(DEFAULT_PRIORITY, help="Low, Medium or High"),
    status: str = typer.Option(DEFAULT_STATUS, help="To Do, In Progress or Done"),
    tags: str = typer.Option(None, help="Comma-separated tags"),
    comments: str = typer.Option("", help="Free-text comments"),
) -> None:
    """Record a finished work session."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        log_cmd(
            controller,
            designer=designer,
            task=task,
            date=date,
            start=start,
            end=end,
            priority=priority,
            status=status,
            tags=tags,
            comments=comments,
        )
    finally:
        common.finish(controller)


@app.command()
def edit(
    entry_id: str = typer.Argument(..., help="Entry id or unique prefix"),
    task: str = typer.Option(None, help="New task text"),
    tags: str = typer.Option(None, help="Replace tags (comma-separated)"),
) -> None:
    """Edit an entry's task text or tags."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        edit_cmd(controller, entry_id=entry_id, task=task, tags=tags)
    finally:
        common.finish(controller)


@app.command()
def cycle(
    entry_id: str = typer.Argument(..., help="Entry id or unique prefix"),
    field: str = typer.Argument(..., help="priority or status"),
) -> None:
    """Advance an entry's priority or status to the next value."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        cycle_cmd(controller, entry_id=entry_id, field=field)
    finally:
        common.finish(controller)


@app.command()
def thread(
    entry_id: str = typer.Argument(..., help="Entry id or unique prefix"),
    text: str = typer.Argument(None, help="Comment to add"),
    designer: str = typer.Option(None, "--as", help="Comment author"),
) -> None:
    """Show or add to an entry's discussion thread."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        thread_cmd(controller, entry_id=entry_id, text=text, designer=designer)
    finally:
        common.finish(controller)


@timer_app.command("start")
def timer_start(
    designer: str = typer.Argument(..., help="Designer name"),
    task: str = typer.Argument(..., help="What is being worked on"),
) -> None:
    """Start the shared timer."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        timer_start_cmd(controller, designer=designer, task=task)
    finally:
        common.finish(controller)


@timer_app.command("stop")
def timer_stop() -> None:
    """Stop the timer and record it as an entry."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        timer_stop_cmd(controller)
    finally:
        common.finish(controller)


@chat_app.command("send")
def chat_send(
    text: str = typer.Argument(..., help="Message text"),
    user: str = typer.Option(..., "--user", "-u", help="Designer name"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    """Post a chat message."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        chat_send_cmd(controller, user=user, password=password, text=text)
    finally:
        common.finish(controller)


@chat_app.command("watch")
def chat_watch(
    user: str = typer.Option(..., "--user", "-u", help="Designer name"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    limit: int = typer.Option(20, help="Messages of history to print first"),
    duration: float = typer.Option(0.0, help="Stop after N seconds (0 = until Ctrl-C)"),
) -> None:
    """Follow the chat stream."""

    controller = common.controller_or_exit(common.load_config_or_exit())
    try:
        chat_watch_cmd(controller, user=user, password=password, limit=limit, duration=duration)
    finally:
        common.finish(controller)


@app.command()
def snapshot() -> None:
    """Refresh the local fallback copy from the remote document."""

    snapshot_cmd(common.load_config_or_exit())


@app.command("migrate-local")
def migrate_local() -> None:
    """Push the local fallback into an empty remote document (one-shot)."""

    migrate_local_cmd(common.load_config_or_exit())


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration with secrets masked."""

    config_show_cmd(common.load_config_or_exit())


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name, or passwords.<designer>"),
    value: str = typer.Argument(..., help="New value (empty string removes it)"),
) -> None:
    """Write a setting to the config file."""

    config_set_cmd(key, value)


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
