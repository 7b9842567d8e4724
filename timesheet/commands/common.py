from __future__ import annotations

import contextlib
from collections.abc import Iterator

import typer
from rich import print
from rich.markup import escape

from timesheet.config import TimesheetConfig, load_config, read_config_file, write_config_file
from timesheet.model import TimeEntry
from timesheet.sync import SyncController
from timesheet.utils import format_duration, format_ms


def load_config_or_exit() -> TimesheetConfig:
    read_config_or_exit()
    return load_config()


def read_config_or_exit() -> dict:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def open_controller(config: TimesheetConfig) -> SyncController:
    return SyncController.from_config(config)


def controller_or_exit(config: TimesheetConfig) -> SyncController:
    try:
        controller = open_controller(config)
    except ValueError as exc:
        print(f"[red]Remote store not configured: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    source = controller.load()
    if source == "fallback":
        print("[yellow]Remote unreachable; showing local snapshot.[/yellow]")
    return controller


def finish(controller: SyncController, *, timeout: float = 30.0) -> None:
    persisted = controller.flush(timeout)
    controller.close(timeout)
    if not persisted:
        print("[yellow]Change kept locally but not saved remotely (see log).[/yellow]")


@contextlib.contextmanager
def exit_on_local_error() -> Iterator[None]:
    try:
        yield
    except KeyError as exc:
        message = exc.args[0] if exc.args else exc
        print(f"[red]{message}[/red]")
        raise typer.Exit(code=1) from exc
    except (ValueError, PermissionError, RuntimeError) as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


def format_entry(entry: TimeEntry) -> str:
    tags = " ".join(f"#{escape(tag)}" for tag in entry.tags)
    line = (
        f"{entry.id[:8]} {escape(entry.designer)} \\[{entry.priority}/{entry.status}] "
        f"{format_ms(entry.start_ms)} {format_duration(entry.duration_ms)} {escape(entry.task)}"
    )
    if tags:
        line = f"{line} {tags}"
    if entry.thread:
        line = f"{line} ({len(entry.thread)} comments)"
    return line


def resolve_entry_id(controller: SyncController, prefix: str) -> str:
    """Accept a full entry id or an unambiguous prefix as printed by `entries`."""

    prefix = prefix.strip()
    matches = [entry.id for entry in controller.document.entries if entry.id.startswith(prefix)]
    if prefix in matches:
        return prefix
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise KeyError(f"unknown entry: {prefix}")
    raise ValueError(f"ambiguous entry id: {prefix}")
