from __future__ import annotations

import threading

import typer
from rich import print
from rich.markup import escape

from timesheet.model import ChatMessage
from timesheet.sync import SyncController
from timesheet.utils import format_ms

from .common import exit_on_local_error


def _format_message(message: ChatMessage, me: str | None) -> str:
    name = escape(message.designer)
    who = f"[green]{name}[/green]" if message.designer == me else name
    return f"{format_ms(message.ts)} {who}: {escape(message.text)}"


def _login_or_exit(controller: SyncController, user: str, password: str) -> None:
    if not controller.login(user, password):
        print("[red]Incorrect name or password.[/red]")
        raise typer.Exit(code=1)


def chat_send_cmd(controller: SyncController, *, user: str, password: str, text: str) -> None:
    _login_or_exit(controller, user, password)
    with exit_on_local_error():
        message = controller.post_chat_message(text)
    controller.logout()
    print(_format_message(message, user))


def chat_watch_cmd(
    controller: SyncController, *, user: str, password: str, limit: int, duration: float
) -> None:
    """Print recent chat, then follow new messages until interrupted."""

    _login_or_exit(controller, user, password)
    shown = 0

    def _print_new(reason: str) -> None:
        nonlocal shown
        if reason != "chat":
            return
        messages = sorted(controller.snapshot().chat_messages, key=lambda m: m.ts)
        # The poller replaces the whole list; print only what was not shown yet.
        for message in messages[shown:]:
            print(_format_message(message, user))
        shown = len(messages)

    backlog = sorted(controller.snapshot().chat_messages, key=lambda m: m.ts)
    for message in backlog[-limit:]:
        print(_format_message(message, user))
    shown = len(backlog)
    unsubscribe = controller.subscribe(_print_new)
    stop = threading.Event()
    try:
        stop.wait(duration if duration > 0 else None)
    except KeyboardInterrupt:
        pass
    finally:
        unsubscribe()
        controller.logout()
