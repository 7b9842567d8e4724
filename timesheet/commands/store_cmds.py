from __future__ import annotations

import json
from dataclasses import asdict

import typer
from rich import print

from timesheet.config import (
    CONFIG_ENV_OVERRIDES,
    INT_CONFIG_KEYS,
    TimesheetConfig,
    get_config_path,
)
from timesheet.sync import LocalFallbackCache, RemoteDocumentClient, RemoteOperationFailed
from timesheet.sync.migration import migrate_local_to_remote, snapshot_remote_to_local

from .common import read_config_or_exit, write_config_or_exit


def _client_or_exit(config: TimesheetConfig) -> RemoteDocumentClient:
    try:
        return RemoteDocumentClient.from_config(config)
    except ValueError as exc:
        print(f"[red]Remote store not configured: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def snapshot_cmd(config: TimesheetConfig) -> None:
    """Copy the remote entries and timer into the local fallback."""

    client = _client_or_exit(config)
    fallback = LocalFallbackCache(config.fallback_dir)
    try:
        count = snapshot_remote_to_local(client, fallback)
    except RemoteOperationFailed as exc:
        print(f"[red]Remote read failed: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    print(f"Saved {count} entries to {fallback.directory}")


def migrate_local_cmd(config: TimesheetConfig) -> None:
    client = _client_or_exit(config)
    fallback = LocalFallbackCache(config.fallback_dir)
    try:
        result = migrate_local_to_remote(client, fallback)
    except RemoteOperationFailed as exc:
        print(f"[red]Migration failed: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    if result["reason"] == "local_empty":
        print("Nothing to migrate: local fallback is empty")
    elif result["reason"] == "remote_not_empty":
        print("[yellow]Remote already has entries; migration skipped.[/yellow]")
    else:
        print(f"Migrated {result['migrated']} entries")


def config_show_cmd(config: TimesheetConfig) -> None:
    data = asdict(config)
    if data.get("master_key"):
        data["master_key"] = "***"
    data["passwords"] = {name: "***" for name in data.get("passwords") or {}}
    print(f"Config: {get_config_path()}")
    print(json.dumps(data, indent=2, ensure_ascii=False))


def config_set_cmd(key: str, value: str) -> None:
    """Write one setting to the config file; an empty value removes it."""

    data = read_config_or_exit()
    value = value.strip()
    if key.startswith("passwords."):
        name = key.split(".", 1)[1].strip()
        if not name:
            print("[red]passwords.<designer> needs a designer name[/red]")
            raise typer.Exit(code=1)
        passwords = data.get("passwords") if isinstance(data.get("passwords"), dict) else {}
        if value:
            passwords[name] = value
        else:
            passwords.pop(name, None)
        data["passwords"] = passwords
    elif key not in CONFIG_ENV_OVERRIDES:
        print(f"[red]Unknown setting: {key}[/red]")
        raise typer.Exit(code=1)
    elif not value:
        data.pop(key, None)
    elif key in INT_CONFIG_KEYS:
        try:
            number = int(value)
        except ValueError as exc:
            print(f"[red]{key} must be int[/red]")
            raise typer.Exit(code=1) from exc
        if number < 0:
            print(f"[red]{key} must not be negative[/red]")
            raise typer.Exit(code=1)
        data[key] = number
    elif key == "designers":
        data[key] = [name.strip() for name in value.split(",") if name.strip()]
    else:
        data[key] = value
    write_config_or_exit(data)
    if not value:
        shown = "(removed)"
    elif key == "master_key" or key.startswith("passwords."):
        shown = "***"
    else:
        shown = value
    print(f"Set {key} = {shown} in {get_config_path()}")
