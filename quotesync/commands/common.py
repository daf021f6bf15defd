from __future__ import annotations

from typing import Any

import typer
from rich import print
from rich.markup import escape

from quotesync.app import QuoteApp
from quotesync.config import load_config, read_config_file, write_config_file
from quotesync.errors import QuoteSyncError
from quotesync.store import Quote, SyncResult


def app_from_options(db_path: str | None) -> QuoteApp:
    config = load_config()
    if db_path:
        config.db_path = db_path
    try:
        return QuoteApp(config)
    except QuoteSyncError as exc:
        print(f"[red]Failed to open quote store: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def format_quote(quote: Quote) -> str:
    marker = "" if quote.sync_version else " [dim](local)[/dim]"
    return f'"{escape(quote.text)}" ({escape(quote.category)}){marker}'


def print_sync_result(result: SyncResult) -> None:
    if result.skipped:
        print("[yellow]Sync already in progress[/yellow]")
        return
    if not result.ok:
        print(f"[red]Sync failed: {escape(result.error or 'unknown error')}[/red]")
        return
    if result.changed:
        print(f"[green]Synced: {result.fetched} fetched, {len(result.conflicts)} conflicts[/green]")
    else:
        print("[green]Quotes are already up to date[/green]")
