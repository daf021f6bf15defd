from __future__ import annotations

import sys
from pathlib import Path

import typer
from rich import print
from rich.markup import escape

from quotesync.errors import QuoteSyncError, ValidationError


def export_quotes_cmd(*, app_from_options, db_path: str | None, output: str) -> None:
    """Export every quote to a JSON file."""

    app = app_from_options(db_path)
    try:
        data = app.serialize_all()
        count = len(app.current_collection())
    finally:
        app.close()
    if output == "-":
        sys.stdout.write(data.decode("utf-8"))
        return
    output_path = Path(output).expanduser()
    output_path.write_bytes(data)
    print(f"[green]✓ Exported {count} quotes to {output_path}[/green]")


def import_quotes_cmd(
    *, app_from_options, db_path: str | None, input_file: str, sync: bool
) -> None:
    """Import quotes from an exported JSON file."""

    if input_file == "-":
        raw = sys.stdin.read().encode("utf-8")
    else:
        input_path = Path(input_file).expanduser()
        if not input_path.exists():
            print(f"[red]Input file not found: {input_path}[/red]")
            raise typer.Exit(code=1)
        raw = input_path.read_bytes()

    app = app_from_options(db_path)
    try:
        try:
            count = app.import_bytes(raw)
        except ValidationError as exc:
            print(f"[red]Import rejected: {escape(str(exc))}[/red]")
            raise typer.Exit(code=1) from exc
        except QuoteSyncError as exc:
            print(f"[red]Import failed: {escape(str(exc))}[/red]")
            raise typer.Exit(code=1) from exc
        print(f"[green]✓ Imported {count} quotes[/green]")
        if sync:
            result = app.on_manual_sync_requested()
            if not result.ok and not result.skipped:
                print(f"[yellow]Sync failed: {escape(result.error or 'unknown error')}[/yellow]")
    finally:
        app.close()
