from __future__ import annotations

import json

import typer
from rich import print
from rich.markup import escape

from quotesync.commands.common import print_sync_result


def sync_once_cmd(*, app_from_options, db_path: str | None, show_conflicts: bool) -> None:
    """Run a single sync cycle against the remote source."""

    app = app_from_options(db_path)
    try:
        result = app.on_manual_sync_requested()
        print_sync_result(result)
        if result.push_error:
            print(f"[yellow]Push failed: {escape(result.push_error)}[/yellow]")
        if show_conflicts and result.conflicts:
            print("[bold]Conflicts (server value kept)[/bold]")
            for conflict in result.conflicts:
                print(
                    f"- {conflict.server.id}: server={escape(conflict.server.text)!r} "
                    f"local={escape(conflict.local.text)!r}"
                )
        if not result.ok:
            raise typer.Exit(code=1)
    finally:
        app.close()


def sync_daemon_cmd(
    *,
    app_from_options,
    run_sync_daemon,
    load_config,
    db_path: str | None,
    interval_s: int | None,
) -> None:
    """Run the sync loop in the foreground."""

    config = load_config()
    if not config.sync_enabled:
        print("[yellow]Sync is disabled (set sync_enabled in the config).[/yellow]")
        raise typer.Exit(code=1)
    app = app_from_options(db_path)
    try:
        run_sync_daemon(
            app.engine,
            interval_s=interval_s or config.sync_interval_s,
            on_result=print_sync_result,
        )
    except KeyboardInterrupt:
        print("[yellow]Sync daemon stopped[/yellow]")
    finally:
        app.close()


def status_cmd(*, app_from_options, db_path: str | None, as_json: bool) -> None:
    """Show collection size, session filter and last sync time."""

    app = app_from_options(db_path)
    try:
        last_sync = app.store.load_session_value("last_sync_at")
        payload = {
            "quotes": len(app.current_collection()),
            "local_only": len(app.repository.local_only()),
            "categories": app.categories(),
            "active_filter": app.active_filter,
            "last_sync_at": last_sync,
        }
        if as_json:
            typer.echo(json.dumps(payload, indent=2))
            return
        print(f"- Quotes: {payload['quotes']} ({payload['local_only']} local only)")
        print(f"- Categories: {escape(', '.join(payload['categories']))}")
        print(f"- Active filter: {escape(app.active_filter or 'none')}")
        print(f"- Last sync: {last_sync or 'never'}")
    finally:
        app.close()
