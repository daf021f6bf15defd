from __future__ import annotations

import json

import typer
from rich import print

from . import __version__
from .commands.common import app_from_options, read_config_or_exit, write_config_or_exit
from .commands.import_export_cmds import export_quotes_cmd, import_quotes_cmd
from .commands.quote_cmds import (
    add_quote_cmd,
    categories_cmd,
    filter_cmd,
    list_quotes_cmd,
    random_quote_cmd,
    reset_cmd,
)
from .commands.session_cmds import session_end_cmd, session_show_cmd
from .commands.sync_cmds import status_cmd, sync_daemon_cmd, sync_once_cmd
from .config import CONFIG_ENV_OVERRIDES, get_config_path, load_config
from .sync.daemon import run_sync_daemon

app = typer.Typer(help="quotesync: a quote collection kept in sync with a remote source")
sync_app = typer.Typer(help="Reconcile quotes with the remote source")
config_app = typer.Typer(help="Inspect and edit configuration")
session_app = typer.Typer(help="Inspect or end the current session")
app.add_typer(sync_app, name="sync")
app.add_typer(config_app, name="config")
app.add_typer(session_app, name="session")


def _app(db_path: str | None):
    return app_from_options(db_path)


@app.command()
def version() -> None:
    """Print the installed version."""

    print(__version__)


@app.command("add")
def add(
    text: str = typer.Argument(..., help="Quote text"),
    category: str = typer.Argument(..., help="Quote category"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
    sync: bool = typer.Option(False, help="Sync with the remote source after adding"),
) -> None:
    """Add a quote."""

    add_quote_cmd(app_from_options=_app, db_path=db_path, text=text, category=category, sync=sync)


@app.command("random")
def random_quote(
    category: str = typer.Option(None, help="Category filter (saved for this session)"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Show a random quote."""

    random_quote_cmd(app_from_options=_app, db_path=db_path, category=category)


@app.command("list")
def list_quotes(
    category: str = typer.Option(None, help="Only show this category"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """List stored quotes."""

    list_quotes_cmd(app_from_options=_app, db_path=db_path, category=category)


@app.command("categories")
def categories(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """List quote categories."""

    categories_cmd(app_from_options=_app, db_path=db_path)


@app.command("filter")
def set_filter(
    category: str = typer.Argument(None, help="Category to filter by"),
    clear: bool = typer.Option(False, "--clear", help="Clear the session filter"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Set or clear the session category filter."""

    filter_cmd(app_from_options=_app, db_path=db_path, category=category, clear=clear)


@app.command("export")
def export_quotes(
    output: str = typer.Argument("-", help="Output file (- for stdout)"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Export quotes to JSON."""

    export_quotes_cmd(app_from_options=_app, db_path=db_path, output=output)


@app.command("import")
def import_quotes(
    input_file: str = typer.Argument(..., help="JSON file to import (- for stdin)"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
    sync: bool = typer.Option(False, help="Sync with the remote source after importing"),
) -> None:
    """Import quotes from JSON."""

    import_quotes_cmd(app_from_options=_app, db_path=db_path, input_file=input_file, sync=sync)


@app.command("reset")
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Delete every stored quote."""

    reset_cmd(app_from_options=_app, db_path=db_path, yes=yes)


@app.command("status")
def status(
    db_path: str = typer.Option(None, help="Path to SQLite database"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Show collection and sync status."""

    status_cmd(app_from_options=_app, db_path=db_path, as_json=as_json)


@sync_app.command("once")
def sync_once(
    db_path: str = typer.Option(None, help="Path to SQLite database"),
    show_conflicts: bool = typer.Option(True, help="List conflicts resolved in favor of the server"),
) -> None:
    """Run one sync cycle."""

    sync_once_cmd(app_from_options=_app, db_path=db_path, show_conflicts=show_conflicts)


@sync_app.command("daemon")
def sync_daemon(
    db_path: str = typer.Option(None, help="Path to SQLite database"),
    interval_s: int = typer.Option(None, help="Seconds between sync cycles"),
) -> None:
    """Sync periodically until interrupted."""

    sync_daemon_cmd(
        app_from_options=_app,
        run_sync_daemon=run_sync_daemon,
        load_config=load_config,
        db_path=db_path,
        interval_s=interval_s,
    )


@session_app.command("show")
def session_show(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Show what is remembered for this session."""

    session_show_cmd(app_from_options=_app, db_path=db_path)


@session_app.command("end")
def session_end(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Clear the session filter and last viewed quote."""

    session_end_cmd(app_from_options=_app, db_path=db_path)


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration."""

    typer.echo(f"# {get_config_path()}")
    typer.echo(json.dumps(load_config().to_dict(), indent=2))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Config key"),
    value: str = typer.Argument(..., help="Config value"),
) -> None:
    """Write one key to the config file."""

    if key not in CONFIG_ENV_OVERRIDES:
        print(f"[red]Unknown config key: {key}[/red]")
        raise typer.Exit(code=1)
    data = read_config_or_exit()
    data[key] = value
    write_config_or_exit(data)
    print(f"[green]Set {key}[/green]")
