from __future__ import annotations

import typer
from rich import print
from rich.markup import escape

from quotesync.commands.common import format_quote, print_sync_result
from quotesync.errors import QuoteSyncError, ValidationError


def add_quote_cmd(
    *,
    app_from_options,
    db_path: str | None,
    text: str,
    category: str,
    sync: bool,
) -> None:
    """Add a quote to the local collection."""

    app = app_from_options(db_path)
    try:
        try:
            quote = app.on_add_requested(text, category)
        except ValidationError as exc:
            print(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(code=1) from exc
        except QuoteSyncError as exc:
            print(f"[red]Failed to save quote: {escape(str(exc))}[/red]")
            raise typer.Exit(code=1) from exc
        print(f"[green]Added quote {quote.id}[/green]: {format_quote(quote)}")
        if sync:
            print_sync_result(app.on_manual_sync_requested())
    finally:
        app.close()


def random_quote_cmd(*, app_from_options, db_path: str | None, category: str | None) -> None:
    """Show a random quote, honoring the session filter."""

    app = app_from_options(db_path)
    try:
        if category is not None:
            app.on_filter_changed(category)
        requested = app.active_filter
        quote = app.show_random()
        if quote is None:
            print("[yellow]No quotes available.[/yellow]")
            raise typer.Exit(code=0)
        if requested and app.active_filter is None:
            print(f"[yellow]No quotes in category {escape(requested)}; filter cleared[/yellow]")
        print(format_quote(quote))
    finally:
        app.close()


def list_quotes_cmd(*, app_from_options, db_path: str | None, category: str | None) -> None:
    """List quotes, optionally limited to one category."""

    app = app_from_options(db_path)
    try:
        quotes = app.repository.filter_by_category(category)
        if not quotes:
            print("[yellow]No quotes found[/yellow]")
            return
        for quote in quotes:
            print(f"- {quote.id}: {format_quote(quote)}")
    finally:
        app.close()


def categories_cmd(*, app_from_options, db_path: str | None) -> None:
    """List the distinct categories."""

    app = app_from_options(db_path)
    try:
        active = app.active_filter
        for category in app.categories():
            suffix = " [cyan](active)[/cyan]" if category == active else ""
            print(f"- {escape(category)}{suffix}")
    finally:
        app.close()


def filter_cmd(
    *, app_from_options, db_path: str | None, category: str | None, clear: bool
) -> None:
    """Set or clear the session category filter."""

    app = app_from_options(db_path)
    try:
        if clear or not category:
            app.on_filter_changed(None)
            print("[green]Filter cleared[/green]")
            return
        app.on_filter_changed(category)
        print(f"[green]Filter set to {escape(app.active_filter or '')}[/green]")
    finally:
        app.close()


def reset_cmd(*, app_from_options, db_path: str | None, yes: bool) -> None:
    """Remove every stored quote and the session state."""

    if not yes and not typer.confirm("Delete all stored quotes?"):
        raise typer.Exit(code=1)
    app = app_from_options(db_path)
    try:
        app.reset()
        print("[green]Quote store reset[/green]")
    finally:
        app.close()
