from __future__ import annotations

from rich import print
from rich.markup import escape

from quotesync.commands.common import format_quote


def session_show_cmd(*, app_from_options, db_path: str | None) -> None:
    """Print the values kept for the current session."""

    app = app_from_options(db_path)
    try:
        last_viewed = app.last_viewed()
        print(f"- Session: {escape(app.store.session_id)}")
        print(f"- Active filter: {escape(app.active_filter or 'none')}")
        print(f"- Last viewed: {format_quote(last_viewed) if last_viewed else 'none'}")
    finally:
        app.close()


def session_end_cmd(*, app_from_options, db_path: str | None) -> None:
    """Forget the session filter, last viewed quote and load marker."""

    app = app_from_options(db_path)
    session_id = app.store.session_id
    app.close(end_session=True)
    print(f"[green]Ended session {escape(session_id)}[/green]")
