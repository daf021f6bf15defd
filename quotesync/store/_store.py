from __future__ import annotations

import datetime as dt
import json
import logging
import sqlite3
import threading
from collections.abc import Iterable
from pathlib import Path

from .. import db
from ..errors import StorageError, ValidationError
from .types import Quote

logger = logging.getLogger(__name__)

QUOTES_KEY = "quotes"


class RecordStore:
    """Durable quote collection plus values scoped to one session.

    The whole collection lives in a single ``kv_values`` row, so every save is
    a wholesale overwrite inside one transaction.
    """

    def __init__(self, db_path: Path | str = db.DEFAULT_DB_PATH, *, session_id: str = "default"):
        self.db_path = Path(db_path).expanduser()
        self.session_id = session_id
        try:
            self.conn = db.connect(self.db_path)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"failed to open quote store at {self.db_path}: {exc}") from exc
        try:
            db.initialize_schema(self.conn)
        except sqlite3.Error as exc:
            self.conn.close()
            raise StorageError(f"failed to open quote store at {self.db_path}: {exc}") from exc
        self._lock = threading.RLock()

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    @staticmethod
    def _now_iso() -> str:
        return dt.datetime.now(dt.UTC).isoformat()

    def load(self) -> tuple[Quote, ...]:
        with self._lock:
            try:
                row = self.conn.execute(
                    "SELECT value FROM kv_values WHERE key = ?", (QUOTES_KEY,)
                ).fetchone()
            except sqlite3.Error as exc:
                logger.warning("quote store read failed", exc_info=exc)
                return ()
        if row is None:
            return ()
        try:
            raw = json.loads(row["value"])
            if not isinstance(raw, list):
                raise ValidationError("stored quotes must be a list")
            return tuple(Quote.from_dict(item) for item in raw)
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("stored quotes are unreadable; starting empty", exc_info=exc)
            return ()

    def save(self, quotes: Iterable[Quote]) -> None:
        try:
            payload = json.dumps([quote.to_dict() for quote in quotes], ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"failed to serialize quotes: {exc}") from exc
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute(
                        """
                        INSERT INTO kv_values(key, value, updated_at)
                        VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET
                            value = excluded.value,
                            updated_at = excluded.updated_at
                        """,
                        (QUOTES_KEY, payload, self._now_iso()),
                    )
            except sqlite3.Error as exc:
                raise StorageError(f"failed to save quotes: {exc}") from exc

    def load_session_value(self, key: str) -> str | None:
        with self._lock:
            try:
                row = self.conn.execute(
                    "SELECT value FROM session_values WHERE session_id = ? AND key = ?",
                    (self.session_id, key),
                ).fetchone()
            except sqlite3.Error as exc:
                logger.warning("session value read failed", exc_info=exc)
                return None
        return str(row["value"]) if row else None

    def save_session_value(self, key: str, value: str) -> None:
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute(
                        """
                        INSERT INTO session_values(session_id, key, value, updated_at)
                        VALUES (?, ?, ?, ?)
                        ON CONFLICT(session_id, key) DO UPDATE SET
                            value = excluded.value,
                            updated_at = excluded.updated_at
                        """,
                        (self.session_id, key, value, self._now_iso()),
                    )
            except sqlite3.Error as exc:
                raise StorageError(f"failed to save session value {key}: {exc}") from exc

    def clear_session_value(self, key: str) -> None:
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute(
                        "DELETE FROM session_values WHERE session_id = ? AND key = ?",
                        (self.session_id, key),
                    )
            except sqlite3.Error as exc:
                raise StorageError(f"failed to clear session value {key}: {exc}") from exc

    def end_session(self) -> None:
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute(
                        "DELETE FROM session_values WHERE session_id = ?", (self.session_id,)
                    )
            except sqlite3.Error as exc:
                raise StorageError(f"failed to end session: {exc}") from exc

    def reset(self) -> None:
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute("DELETE FROM kv_values WHERE key = ?", (QUOTES_KEY,))
                    self.conn.execute(
                        "DELETE FROM session_values WHERE session_id = ?", (self.session_id,)
                    )
            except sqlite3.Error as exc:
                raise StorageError(f"failed to reset store: {exc}") from exc
