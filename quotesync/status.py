from __future__ import annotations

import datetime as dt
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from .store import Conflict

logger = logging.getLogger(__name__)

STATUS_LEVELS = ("info", "success", "error")


@dataclass(frozen=True)
class SyncStatus:
    message: str
    level: str
    last_sync_time: dt.datetime | None = None
    conflicts: tuple[Conflict, ...] = ()
    reported_at: dt.datetime | None = None


class StatusReporter:
    """Keeps only the most recent sync status for the UI to render."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status = SyncStatus(message="Not synced yet.", level="info")

    def report(self, message: str, level: str = "info") -> None:
        if level not in STATUS_LEVELS:
            raise ValueError(f"unknown status level: {level}")
        if level == "error":
            logger.warning("sync status: %s", message)
        else:
            logger.info("sync status: %s", message)
        with self._lock:
            self._status = SyncStatus(
                message=message,
                level=level,
                last_sync_time=self._status.last_sync_time,
                reported_at=dt.datetime.now(dt.UTC),
            )

    def report_conflicts(self, conflicts: Iterable[Conflict]) -> None:
        items = tuple(conflicts)
        for conflict in items:
            logger.info(
                "conflict on quote %s: server=%r local=%r",
                conflict.server.id,
                conflict.server.text,
                conflict.local.text,
            )
        with self._lock:
            current = self._status
            self._status = SyncStatus(
                message=current.message,
                level=current.level,
                last_sync_time=current.last_sync_time,
                conflicts=items,
                reported_at=current.reported_at,
            )

    def mark_synced(self, at: dt.datetime | None = None) -> dt.datetime:
        when = at or dt.datetime.now(dt.UTC)
        with self._lock:
            current = self._status
            self._status = SyncStatus(
                message=current.message,
                level=current.level,
                last_sync_time=when,
                conflicts=current.conflicts,
                reported_at=current.reported_at,
            )
        return when

    def current(self) -> SyncStatus:
        return self._status

    def format_status(self) -> str:
        status = self._status
        if status.last_sync_time is None:
            suffix = "never synced"
        else:
            suffix = f"last sync {status.last_sync_time.strftime('%Y-%m-%d %H:%M:%S')} UTC"
        return f"[{status.level}] {status.message} ({suffix})"
