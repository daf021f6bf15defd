from __future__ import annotations

import datetime as dt
import logging
import threading
import traceback
from collections.abc import Callable
from pathlib import Path

from ..store import SyncResult
from .engine import SyncEngine

logger = logging.getLogger(__name__)


def run_sync_daemon(
    engine: SyncEngine,
    *,
    interval_s: float,
    stop_event: threading.Event | None = None,
    on_result: Callable[[SyncResult], None] | None = None,
) -> int:
    """Run sync cycles in the foreground until ``stop_event`` is set.

    The first cycle runs immediately. Returns the number of cycles run.
    """

    stop = stop_event or threading.Event()
    cycles = 0
    while True:
        try:
            result = engine.sync_now()
        except Exception as exc:
            tb = traceback.format_exc()
            logger.exception("sync daemon tick failed", exc_info=exc)
            _append_sync_daemon_log(tb)
            result = SyncResult(ok=False, error=str(exc))
        else:
            if not result.ok and not result.skipped:
                _append_sync_daemon_log(f"sync failed: {result.error}")
        cycles += 1
        if on_result is not None:
            on_result(result)
        if stop.wait(max(1.0, interval_s)):
            return cycles


def _append_sync_daemon_log(message: str) -> None:
    try:
        log_dir = Path.home() / ".quotesync"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / "sync-daemon.log"
        ts = dt.datetime.now(dt.UTC).isoformat()
        with log_path.open("a", encoding="utf-8", errors="ignore") as handle:
            handle.write(f"\n[{ts}]\n{message}\n")
    except Exception:
        return
