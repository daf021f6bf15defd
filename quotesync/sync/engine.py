from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable, Iterator

from ..errors import GatewayError, StorageError, ValidationError
from ..repository import QuoteRepository
from ..status import StatusReporter
from ..store import RecordStore, SyncResult
from .gateway import RemoteGateway
from .merge import merge_quotes

logger = logging.getLogger(__name__)

LAST_SYNC_SESSION_KEY = "last_sync_at"

SyncListener = Callable[[SyncResult], None]


class SyncEngine:
    """Reconciles the repository against the remote source.

    Periodic ticks, manual requests and the debounced post-mutation request
    all go through ``sync_now``. A trigger that arrives while a cycle is in
    flight is dropped, not queued.
    """

    def __init__(
        self,
        repository: QuoteRepository,
        gateway: RemoteGateway,
        reporter: StatusReporter,
        *,
        store: RecordStore | None = None,
        interval_s: float = 30.0,
        debounce_s: float = 1.0,
        push_enabled: bool = True,
    ) -> None:
        self.repository = repository
        self.gateway = gateway
        self.reporter = reporter
        self.store = store
        self.interval_s = interval_s
        self.debounce_s = debounce_s
        self.push_enabled = push_enabled
        self._sync_lock = threading.Lock()
        self._timer_lock = threading.Lock()
        self._pending: threading.Timer | None = None
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._listeners: list[SyncListener] = []

    @property
    def in_progress(self) -> bool:
        return self._sync_lock.locked()

    @property
    def debounce_pending(self) -> bool:
        return self._pending is not None

    def add_listener(self, listener: SyncListener) -> None:
        self._listeners.append(listener)

    @contextlib.contextmanager
    def _sync_guard(self) -> Iterator[bool]:
        acquired = self._sync_lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._sync_lock.release()

    def sync_now(self) -> SyncResult:
        with self._sync_guard() as acquired:
            if not acquired:
                logger.debug("sync already in progress; dropping trigger")
                return SyncResult(ok=False, skipped=True)
            # This cycle covers any write that is still waiting on the debounce.
            self._take_pending()
            try:
                result = self._run_cycle()
            except Exception as exc:
                logger.exception("sync cycle failed", exc_info=exc)
                detail = str(exc).strip() or exc.__class__.__name__
                self.reporter.report(f"Sync failed: {detail}", "error")
                result = SyncResult(ok=False, error=detail)
        if not result.ok:
            self._on_cycle_failed(result)
        elif result.changed:
            self._notify(result)
        return result

    def _run_cycle(self) -> SyncResult:
        self.reporter.report("Syncing with server...", "info")
        snapshot = self.gateway.fetch_remote_snapshot()
        if isinstance(snapshot, GatewayError):
            self.reporter.report(f"Sync failed: {snapshot}", "error")
            return SyncResult(ok=False, error=str(snapshot))

        with self.repository.editing() as current:
            merge = merge_quotes(current, snapshot)
            changed = merge.merged != current
            if changed:
                try:
                    self.repository.replace_all(merge.merged)
                except (StorageError, ValidationError) as exc:
                    self.reporter.report(f"Sync failed: {exc}", "error")
                    return SyncResult(ok=False, fetched=len(snapshot), error=str(exc))

        if not changed:
            self.reporter.report("Quotes are already up to date.", "success")
        else:
            count = len(merge.conflicts)
            noun = "conflict" if count == 1 else "conflicts"
            self.reporter.report(
                f"Synced with server: {len(merge.merged)} quotes, {count} {noun} resolved.",
                "success",
            )
            if merge.conflicts:
                self.reporter.report_conflicts(merge.conflicts)
        self._mark_synced()

        push_error = self._push_local_only()
        return SyncResult(
            ok=True,
            changed=changed,
            fetched=len(snapshot),
            conflicts=list(merge.conflicts),
            push_error=push_error,
        )

    def _mark_synced(self) -> None:
        when = self.reporter.mark_synced()
        if self.store is None:
            return
        try:
            self.store.save_session_value(LAST_SYNC_SESSION_KEY, when.isoformat())
        except StorageError as exc:
            logger.warning("failed to record last sync time", exc_info=exc)

    def _push_local_only(self) -> str | None:
        if not self.push_enabled:
            return None
        pending = self.repository.local_only()
        if not pending:
            return None
        error = self.gateway.push_local(pending)
        if error is None:
            logger.debug("pushed %d local quotes", len(pending))
            return None
        logger.warning("push of %d local quotes failed: %s", len(pending), error)
        return str(error)

    def _on_cycle_failed(self, result: SyncResult) -> None:
        # Every trigger is an independent attempt; a backoff policy would hook in here.
        logger.debug("sync cycle failed: %s", result.error)

    def _notify(self, result: SyncResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception as exc:
                logger.exception("sync listener failed", exc_info=exc)

    def request_sync_soon(self) -> bool:
        """Schedule one deferred sync; returns False when one is already pending."""

        if self.debounce_s <= 0:
            self.sync_now()
            return True
        with self._timer_lock:
            if self._pending is not None:
                return False
            timer = threading.Timer(self.debounce_s, self._fire_debounced)
            timer.args = (timer,)
            timer.daemon = True
            self._pending = timer
            timer.start()
        return True

    def _take_pending(self) -> threading.Timer | None:
        with self._timer_lock:
            pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()
        return pending

    def _fire_debounced(self, timer: threading.Timer) -> None:
        with self._timer_lock:
            if self._pending is not timer:
                # Already taken by stop() or by a cycle that started since.
                return
            self._pending = None
        self.sync_now()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="quotesync-sync", daemon=True)
        self._thread.start()

    def stop(self, timeout_s: float | None = 5.0, *, flush: bool = True) -> None:
        """Stop the periodic thread and settle any debounced request.

        With ``flush`` a pending post-mutation request runs once now instead
        of being dropped, so a short-lived process still reaches the remote.
        """

        self._stop.set()
        pending = self._take_pending()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout_s)
        if pending is not None and flush:
            logger.debug("flushing pending sync request")
            self.sync_now()

    @contextlib.contextmanager
    def exclusive(self) -> Iterator[None]:
        """Wait for any in-flight cycle, then hold off new ones."""

        with self._sync_lock:
            yield

    def _run(self) -> None:
        interval_s = max(1.0, self.interval_s)
        while not self._stop.wait(interval_s):
            self.sync_now()
