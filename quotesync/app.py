from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any

from .config import QuoteSyncConfig, load_config
from .errors import ValidationError
from .repository import QuoteRepository
from .status import StatusReporter, SyncStatus
from .store import Quote, RecordStore, SyncResult
from .sync.engine import SyncEngine
from .sync.gateway import RemoteGateway

logger = logging.getLogger(__name__)

ACTIVE_FILTER_KEY = "active_filter"
LAST_VIEWED_KEY = "last_viewed_quote"
LAST_LOAD_KEY = "last_load_at"


class QuoteApp:
    """Wires store, repository, gateway, engine and reporter together.

    This is the surface a UI talks to: it forwards user intents to the core
    and exposes what the UI needs to render.
    """

    def __init__(
        self,
        config: QuoteSyncConfig | None = None,
        *,
        store: RecordStore | None = None,
        gateway: RemoteGateway | None = None,
        reporter: StatusReporter | None = None,
        auto_sync: bool | None = None,
    ) -> None:
        self.config = config or load_config()
        self.store = store or RecordStore(
            Path(self.config.db_path).expanduser(), session_id=self.config.session_id
        )
        self.reporter = reporter or StatusReporter()
        self.gateway = gateway or RemoteGateway(
            self.config.remote_url,
            page_size=self.config.remote_page_size,
            timeout_s=self.config.remote_timeout_s,
        )
        self.auto_sync = self.config.sync_enabled if auto_sync is None else auto_sync
        self.repository = QuoteRepository(
            self.store,
            on_mutation=self._on_mutation,
            empty_filter_fallback=self.config.empty_filter_fallback,
        )
        self.engine = SyncEngine(
            self.repository,
            self.gateway,
            self.reporter,
            store=self.store,
            interval_s=self.config.sync_interval_s,
            debounce_s=self.config.sync_debounce_s,
            push_enabled=self.config.sync_push_enabled,
        )
        self.active_filter: str | None = None
        self.repository.load_or_seed()
        self._restore_session()

    def _restore_session(self) -> None:
        self.active_filter = self.store.load_session_value(ACTIVE_FILTER_KEY) or None
        self.store.save_session_value(LAST_LOAD_KEY, dt.datetime.now(dt.UTC).isoformat())

    def _on_mutation(self) -> None:
        if self.auto_sync:
            self.engine.request_sync_soon()

    def close(self, *, end_session: bool = False) -> None:
        self.engine.stop()
        if end_session:
            self.store.end_session()
        self.store.close()

    def on_add_requested(self, text: str, category: str) -> Quote:
        return self.repository.add(text, category)

    def on_manual_sync_requested(self) -> SyncResult:
        return self.engine.sync_now()

    def on_filter_changed(self, category: str | None) -> None:
        value = category.strip().lower() if category else ""
        if value:
            self.active_filter = value
            self.store.save_session_value(ACTIVE_FILTER_KEY, value)
        else:
            self.active_filter = None
            self.store.clear_session_value(ACTIVE_FILTER_KEY)

    def show_random(self) -> Quote | None:
        quote, effective = self.repository.random_matching(self.active_filter)
        if effective != self.active_filter:
            self.on_filter_changed(effective)
        if quote is not None:
            self.store.save_session_value(
                LAST_VIEWED_KEY, json.dumps(quote.to_dict(), ensure_ascii=False)
            )
        return quote

    def last_viewed(self) -> Quote | None:
        raw = self.store.load_session_value(LAST_VIEWED_KEY)
        if not raw:
            return None
        try:
            return Quote.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            return None

    def current_status(self) -> SyncStatus:
        return self.reporter.current()

    def current_collection(self) -> tuple[Quote, ...]:
        return self.repository.quotes()

    def categories(self) -> list[str]:
        return sorted(self.repository.list_categories())

    def serialize_all(self) -> bytes:
        data = [quote.to_dict() for quote in self.repository.quotes()]
        return (json.dumps(data, ensure_ascii=False, indent=2) + "\n").encode("utf-8")

    def import_batch(self, records: list[dict[str, Any]]) -> int:
        return self.repository.import_batch(records)

    def import_bytes(self, data: bytes | str) -> int:
        try:
            records = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationError(f"invalid JSON: {exc}") from exc
        if not isinstance(records, list):
            raise ValidationError("import file must contain a JSON array of quotes")
        return self.import_batch(records)

    def reset(self) -> None:
        """Drop every quote and this session's state."""

        self.engine.stop(flush=False)
        with self.engine.exclusive():
            self.store.reset()
            self.repository.clear()
        self.active_filter = None
        logger.info("quote collection reset")
