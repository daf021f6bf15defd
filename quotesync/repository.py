from __future__ import annotations

import contextlib
import datetime as dt
import logging
import random
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from typing import Any, NamedTuple

from .errors import ValidationError
from .store import Quote, RecordStore

logger = logging.getLogger(__name__)

DEFAULT_QUOTES: tuple[tuple[str, str], ...] = (
    ("The best way to get started is to quit talking and begin doing.", "Motivation"),
    ("Life is what happens when you're busy making other plans.", "Life"),
    ("Do not watch the clock. Do what it does. Keep going.", "Inspiration"),
)


def _now_iso() -> str:
    return dt.datetime.now(dt.UTC).isoformat()


def normalize_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_category(value: Any) -> str:
    return normalize_text(value).lower()


class CollectionView(NamedTuple):
    quotes: tuple[Quote, ...]
    categories: frozenset[str]


EMPTY_VIEW = CollectionView((), frozenset())


class QuoteRepository:
    """Owns the in-memory quote collection.

    The collection is an immutable tuple. Every mutation persists the new
    tuple first and only then swaps the reference, so readers always see
    either the old or the new collection.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        on_mutation: Callable[[], None] | None = None,
        empty_filter_fallback: bool = True,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.on_mutation = on_mutation
        self.empty_filter_fallback = empty_filter_fallback
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._view = EMPTY_VIEW
        self._last_id = 0

    def load_or_seed(self) -> tuple[Quote, ...]:
        quotes = self.store.load()
        if not quotes:
            return self.seed_defaults()
        self._install(quotes)
        return quotes

    def seed_defaults(self) -> tuple[Quote, ...]:
        now = _now_iso()
        with self._lock:
            quotes = tuple(
                Quote(
                    id=self._next_id(),
                    text=text,
                    category=normalize_category(category),
                    sync_version=0,
                    updated_at=now,
                )
                for text, category in DEFAULT_QUOTES
            )
            self.store.save(quotes)
            self._set(quotes)
        logger.info("seeded %d default quotes", len(quotes))
        return quotes

    def quotes(self) -> tuple[Quote, ...]:
        return self._view.quotes

    def view(self) -> CollectionView:
        """The collection and its categories, taken from the same swap."""

        return self._view

    @contextlib.contextmanager
    def editing(self) -> Iterator[tuple[Quote, ...]]:
        """Hold off other writers while the caller computes a replacement."""

        with self._lock:
            yield self._view.quotes

    def add(self, text: str, category: str) -> Quote:
        clean_text = normalize_text(text)
        clean_category = normalize_category(category)
        if not clean_text or not clean_category:
            raise ValidationError("quote text and category are required")
        with self._lock:
            quote = Quote(
                id=self._next_id(),
                text=clean_text,
                category=clean_category,
                sync_version=0,
                updated_at=_now_iso(),
            )
            updated = (*self._view.quotes, quote)
            self.store.save(updated)
            self._set(updated)
        self._notify_mutation()
        return quote

    def import_batch(self, records: Iterable[Any]) -> int:
        raw_records = list(records)
        now = _now_iso()
        with self._lock:
            existing = {quote.id for quote in self._view.quotes}
            incoming: list[Quote] = []
            for index, record in enumerate(raw_records):
                if not isinstance(record, dict):
                    raise ValidationError(f"record {index} must be an object")
                text = normalize_text(record.get("text"))
                category = normalize_category(record.get("category"))
                if not text or not category:
                    raise ValidationError(f"record {index} is missing text or category")
                quote_id = record.get("id")
                if isinstance(quote_id, bool) or not isinstance(quote_id, int):
                    quote_id = None
                sync_version = record.get("syncVersion", 0)
                if isinstance(sync_version, bool) or not isinstance(sync_version, int):
                    sync_version = 0
                if quote_id is None or quote_id in existing:
                    # A fresh local id was never confirmed by the remote.
                    quote_id = self._next_id()
                    sync_version = 0
                updated_at = record.get("updatedAt")
                if not isinstance(updated_at, str) or not updated_at:
                    updated_at = now
                existing.add(quote_id)
                self._last_id = max(self._last_id, quote_id)
                incoming.append(
                    Quote(
                        id=quote_id,
                        text=text,
                        category=category,
                        sync_version=sync_version,
                        updated_at=updated_at,
                    )
                )
            if not incoming:
                return 0
            updated = (*self._view.quotes, *incoming)
            self.store.save(updated)
            self._set(updated)
        self._notify_mutation()
        return len(incoming)

    def replace_all(self, quotes: Iterable[Quote]) -> None:
        replacement = tuple(quotes)
        ids = [quote.id for quote in replacement]
        if len(ids) != len(set(ids)):
            raise ValidationError("replacement collection has duplicate ids")
        with self._lock:
            self.store.save(replacement)
            self._set(replacement)
            if ids:
                self._last_id = max(self._last_id, max(ids))

    def clear(self) -> None:
        with self._lock:
            self.store.save(())
            self._set(())

    def list_categories(self) -> set[str]:
        return set(self._view.categories)

    def filter_by_category(self, category: str | None) -> list[Quote]:
        quotes = self._view.quotes
        wanted = normalize_category(category)
        if not wanted:
            return list(quotes)
        return [quote for quote in quotes if quote.category == wanted]

    def local_only(self) -> list[Quote]:
        return [quote for quote in self._view.quotes if quote.is_local_only]

    def random_matching(self, category: str | None) -> tuple[Quote | None, str | None]:
        """Pick a quote uniformly from those in ``category``.

        Returns the quote and the filter that actually applied. With the
        fallback policy on, an empty match drops the filter and picks from
        the whole collection.
        """

        quotes = self._view.quotes
        if not quotes:
            return None, category
        wanted = normalize_category(category)
        if not wanted:
            return self._rng.choice(quotes), None
        matching = [quote for quote in quotes if quote.category == wanted]
        if matching:
            return self._rng.choice(matching), wanted
        if not self.empty_filter_fallback:
            return None, wanted
        logger.debug("no quotes in category %r; falling back to all quotes", wanted)
        return self._rng.choice(quotes), None

    def _install(self, quotes: tuple[Quote, ...]) -> None:
        with self._lock:
            self._set(quotes)
            if quotes:
                self._last_id = max(self._last_id, max(quote.id for quote in quotes))

    def _set(self, quotes: tuple[Quote, ...]) -> None:
        self._view = CollectionView(quotes, frozenset(quote.category for quote in quotes))

    def _next_id(self) -> int:
        candidate = max(int(time.time() * 1000), self._last_id + 1)
        self._last_id = candidate
        return candidate

    def _notify_mutation(self) -> None:
        if self.on_mutation is None:
            return
        try:
            self.on_mutation()
        except Exception as exc:
            logger.exception("post-mutation sync request failed", exc_info=exc)
