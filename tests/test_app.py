from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest

from quotesync.app import ACTIVE_FILTER_KEY, LAST_LOAD_KEY, QuoteApp
from quotesync.config import QuoteSyncConfig
from quotesync.errors import ValidationError
from quotesync.store import Quote, RecordStore


def _config(tmp_path: Path, **overrides) -> QuoteSyncConfig:
    cfg = QuoteSyncConfig(db_path=str(tmp_path / "app.sqlite"), session_id="s1", sync_debounce_s=0)
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg


@pytest.fixture
def make_app(tmp_path: Path, gateway):
    apps: list[QuoteApp] = []

    def _make(**kwargs) -> QuoteApp:
        auto_sync = kwargs.pop("auto_sync", False)
        app = QuoteApp(_config(tmp_path, **kwargs), gateway=gateway, auto_sync=auto_sync)
        apps.append(app)
        return app

    yield _make
    for app in apps:
        app.close()


def test_startup_seeds_defaults_and_records_load_time(make_app) -> None:
    app = make_app()

    assert len(app.current_collection()) == 3
    assert app.categories() == ["inspiration", "life", "motivation"]
    assert app.store.load_session_value(LAST_LOAD_KEY)


def test_add_triggers_sync_when_auto_sync_enabled(make_app, gateway) -> None:
    app = make_app(auto_sync=True)

    app.on_add_requested("Stay hungry", "Wisdom")

    assert gateway.fetch_calls == 1
    assert "wisdom" in app.categories()


def test_add_without_auto_sync_does_not_fetch(make_app, gateway) -> None:
    app = make_app()

    app.on_add_requested("Stay hungry", "Wisdom")

    assert gateway.fetch_calls == 0


def test_add_validation_error_propagates(make_app) -> None:
    app = make_app()
    with pytest.raises(ValidationError):
        app.on_add_requested("", "x")


def test_filter_is_restored_within_the_same_session(make_app) -> None:
    first = make_app()
    first.on_filter_changed(" Life ")
    assert first.store.load_session_value(ACTIVE_FILTER_KEY) == "life"
    first.close()

    second = make_app()
    assert second.active_filter == "life"


def test_ending_the_session_forgets_the_filter(make_app) -> None:
    first = make_app()
    first.on_filter_changed("life")
    first.close(end_session=True)

    second = make_app()
    assert second.active_filter is None


def test_show_random_with_unmatched_filter_clears_it(make_app) -> None:
    app = make_app()
    app.on_filter_changed("nothing-here")

    quote = app.show_random()

    assert quote is not None
    assert app.active_filter is None
    assert app.store.load_session_value(ACTIVE_FILTER_KEY) is None
    assert app.last_viewed() == quote


def test_show_random_without_fallback_keeps_filter(make_app) -> None:
    app = make_app(empty_filter_fallback=False)
    app.on_filter_changed("nothing-here")

    assert app.show_random() is None
    assert app.active_filter == "nothing-here"


def test_manual_sync_updates_status_and_collection(make_app, gateway) -> None:
    app = make_app()
    gateway.snapshot = [Quote(id=1, text="Server quote", category="server", sync_version=1)]

    result = app.on_manual_sync_requested()

    assert result.ok and result.changed
    assert app.current_collection()[0].text == "Server quote"
    assert app.current_status().level == "success"
    assert "server" in app.categories()


def test_serialize_all_round_trips_through_import(make_app, tmp_path: Path, gateway) -> None:
    source = make_app()
    data = source.serialize_all()
    records = json.loads(data)
    assert [record["id"] for record in records] == [q.id for q in source.current_collection()]
    assert set(records[0]) == {"id", "text", "category", "syncVersion", "updatedAt"}

    other_store = RecordStore(tmp_path / "other.sqlite")
    other_store.save([Quote(id=1, text="existing", category="x")])
    other = QuoteApp(_config(tmp_path), store=other_store, gateway=gateway, auto_sync=False)
    try:
        assert other.import_bytes(data) == 3
        assert len(other.current_collection()) == 4
    finally:
        other.close()


@pytest.mark.parametrize("payload", [b"{not json", b'{"quotes": []}', b'[{"text": "x"}]'])
def test_import_bytes_rejects_bad_payloads(make_app, payload: bytes) -> None:
    app = make_app()
    before = app.current_collection()

    with pytest.raises(ValidationError):
        app.import_bytes(payload)

    assert app.current_collection() == before


def test_reset_clears_collection_and_session(make_app) -> None:
    app = make_app()
    app.on_filter_changed("life")

    app.reset()

    assert app.current_collection() == ()
    assert app.active_filter is None
    assert app.store.load_session_value(ACTIVE_FILTER_KEY) is None
    assert app.show_random() is None


def test_reset_waits_for_in_flight_sync(make_app, gateway) -> None:
    app = make_app()
    started = threading.Event()
    release = threading.Event()
    original_fetch = gateway.fetch_remote_snapshot

    def _blocking_fetch():
        started.set()
        release.wait(5)
        return original_fetch()

    gateway.fetch_remote_snapshot = _blocking_fetch
    gateway.snapshot = [Quote(id=1, text="Server quote", category="server", sync_version=1)]
    syncing = threading.Thread(target=app.on_manual_sync_requested)
    resetting = threading.Thread(target=app.reset)
    syncing.start()
    try:
        assert started.wait(5)
        resetting.start()
        time.sleep(0.1)
        release.set()
    finally:
        release.set()
        syncing.join(5)
        resetting.join(5)

    assert app.current_collection() == ()
    assert app.store.load() == ()


def test_close_flushes_pending_post_mutation_sync(tmp_path: Path, gateway) -> None:
    app = QuoteApp(_config(tmp_path, sync_debounce_s=10), gateway=gateway, auto_sync=True)
    app.on_add_requested("Stay hungry", "Wisdom")
    assert gateway.fetch_calls == 0

    app.close()

    assert gateway.fetch_calls == 1
    assert [quote.text for quote in gateway.pushed[0]][-1] == "Stay hungry"
