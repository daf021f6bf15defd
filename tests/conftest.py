from __future__ import annotations

from pathlib import Path

import pytest

from quotesync.config import CONFIG_ENV_OVERRIDES
from quotesync.errors import GatewayError
from quotesync.store import Quote, RecordStore


@pytest.fixture(autouse=True)
def _isolate_quotesync_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("QUOTESYNC_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("QUOTESYNC_DB", str(tmp_path / "quotes.sqlite"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key, name in CONFIG_ENV_OVERRIDES.items():
        if key != "db_path":
            monkeypatch.delenv(name, raising=False)
    # Commands run offline unless a test turns sync back on.
    monkeypatch.setenv("QUOTESYNC_SYNC_ENABLED", "0")


class CountingStore(RecordStore):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.save_calls = 0

    def save(self, quotes) -> None:
        self.save_calls += 1
        super().save(quotes)


class FakeGateway:
    def __init__(self, snapshot: list[Quote] | GatewayError | None = None) -> None:
        self.snapshot = [] if snapshot is None else snapshot
        self.fetch_calls = 0
        self.pushed: list[list[Quote]] = []
        self.push_error: GatewayError | None = None

    def fetch_remote_snapshot(self) -> list[Quote] | GatewayError:
        self.fetch_calls += 1
        if isinstance(self.snapshot, GatewayError):
            return self.snapshot
        return list(self.snapshot)

    def push_local(self, quotes) -> GatewayError | None:
        self.pushed.append(list(quotes))
        return self.push_error


@pytest.fixture
def store(tmp_path: Path):
    record_store = CountingStore(tmp_path / "store.sqlite", session_id="test-session")
    try:
        yield record_store
    finally:
        record_store.close()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
