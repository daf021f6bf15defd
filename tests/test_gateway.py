from __future__ import annotations

import logging

import pytest

from quotesync.errors import GatewayError
from quotesync.store import Quote
from quotesync.sync import gateway as gateway_module
from quotesync.sync.gateway import RemoteGateway, quote_from_remote
from quotesync.sync.http_client import RemoteStatusError

POSTS = [
    {"userId": 1, "id": i, "title": f"  title {i} ", "body": "ignored"} for i in range(1, 16)
]


def _stub_fetch(monkeypatch, payload=None, *, error: Exception | None = None, calls=None) -> None:
    def _get_json_list(url, *, timeout_s):
        if calls is not None:
            calls.append((url, timeout_s))
        if error is not None:
            raise error
        return payload

    monkeypatch.setattr(gateway_module.http_client, "get_json_list", _get_json_list)


def _stub_post(monkeypatch, *, error: Exception | None = None, calls=None) -> None:
    def _post_json(url, body, *, timeout_s):
        if calls is not None:
            calls.append((url, body, timeout_s))
        if error is not None:
            raise error
        return 201

    monkeypatch.setattr(gateway_module.http_client, "post_json", _post_json)


def test_fetch_maps_first_page_of_posts(monkeypatch) -> None:
    calls: list = []
    _stub_fetch(monkeypatch, POSTS, calls=calls)
    gateway = RemoteGateway("https://example.test/posts/", page_size=10, timeout_s=2.5)

    snapshot = gateway.fetch_remote_snapshot()

    assert isinstance(snapshot, list)
    assert len(snapshot) == 10
    assert snapshot[0] == Quote(id=1, text="title 1", category="server", sync_version=1)
    assert calls == [("https://example.test/posts", 2.5)]


def test_fetch_skips_malformed_items(monkeypatch) -> None:
    payload = [
        {"id": 1, "title": "ok"},
        {"id": "2", "title": "string id"},
        {"id": True, "title": "bool id"},
        {"id": 3, "title": "   "},
        {"title": "no id"},
        "not a dict",
    ]
    _stub_fetch(monkeypatch, payload)

    snapshot = RemoteGateway("https://example.test/posts").fetch_remote_snapshot()

    assert [quote.id for quote in snapshot] == [1, 2]


def test_fetch_keeps_first_copy_of_repeated_ids(monkeypatch, caplog) -> None:
    payload = [
        {"id": 1, "title": "first"},
        {"id": 1, "title": "second"},
        {"id": "2", "title": "two"},
        {"id": 2, "title": "two again"},
    ]
    _stub_fetch(monkeypatch, payload)

    with caplog.at_level(logging.DEBUG, logger="quotesync.sync.gateway"):
        snapshot = RemoteGateway("https://example.test/posts").fetch_remote_snapshot()

    assert [(quote.id, quote.text) for quote in snapshot] == [(1, "first"), (2, "two")]
    assert "repeated remote id 1" in caplog.text


def test_fetch_empty_list_is_valid(monkeypatch) -> None:
    _stub_fetch(monkeypatch, [])

    assert RemoteGateway("https://example.test/posts").fetch_remote_snapshot() == []


@pytest.mark.parametrize(
    "error,expected,status",
    [
        (RemoteStatusError(500, "server exploded"), "remote fetch failed: server exploded (500)", 500),
        (RemoteStatusError(404), "remote fetch failed (404)", 404),
        (ValueError("expected a JSON array, got dict"), "remote fetch failed: expected a JSON array, got dict", None),
        (ConnectionRefusedError("connection refused"), "remote fetch failed: connection refused", None),
    ],
)
def test_fetch_failures_are_returned(monkeypatch, error, expected, status) -> None:
    _stub_fetch(monkeypatch, error=error)

    result = RemoteGateway("https://example.test/posts").fetch_remote_snapshot()

    assert isinstance(result, GatewayError)
    assert str(result) == expected
    assert result.status == status


def test_fetch_without_url_is_an_error() -> None:
    assert isinstance(RemoteGateway("").fetch_remote_snapshot(), GatewayError)


def test_push_posts_local_quotes(monkeypatch) -> None:
    calls: list = []
    _stub_post(monkeypatch, calls=calls)
    quote = Quote(id=5, text="mine", category="x", updated_at="2026-01-01T00:00:00+00:00")

    assert RemoteGateway("https://example.test/posts").push_local([quote]) is None

    url, body, _timeout = calls[0]
    assert url == "https://example.test/posts"
    assert body == {"quotes": [quote.to_dict()]}


def test_push_nothing_skips_network(monkeypatch) -> None:
    calls: list = []
    _stub_post(monkeypatch, calls=calls)

    assert RemoteGateway("https://example.test/posts").push_local([]) is None
    assert calls == []


@pytest.mark.parametrize(
    "error,expected",
    [
        (TimeoutError("timed out"), "remote push failed: timed out"),
        (RemoteStatusError(413, "too large"), "remote push failed: too large (413)"),
    ],
)
def test_push_failure_is_returned(monkeypatch, error, expected) -> None:
    _stub_post(monkeypatch, error=error)
    quote = Quote(id=5, text="mine", category="x")

    result = RemoteGateway("https://example.test/posts").push_local([quote])

    assert isinstance(result, GatewayError)
    assert str(result) == expected


def test_quote_from_remote_uses_server_category() -> None:
    quote = quote_from_remote({"id": 7, "title": "Title"})

    assert quote is not None
    assert quote.category == "server"
    assert quote.sync_version == 1
    assert quote.updated_at is None
