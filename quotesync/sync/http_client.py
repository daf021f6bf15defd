from __future__ import annotations

import json
from http.client import HTTPConnection, HTTPSConnection
from typing import Any
from urllib.parse import urlsplit


class RemoteStatusError(Exception):
    """The remote answered with a non-2xx status."""

    def __init__(self, status: int, detail: str | None = None) -> None:
        super().__init__(detail or f"http {status}")
        self.status = status
        self.detail = detail


def normalize_remote_url(address: str) -> str:
    url = address.strip().rstrip("/")
    if url and "://" not in url:
        url = f"http://{url}"
    return url


def _open(url: str, timeout_s: float) -> tuple[HTTPConnection, str]:
    parts = urlsplit(url)
    if not parts.hostname:
        raise ValueError(f"remote url has no host: {url!r}")
    connection_cls = HTTPSConnection if parts.scheme == "https" else HTTPConnection
    conn = connection_cls(parts.hostname, parts.port, timeout=timeout_s)
    target = parts.path or "/"
    if parts.query:
        target = f"{target}?{parts.query}"
    return conn, target


def _exchange(method: str, url: str, *, body: Any = None, timeout_s: float) -> tuple[int, bytes]:
    conn, target = _open(url, timeout_s)
    headers = {"Accept": "application/json"}
    data: bytes | None = None
    if body is not None:
        data = json.dumps(body, ensure_ascii=False).encode("utf-8")
        headers["Content-Type"] = "application/json; charset=utf-8"
    try:
        conn.request(method, target, body=data, headers=headers)
        response = conn.getresponse()
        return int(response.status), response.read()
    finally:
        conn.close()


def _status_error(status: int, raw: bytes) -> RemoteStatusError:
    detail = None
    try:
        payload = json.loads(raw) if raw else None
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        detail = payload["error"].strip() or None
    return RemoteStatusError(status, detail)


def get_json_list(url: str, *, timeout_s: float = 5.0) -> list[Any]:
    """GET ``url`` and return its body, which must be a JSON array."""

    status, raw = _exchange("GET", url, timeout_s=timeout_s)
    if not 200 <= status < 300:
        raise _status_error(status, raw)
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        snippet = raw[:120].decode("utf-8", errors="replace").strip()
        raise ValueError(f"non-JSON response: {snippet}" if snippet else "empty response") from exc
    if not isinstance(payload, list):
        raise ValueError(f"expected a JSON array, got {type(payload).__name__}")
    return payload


def post_json(url: str, body: Any, *, timeout_s: float = 5.0) -> int:
    """POST ``body`` as JSON; the response body is not used."""

    status, raw = _exchange("POST", url, body=body, timeout_s=timeout_s)
    if not 200 <= status < 300:
        raise _status_error(status, raw)
    return status
