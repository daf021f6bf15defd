from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from ..errors import GatewayError
from ..store import Quote
from . import http_client

logger = logging.getLogger(__name__)

SERVER_CATEGORY = "server"
DEFAULT_PAGE_SIZE = 10


def _failure(action: str, exc: Exception) -> GatewayError:
    if isinstance(exc, http_client.RemoteStatusError):
        message = f"{action} failed: {exc.detail}" if exc.detail else f"{action} failed"
        return GatewayError(message, status=exc.status)
    detail = str(exc).strip() or exc.__class__.__name__
    return GatewayError(f"{action} failed: {detail}")


def quote_from_remote(item: Any) -> Quote | None:
    """Map one post-like remote item onto a confirmed quote."""

    if not isinstance(item, dict):
        return None
    remote_id = item.get("id")
    if isinstance(remote_id, bool):
        return None
    if isinstance(remote_id, str) and remote_id.strip().isdigit():
        remote_id = int(remote_id.strip())
    if not isinstance(remote_id, int):
        return None
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        return None
    return Quote(
        id=remote_id,
        text=title.strip(),
        category=SERVER_CATEGORY,
        sync_version=1,
        updated_at=None,
    )


class RemoteGateway:
    """Talks to the remote quote source.

    Both calls report failures as a returned ``GatewayError`` and never let
    transport exceptions escape. Retrying is left to whoever schedules syncs.
    """

    def __init__(
        self,
        remote_url: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout_s: float = 5.0,
    ) -> None:
        self.remote_url = http_client.normalize_remote_url(remote_url)
        self.page_size = max(0, page_size)
        self.timeout_s = timeout_s

    def fetch_remote_snapshot(self) -> list[Quote] | GatewayError:
        if not self.remote_url:
            return GatewayError("remote url is not configured")
        try:
            payload = http_client.get_json_list(self.remote_url, timeout_s=self.timeout_s)
        except Exception as exc:
            return _failure("remote fetch", exc)
        quotes: list[Quote] = []
        seen: set[int] = set()
        for item in payload[: self.page_size]:
            quote = quote_from_remote(item)
            if quote is None:
                logger.debug("skipping malformed remote item: %r", item)
                continue
            if quote.id in seen:
                logger.debug("skipping repeated remote id %d", quote.id)
                continue
            seen.add(quote.id)
            quotes.append(quote)
        return quotes

    def push_local(self, quotes: Iterable[Quote]) -> GatewayError | None:
        items = [quote.to_dict() for quote in quotes]
        if not items:
            return None
        if not self.remote_url:
            return GatewayError("remote url is not configured")
        try:
            http_client.post_json(self.remote_url, {"quotes": items}, timeout_s=self.timeout_s)
        except Exception as exc:
            return _failure("remote push", exc)
        return None
