from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..errors import ValidationError


@dataclass(frozen=True)
class Quote:
    id: int
    text: str
    category: str
    sync_version: int = 0
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category,
            "syncVersion": self.sync_version,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Quote:
        """Rebuild a stored quote verbatim; values are checked but never re-normalized."""

        if not isinstance(data, dict):
            raise ValidationError("quote must be an object")
        quote_id = data.get("id")
        if isinstance(quote_id, bool) or not isinstance(quote_id, int):
            raise ValidationError(f"invalid quote id: {quote_id!r}")
        text = data.get("text")
        category = data.get("category")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError(f"quote {quote_id} is missing text")
        if not isinstance(category, str) or not category.strip():
            raise ValidationError(f"quote {quote_id} is missing category")
        sync_version = data.get("syncVersion", 0)
        if isinstance(sync_version, bool) or not isinstance(sync_version, int):
            raise ValidationError(f"invalid syncVersion for quote {quote_id}")
        updated_at = data.get("updatedAt")
        if updated_at is not None and not isinstance(updated_at, str):
            raise ValidationError(f"invalid updatedAt for quote {quote_id}")
        return cls(
            id=quote_id,
            text=text,
            category=category,
            sync_version=sync_version,
            updated_at=updated_at,
        )

    @property
    def is_local_only(self) -> bool:
        return self.sync_version == 0


@dataclass(frozen=True)
class Conflict:
    server: Quote
    local: Quote

    def to_dict(self) -> dict[str, Any]:
        return {"server": self.server.to_dict(), "local": self.local.to_dict()}


@dataclass(frozen=True)
class MergeResult:
    merged: tuple[Quote, ...]
    conflicts: tuple[Conflict, ...] = ()


@dataclass
class SyncResult:
    ok: bool
    changed: bool = False
    skipped: bool = False
    fetched: int = 0
    conflicts: list[Conflict] = field(default_factory=list)
    error: str | None = None
    push_error: str | None = None
