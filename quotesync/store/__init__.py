from __future__ import annotations

from ._store import QUOTES_KEY, RecordStore
from .types import Conflict, MergeResult, Quote, SyncResult

__all__ = [
    "QUOTES_KEY",
    "Conflict",
    "MergeResult",
    "Quote",
    "RecordStore",
    "SyncResult",
]
