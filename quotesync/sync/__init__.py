from __future__ import annotations

from .engine import SyncEngine
from .gateway import RemoteGateway
from .merge import merge_quotes

__all__ = ["RemoteGateway", "SyncEngine", "merge_quotes"]
