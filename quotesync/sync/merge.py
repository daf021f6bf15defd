from __future__ import annotations

from collections.abc import Iterable

from ..store import Conflict, MergeResult, Quote


def merge_quotes(local: Iterable[Quote], remote: Iterable[Quote]) -> MergeResult:
    """Merge a remote snapshot into the local collection.

    The remote always wins. Output order is every remote record in remote
    order, followed by the local records the snapshot did not mention in
    their original order. A same-id pair whose text or category differ is
    reported as a conflict before the local value is dropped.
    """

    local_remaining = list(local)
    merged: list[Quote] = []
    conflicts: list[Conflict] = []
    for server in remote:
        match_index = next(
            (index for index, quote in enumerate(local_remaining) if quote.id == server.id),
            None,
        )
        if match_index is not None:
            existing = local_remaining.pop(match_index)
            if existing.text != server.text or existing.category != server.category:
                conflicts.append(Conflict(server=server, local=existing))
        merged.append(server)
    merged.extend(local_remaining)
    return MergeResult(merged=tuple(merged), conflicts=tuple(conflicts))
