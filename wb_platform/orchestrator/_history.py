# wb_platform/orchestrator/_history.py
# Watch history derived from rating changes: a rating implies the title was watched.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from typing import Any, Callable, Sequence

from ..models import Diff, ItemKind, TraktItem

HistoryLookup = Callable[[ItemKind, str], Sequence[Any]]


def _has_history(item: TraktItem, lookup: HistoryLookup) -> bool | None:
    try:
        item_id = item.external_id()
    except ValueError:
        return None
    if not item_id:
        return None
    return len(lookup(item.type, item_id)) > 0


def derive_history(ratings: Diff, lookup: HistoryLookup, *, check: Callable[[], None] | None = None) -> Diff:
    """New ratings without a watch become history adds; removed ratings with a watch become history removes."""
    add: list[TraktItem] = []
    rem: list[TraktItem] = []
    for it in ratings.add:
        if check is not None:
            check()
        if _has_history(it, lookup) is False:
            add.append(it)
    for it in ratings.remove:
        if check is not None:
            check()
        if _has_history(it, lookup):
            rem.append(it)
    return Diff(add=add, remove=rem)
