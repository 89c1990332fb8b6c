# /providers/sync/trakt/_history.py
# TRAKT watch history lookup and add/remove
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from typing import Iterable

from wb_platform.models import ItemKind, TraktItem

from ._common import (
    HISTORY_LIMIT,
    PATH_HISTORY,
    PATH_HISTORY_GET,
    PATH_HISTORY_REMOVE,
    Adapter,
    CrudSummary,
    mutate,
    read_items,
)


def get(adapter: Adapter, kind: ItemKind, item_id: str) -> list[TraktItem]:
    """History entries for one item; an unknown item reads as empty history."""
    path = PATH_HISTORY_GET.format(bucket=f"{kind.value}s", id=item_id)
    resp = adapter.call("GET", path, want=(200, 404), params={"limit": HISTORY_LIMIT})
    if resp.status_code == 404:
        resp.close()
        return []
    return read_items(resp)


def add(adapter: Adapter, items: Iterable[TraktItem]) -> CrudSummary:
    return mutate(adapter, "history add", PATH_HISTORY, items, want=201)


def remove(adapter: Adapter, items: Iterable[TraktItem]) -> CrudSummary:
    return mutate(adapter, "history remove", PATH_HISTORY_REMOVE, items, want=200)
