# /providers/sync/trakt/_watchlist.py
# TRAKT watchlist read/add/remove
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from typing import Iterable

from wb_platform.models import IDMeta, TraktItem, TraktList

from ._common import PATH_WATCHLIST, PATH_WATCHLIST_REMOVE, Adapter, CrudSummary, mutate, read_items

WATCHLIST_SLUG = "watchlist"


def get(adapter: Adapter) -> TraktList:
    resp = adapter.call("GET", PATH_WATCHLIST, want=(200,))
    return TraktList(ids=IDMeta(slug=WATCHLIST_SLUG), name="Watchlist", items=read_items(resp), is_watchlist=True)


def add(adapter: Adapter, items: Iterable[TraktItem]) -> CrudSummary:
    return mutate(adapter, "watchlist add", PATH_WATCHLIST, items, want=201)


def remove(adapter: Adapter, items: Iterable[TraktItem]) -> CrudSummary:
    return mutate(adapter, "watchlist remove", PATH_WATCHLIST_REMOVE, items, want=200)
