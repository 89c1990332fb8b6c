# /providers/sync/trakt/_ratings.py
# TRAKT ratings read/add/remove
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from typing import Iterable

from wb_platform.models import TraktItem

from ._common import PATH_RATINGS, PATH_RATINGS_REMOVE, Adapter, CrudSummary, mutate, read_items


def get(adapter: Adapter) -> list[TraktItem]:
    resp = adapter.call("GET", PATH_RATINGS, want=(200,))
    return read_items(resp)


# Trakt has no update verb: re-adding a rated item overwrites the old value.
def add(adapter: Adapter, items: Iterable[TraktItem]) -> CrudSummary:
    return mutate(adapter, "ratings add", PATH_RATINGS, items, want=201)


def remove(adapter: Adapter, items: Iterable[TraktItem]) -> CrudSummary:
    return mutate(adapter, "ratings remove", PATH_RATINGS_REMOVE, items, want=200)
