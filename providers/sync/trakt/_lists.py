# /providers/sync/trakt/_lists.py
# TRAKT personal lists: read by slug, create, add/remove items
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Callable, Iterable

from wb_platform.models import IDMeta, TraktItem, TraktList

from .._mod_base import ListNotFoundError
from ._common import PATH_LIST_ITEMS, PATH_LIST_ITEMS_REMOVE, PATH_USER_LISTS, Adapter, CrudSummary, mutate, read_items

APP_NAME = "WatchBridge"


def get(adapter: Adapter, ids: IDMeta) -> TraktList:
    slug = str(ids.slug or "")
    path = PATH_LIST_ITEMS.format(user=adapter.username(), slug=slug)
    resp = adapter.call("GET", path, want=(200, 404))
    if resp.status_code == 404:
        resp.close()
        raise ListNotFoundError(slug)
    return TraktList(ids=ids, name=ids.list_name or slug, items=read_items(resp))


def create_body(name: str, *, now: Callable[[], datetime] | None = None) -> dict[str, Any]:
    ts = (now or (lambda: datetime.now(timezone.utc)))()
    return {
        "name": name,
        "description": f"List imported from IMDb using {APP_NAME} on {format_datetime(ts, usegmt=True)}",
        "privacy": "public",
        "display_numbers": False,
        "allow_comments": True,
        "sort_by": "rank",
        "sort_how": "asc",
    }


def create(adapter: Adapter, name: str) -> None:
    path = PATH_USER_LISTS.format(user=adapter.username())
    resp = adapter.call("POST", path, want=(201,), body=create_body(name))
    resp.close()


def add(adapter: Adapter, slug: str, items: Iterable[TraktItem]) -> CrudSummary:
    path = PATH_LIST_ITEMS.format(user=adapter.username(), slug=slug)
    return mutate(adapter, f"list {slug} add", path, items, want=201)


def remove(adapter: Adapter, slug: str, items: Iterable[TraktItem]) -> CrudSummary:
    path = PATH_LIST_ITEMS_REMOVE.format(user=adapter.username(), slug=slug)
    return mutate(adapter, f"list {slug} remove", path, items, want=200)
