# wb_platform/orchestrator/_planner.py
# Set reconciliation between a source inventory and a target inventory.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from ..models import ZERO_TIME, Diff, Item, MediaList, TraktItem, TraktList

__all__ = ["items_difference", "list_diff", "index_target", "infer_list_slug", "sort_key"]

_SLUG_STRIP = re.compile(r"[^-_a-z0-9]+")
_DASH_RUN = re.compile(r"-{2,}")


def sort_key(item: TraktItem) -> tuple:
    # Chronological replay; equal timestamps fall back to id, then kind.
    return (item.created, item.spec.ids.imdb or "", item.type.value)


# Presence + rating diff
def items_difference(src_idx: Mapping[str, Item], dst_idx: Mapping[str, TraktItem]) -> Diff:
    add: list[TraktItem] = []
    rem: list[TraktItem] = []
    for k, sv in src_idx.items():
        dv = dst_idx.get(k)
        if dv is None:
            add.append(sv.to_trakt())
            continue
        if sv.rating is not None and sv.rating != dv.rating:
            add.append(sv.to_trakt())
    for k, dv in dst_idx.items():
        if k in src_idx:
            continue
        # target-only: no source timestamp to carry over
        rem.append(dv.with_created(ZERO_TIME))
    add.sort(key=sort_key)
    rem.sort(key=sort_key)
    return Diff(add=add, remove=rem)


def index_target(items: Iterable[TraktItem]) -> dict[str, TraktItem]:
    idx: dict[str, TraktItem] = {}
    for it in items:
        try:
            k = it.external_id()
        except ValueError:
            continue
        if k:
            idx[k] = it
    return idx


def list_diff(src_list: MediaList, dst_list: TraktList | None) -> Diff:
    src_idx = {it.id: it for it in src_list.items}
    dst_idx = index_target(dst_list.items) if dst_list is not None else {}
    return items_difference(src_idx, dst_idx)


def infer_list_slug(name: str) -> str:
    s = "-".join(str(name or "").split()).lower()
    s = _SLUG_STRIP.sub("", s)
    return _DASH_RUN.sub("-", s)
