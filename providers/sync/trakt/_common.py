# /providers/sync/trakt/_common.py
# WatchBridge Trakt helpers: endpoints, request bodies and count summaries
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Protocol

import requests

from wb_platform.models import ItemKind, TraktItem

from .._mod_base import UnexpectedStatusCodeError
from .._mod_common import safe_json

# ── endpoints ─────────────────────────────────────────────────────────────────
BASE = "https://api.trakt.tv"
PATH_USER_INFO = "/users/me"
PATH_WATCHLIST = "/sync/watchlist"
PATH_WATCHLIST_REMOVE = "/sync/watchlist/remove"
PATH_USER_LISTS = "/users/{user}/lists"
PATH_LIST_ITEMS = "/users/{user}/lists/{slug}/items"
PATH_LIST_ITEMS_REMOVE = "/users/{user}/lists/{slug}/items/remove"
PATH_RATINGS = "/sync/ratings"
PATH_RATINGS_REMOVE = "/sync/ratings/remove"
PATH_HISTORY = "/sync/history"
PATH_HISTORY_GET = "/sync/history/{bucket}/{id}"
PATH_HISTORY_REMOVE = "/sync/history/remove"

HISTORY_LIMIT = 1000

BODY_BUCKETS = ("movies", "shows", "episodes", "people")
SUMMARY_KINDS = ("movies", "shows", "seasons", "episodes", "people")


class Adapter(Protocol):
    """What the feature modules need from the client facade."""

    def call(
        self,
        method: str,
        path: str,
        *,
        want: tuple[int, ...],
        body: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> requests.Response: ...

    def username(self) -> str: ...

    def log_summary(self, op: str, summary: "CrudSummary") -> None: ...


def expect(resp: requests.Response, want: Iterable[int]) -> requests.Response:
    want_t = tuple(want)
    if resp.status_code not in want_t:
        resp.close()
        raise UnexpectedStatusCodeError(resp.status_code, want_t)
    return resp


# ── bodies ────────────────────────────────────────────────────────────────────
def build_items_body(items: Iterable[TraktItem]) -> Dict[str, Any]:
    """Group items under movies/shows/episodes/people; seasons are never sent."""
    buckets: Dict[str, list] = {}
    for it in items or []:
        if it.type is ItemKind.SEASON:
            continue
        buckets.setdefault(it.type.bucket, []).append(it.spec.to_json())
    return {k: buckets[k] for k in BODY_BUCKETS if k in buckets}


def decode_items(rows: Any) -> list[TraktItem]:
    out: list[TraktItem] = []
    for row in rows if isinstance(rows, list) else []:
        if not isinstance(row, Mapping):
            continue
        try:
            out.append(TraktItem.from_json(row))
        except (TypeError, ValueError):
            continue
    return out


def read_items(resp: requests.Response) -> list[TraktItem]:
    return decode_items(safe_json(resp))


# ── summaries ─────────────────────────────────────────────────────────────────
def _counts(v: Any) -> Dict[str, int]:
    src = v if isinstance(v, Mapping) else {}
    out: Dict[str, int] = {}
    for k in SUMMARY_KINDS:
        n = src.get(k)
        if isinstance(n, int) and n:
            out[k] = n
    return out


def _not_found(v: Any) -> Dict[str, list]:
    src = v if isinstance(v, Mapping) else {}
    return {k: list(src[k]) for k in SUMMARY_KINDS if isinstance(src.get(k), list) and src[k]}


@dataclass
class CrudSummary:
    added: Dict[str, int] = field(default_factory=dict)
    deleted: Dict[str, int] = field(default_factory=dict)
    existing: Dict[str, int] = field(default_factory=dict)
    not_found: Dict[str, list] = field(default_factory=dict)

    @classmethod
    def from_response(cls, resp: requests.Response) -> "CrudSummary":
        data = safe_json(resp)
        if not isinstance(data, Mapping):
            data = {}
        return cls(
            added=_counts(data.get("added")),
            deleted=_counts(data.get("deleted")),
            existing=_counts(data.get("existing")),
            not_found=_not_found(data.get("not_found")),
        )

    @property
    def not_found_count(self) -> int:
        return sum(len(v) for v in self.not_found.values())

    def as_dict(self) -> Dict[str, Any]:
        return {
            "added": dict(self.added),
            "deleted": dict(self.deleted),
            "existing": dict(self.existing),
            "not_found": {k: len(v) for k, v in self.not_found.items()},
        }


def mutate(adapter: Adapter, op: str, path: str, items: Iterable[TraktItem], *, want: int) -> CrudSummary:
    body = build_items_body(items)
    resp = adapter.call("POST", path, want=(want,), body=body)
    summary = CrudSummary.from_response(resp)
    adapter.log_summary(op, summary)
    return summary
