# /providers/sync/_mod_TRAKT.py
# WatchBridge Trakt client: typed watchlist/list/ratings/history operations over the retrying, signed session
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

__VERSION__ = "1.0.0"
__all__ = ["TraktClient", "ListsFetch", "build_client"]

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

import requests

from _logging import log as _root_log
from providers.auth._auth_TRAKT import AuthClient, TokenState, TraktAuth, token_from_config
from providers.auth._browser_TRAKT import Browser
from wb_platform.models import IDMeta, ItemKind, TraktItem, TraktList

from ._mod_base import ListNotFoundError, ModuleError, RunContext
from ._mod_common import SleepFn, build_session, safe_json
from .trakt import _history, _lists, _ratings, _watchlist
from .trakt._common import BASE, PATH_USER_INFO, CrudSummary, expect

DEFAULT_LISTS_WORKERS = 4

log = _root_log.child("TRAKT")


@dataclass
class ListsFetch:
    lists: list[TraktList] = field(default_factory=list)
    delegated: list[ListNotFoundError] = field(default_factory=list)


class TraktClient:
    """Owns one signed, retrying session; every operation goes through call()."""

    def __init__(
        self,
        session: requests.Session,
        *,
        base_url: str = BASE,
        lists_workers: int = DEFAULT_LISTS_WORKERS,
        ctx: RunContext | None = None,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.lists_workers = max(1, int(lists_workers))
        self.ctx = ctx
        self._username: str | None = None
        self._user_lock = threading.Lock()

    # plumbing
    def call(
        self,
        method: str,
        path: str,
        *,
        want: tuple[int, ...],
        body: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> requests.Response:
        if self.ctx is not None:
            self.ctx.check()
        resp = self.session.request(method, f"{self.base_url}{path}", json=body, params=params)
        return expect(resp, want)

    def username(self) -> str:
        if self._username is not None:
            return self._username
        with self._user_lock:
            if self._username is None:
                data = safe_json(self.call("GET", PATH_USER_INFO, want=(200,)))
                name = str((data or {}).get("username") or "").strip() if isinstance(data, Mapping) else ""
                if not name:
                    raise ModuleError("trakt user info response carried no username")
                self._username = name
                log.debug(f"resolved trakt user {name}")
        return self._username

    def log_summary(self, op: str, summary: CrudSummary) -> None:
        log.info(f"synced trakt {op}", extra=summary.as_dict())
        if summary.not_found_count:
            log.warn(f"trakt could not match {summary.not_found_count} item(s) during {op}", extra={"not_found": summary.not_found})

    # watchlist
    def watchlist_get(self) -> TraktList:
        return _watchlist.get(self)

    def watchlist_add(self, items: Iterable[TraktItem]) -> CrudSummary:
        return _watchlist.add(self, items)

    def watchlist_remove(self, items: Iterable[TraktItem]) -> CrudSummary:
        return _watchlist.remove(self, items)

    # lists
    def list_get(self, ids: IDMeta) -> TraktList:
        return _lists.get(self, ids)

    def lists_get(self, ids: Sequence[IDMeta]) -> ListsFetch:
        """Fetch several lists at once.

        A missing list is delegated back to the caller; any other failure
        cancels the outstanding fetches and is raised with no partial result.
        """
        out = ListsFetch()
        if not ids:
            return out
        order = {id(m): n for n, m in enumerate(ids)}
        found: list[tuple[int, TraktList]] = []
        ex = ThreadPoolExecutor(max_workers=min(self.lists_workers, len(ids)), thread_name_prefix="trakt-lists")
        try:
            futs = {ex.submit(self.list_get, m): m for m in ids}
            for f in as_completed(futs):
                try:
                    found.append((order[id(futs[f])], f.result()))
                except ListNotFoundError as e:
                    log.debug(f"trakt list {e.slug} does not exist yet")
                    out.delegated.append(e)
        finally:
            ex.shutdown(wait=False, cancel_futures=True)
        out.lists = [lst for _, lst in sorted(found, key=lambda t: t[0])]
        return out

    def list_add(self, slug: str, name: str) -> None:
        _lists.create(self, name)
        log.info(f"created trakt list {slug}")

    def list_items_add(self, slug: str, items: Iterable[TraktItem]) -> CrudSummary:
        return _lists.add(self, slug, items)

    def list_items_remove(self, slug: str, items: Iterable[TraktItem]) -> CrudSummary:
        return _lists.remove(self, slug, items)

    # ratings
    def ratings_get(self) -> list[TraktItem]:
        return _ratings.get(self)

    def ratings_add(self, items: Iterable[TraktItem]) -> CrudSummary:
        return _ratings.add(self, items)

    def ratings_remove(self, items: Iterable[TraktItem]) -> CrudSummary:
        return _ratings.remove(self, items)

    # history
    def history_get(self, kind: ItemKind, item_id: str) -> list[TraktItem]:
        return _history.get(self, kind, item_id)

    def history_add(self, items: Iterable[TraktItem]) -> CrudSummary:
        return _history.add(self, items)

    def history_remove(self, items: Iterable[TraktItem]) -> CrudSummary:
        return _history.remove(self, items)


def build_client(
    cfg: Mapping[str, Any],
    *,
    ctx: RunContext | None = None,
    on_token: Callable[[TokenState], None] | None = None,
    sleep: SleepFn | None = None,
) -> TraktClient:
    """Wire the transport stack: retry session, device-flow auth on top, client facade."""
    tr = dict(cfg.get("trakt") or {})
    timeout = float(tr.get("timeout") or 30)

    def _session() -> requests.Session:
        return build_session(ctx=ctx, timeout=timeout, sleep=sleep)

    browser = Browser(str(tr.get("email") or ""), str(tr.get("password") or ""), session=_session())
    auth_client = AuthClient(str(tr.get("client_id") or ""), str(tr.get("client_secret") or ""), session=_session())
    api = _session()
    api.auth = TraktAuth(auth_client, browser, token=token_from_config(cfg), on_token=on_token)
    return TraktClient(api, lists_workers=int(tr.get("lists_workers") or DEFAULT_LISTS_WORKERS), ctx=ctx)
