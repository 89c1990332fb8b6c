# wb_platform/orchestrator/facade.py
# One-way sync run: hydrate both sides, then lists, ratings and history in that order.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from collections.abc import Callable, Mapping
from typing import Any

from providers.auth._auth_TRAKT import token_saver
from providers.sync._mod_base import ListNotFoundError, RunContext

from ..models import Diff, IDMeta, Item, MediaList, SyncMode, TraktItem, TraktList
from ..modules_registry import load_source, load_target
from ._applier import apply_diff
from ._history import derive_history
from ._logging import Emitter, ProgressFn
from ._planner import index_target, infer_list_slug, items_difference, list_diff
from ._types import SourceOps, SyncSummary, TargetOps

__all__ = ["Orchestrator", "run_sync"]


@dataclass
class Orchestrator:
    config: Mapping[str, Any]
    source: SourceOps
    target: TargetOps
    mode: SyncMode | None = None
    ctx: RunContext | None = None
    on_progress: ProgressFn | None = None

    # feature toggles (set in __post_init__)
    authless: bool = field(init=False, default=False)
    lists_enabled: bool = field(init=False, default=True)
    watchlist_enabled: bool = field(init=False, default=False)
    ratings_enabled: bool = field(init=False, default=False)
    history_enabled: bool = field(init=False, default=False)
    list_ids: list[str] = field(init=False, default_factory=list)

    # hydrated state, keyed by source id
    source_lists: dict[str, MediaList] = field(init=False, default_factory=dict)
    target_lists: dict[str, TraktList] = field(init=False, default_factory=dict)
    source_ratings: dict[str, Item] = field(init=False, default_factory=dict)
    target_ratings: dict[str, TraktItem] = field(init=False, default_factory=dict)

    summary: SyncSummary = field(init=False)
    emitter: Emitter = field(init=False)

    def __post_init__(self) -> None:
        cfg = dict(self.config or {})
        sy = dict(cfg.get("sync") or {})
        im = dict(cfg.get("imdb") or {})
        if self.mode is None:
            self.mode = SyncMode.parse(sy.get("mode") or SyncMode.DRY_RUN.value)
        self.authless = str(im.get("auth") or "none") == "none"
        self.lists_enabled = bool(sy.get("lists", True))
        self.watchlist_enabled = bool(sy.get("watchlist", False))
        self.ratings_enabled = bool(sy.get("ratings", False))
        self.history_enabled = bool(sy.get("history", False))
        self.list_ids = [str(x) for x in (im.get("lists") or [])] if self.lists_enabled else []
        self.summary = SyncSummary(mode=self.mode.value)
        self.emitter = Emitter(self.on_progress)
        self._ratings_diff: Diff | None = None

    @property
    def sync_mode(self) -> SyncMode:
        assert self.mode is not None
        return self.mode

    def _check(self) -> None:
        if self.ctx is not None:
            self.ctx.check()

    # Hydrate
    def hydrate(self) -> None:
        lids = list(self.list_ids)
        if self.ratings_enabled and not self.authless:
            self.source.export_ratings()
        if lids:
            self.source.export_lists(lids)
        if self.watchlist_enabled and not self.authless:
            self.source.export_watchlist()
        self._check()

        if lids:
            self._hydrate_lists(lids)
        if self.authless:
            self.emitter.info("imdb auth is none; only lists by id are hydrated")
            return

        if self.watchlist_enabled:
            src_wl = self.source.get_watchlist()
            self.source_lists[src_wl.id] = src_wl
            self.target_lists[src_wl.id] = self.target.watchlist_get()
        if self.ratings_enabled:
            self.target_ratings = index_target(self.target.ratings_get())
            self.source_ratings = {it.id: it for it in self.source.get_ratings() if it.id}
        self._check()

    def _hydrate_lists(self, lids: list[str]) -> None:
        metas: list[IDMeta] = []
        for src in self.source.get_lists(lids):
            self.source_lists[src.id] = src
            metas.append(src.idmeta(infer_list_slug(src.name)))
        by_slug = {m.slug: m for m in metas}

        fetched = self.target.lists_get(metas)
        for err in fetched.delegated:
            if not isinstance(err, ListNotFoundError):
                raise err
            meta = by_slug.get(err.slug)
            name = (meta.list_name if meta else None) or err.slug
            if self.sync_mode is SyncMode.DRY_RUN:
                self.emitter.info(
                    f"sync mode {self.sync_mode.value} would have created trakt list {err.slug} to backfill imdb list {name}"
                )
                continue
            self._check()
            self.target.list_add(err.slug, name)
            self.summary.lists_created.append(err.slug)
            self.emitter.emit("list:created", slug=err.slug, name=name)
        for lst in fetched.lists:
            if lst.ids.list_id:
                self.target_lists[lst.ids.list_id] = lst

    # Lists
    def sync_lists(self) -> None:
        if not self.lists_enabled and not self.watchlist_enabled:
            self.emitter.info("skipping lists sync")
            self.summary.lists.skipped = True
            return
        for lid in sorted(self.source_lists, key=lambda k: (not self.source_lists[k].is_watchlist, k)):
            self._check()
            src = self.source_lists[lid]
            diff = list_diff(src, self.target_lists.get(lid))
            if src.is_watchlist:
                add, remove, feature = self.target.watchlist_add, self.target.watchlist_remove, "watchlist"
            else:
                slug = infer_list_slug(src.name)
                add = partial(self.target.list_items_add, slug)
                remove = partial(self.target.list_items_remove, slug)
                feature = slug
            self.emitter.dbg(f"list {feature}: {len(diff.add)} to add, {len(diff.remove)} to remove")
            apply_diff(diff=diff, mode=self.sync_mode, feature=feature, add=add, remove=remove,
                       emitter=self.emitter, stats=self.summary.lists)

    # Ratings
    def ratings_diff(self) -> Diff:
        if self._ratings_diff is None:
            self._ratings_diff = items_difference(self.source_ratings, self.target_ratings)
        return self._ratings_diff

    def sync_ratings(self) -> None:
        if self.authless:
            self.emitter.info("skipping ratings sync since no imdb auth was provided")
            self.summary.ratings.skipped = True
            return
        if not self.ratings_enabled:
            self.emitter.info("skipping ratings sync")
            self.summary.ratings.skipped = True
            return
        apply_diff(diff=self.ratings_diff(), mode=self.sync_mode, feature="ratings",
                   add=self.target.ratings_add, remove=self.target.ratings_remove,
                   emitter=self.emitter, stats=self.summary.ratings)

    # History
    def sync_history(self) -> None:
        if self.authless:
            self.emitter.info("skipping history sync since no imdb auth was provided")
            self.summary.history.skipped = True
            return
        if not self.history_enabled:
            self.emitter.info("skipping history sync")
            self.summary.history.skipped = True
            return
        if not self.ratings_enabled:
            self.emitter.warn("history is derived from ratings, but ratings sync is disabled; nothing to derive")
        derived = derive_history(self.ratings_diff(), self.target.history_get, check=self._check)
        apply_diff(diff=derived, mode=self.sync_mode, feature="history",
                   add=self.target.history_add, remove=self.target.history_remove,
                   emitter=self.emitter, stats=self.summary.history)

    # Run
    def run(self) -> SyncSummary:
        phases: tuple[tuple[str, Callable[[], None]], ...] = (
            ("hydrate", self.hydrate),
            ("lists", self.sync_lists),
            ("ratings", self.sync_ratings),
            ("history", self.sync_history),
        )
        self.emitter.info(f"sync started (mode {self.sync_mode.value})")
        self.emitter.emit("run:start", mode=self.sync_mode.value)
        for name, fn in phases:
            self._check()
            self.emitter.emit("phase:start", phase=name)
            try:
                fn()
            except Exception as e:
                self.emitter.log.error(f"failure during {name}: {e}")
                self.emitter.emit("phase:error", phase=name, error=str(e))
                raise
            self.emitter.emit("phase:done", phase=name)
        self.emitter.log.success("sync completed", extra=_flat(self.summary.as_dict()))
        self.emitter.emit("run:done", summary=self.summary.as_dict())
        return self.summary


def _flat(summary: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in summary.items():
        if isinstance(v, Mapping):
            if v.get("skipped"):
                out[k] = "skipped"
                continue
            out[k] = f"+{v.get('added', 0)}/-{v.get('removed', 0)}"
        elif k != "lists_created" or v:
            out[k] = v
    return out



def run_sync(
    cfg: dict[str, Any],
    *,
    mode: SyncMode | None = None,
    ctx: RunContext | None = None,
    on_progress: ProgressFn | None = None,
    save: Callable[[dict[str, Any]], None] | None = None,
) -> SyncSummary:
    """Build source and target from config and run one sync. Refreshed trakt token fields go through `save`."""
    source = load_source(cfg, ctx=ctx)
    target = load_target(cfg, ctx=ctx, on_token=token_saver(cfg, save))
    return Orchestrator(cfg, source, target, mode=mode, ctx=ctx, on_progress=on_progress).run()
