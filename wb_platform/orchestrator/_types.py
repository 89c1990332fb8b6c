# wb_platform/orchestrator/_types.py
# types and protocols for orchestrator.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..models import IDMeta, Item, ItemKind, MediaList, TraktItem, TraktList


class SourceOps(Protocol):
    def export_lists(self, lids: Iterable[str]) -> None: ...
    def export_watchlist(self) -> None: ...
    def export_ratings(self) -> None: ...
    def get_lists(self, lids: Iterable[str]) -> list[MediaList]: ...
    def get_watchlist(self) -> MediaList: ...
    def get_ratings(self) -> list[Item]: ...


class ListsResult(Protocol):
    lists: list[TraktList]
    delegated: list[Any]


class TargetOps(Protocol):
    def watchlist_get(self) -> TraktList: ...
    def watchlist_add(self, items: Iterable[TraktItem]) -> Any: ...
    def watchlist_remove(self, items: Iterable[TraktItem]) -> Any: ...
    def lists_get(self, ids: Sequence[IDMeta]) -> ListsResult: ...
    def list_add(self, slug: str, name: str) -> None: ...
    def list_items_add(self, slug: str, items: Iterable[TraktItem]) -> Any: ...
    def list_items_remove(self, slug: str, items: Iterable[TraktItem]) -> Any: ...
    def ratings_get(self) -> list[TraktItem]: ...
    def ratings_add(self, items: Iterable[TraktItem]) -> Any: ...
    def ratings_remove(self, items: Iterable[TraktItem]) -> Any: ...
    def history_get(self, kind: ItemKind, item_id: str) -> list[TraktItem]: ...
    def history_add(self, items: Iterable[TraktItem]) -> Any: ...
    def history_remove(self, items: Iterable[TraktItem]) -> Any: ...


@dataclass
class PhaseStats:
    added: int = 0
    removed: int = 0
    skipped_adds: int = 0
    skipped_removes: int = 0
    skipped: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "added": self.added,
            "removed": self.removed,
            "skipped_adds": self.skipped_adds,
            "skipped_removes": self.skipped_removes,
            "skipped": self.skipped,
        }


@dataclass
class SyncSummary:
    mode: str
    lists: PhaseStats = field(default_factory=PhaseStats)
    ratings: PhaseStats = field(default_factory=PhaseStats)
    history: PhaseStats = field(default_factory=PhaseStats)
    lists_created: list[str] = field(default_factory=list)

    @property
    def dry_run(self) -> bool:
        return self.mode == "dry-run"

    def as_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "dry_run": self.dry_run,
            "lists": self.lists.as_dict(),
            "ratings": self.ratings.as_dict(),
            "history": self.history.as_dict(),
            "lists_created": list(self.lists_created),
        }
