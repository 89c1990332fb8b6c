# wb_platform/models.py
# WatchBridge shared data model: source items, target items, lists, diffs and sync modes.
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

__all__ = [
    "ItemKind",
    "SyncMode",
    "IDMeta",
    "ItemSpec",
    "Item",
    "TraktItem",
    "MediaList",
    "TraktList",
    "Diff",
    "ZERO_TIME",
    "kind_from_title_type",
    "format_ts",
    "parse_ts",
]

# Removals whose id never existed on the source sort first.
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


class ItemKind(str, Enum):
    MOVIE = "movie"
    SHOW = "show"
    EPISODE = "episode"
    SEASON = "season"
    PERSON = "person"

    @property
    def bucket(self) -> str:
        """Plural key used in Trakt request and response bodies."""
        return "people" if self is ItemKind.PERSON else f"{self.value}s"


class SyncMode(str, Enum):
    FULL = "full"
    ADD_ONLY = "add-only"
    DRY_RUN = "dry-run"

    @property
    def allows_add(self) -> bool:
        return self is not SyncMode.DRY_RUN

    @property
    def allows_remove(self) -> bool:
        return self is SyncMode.FULL

    @classmethod
    def parse(cls, value: Any) -> "SyncMode":
        v = str(value or "").strip().lower()
        for m in cls:
            if m.value == v:
                return m
        raise ValueError(f"unknown sync mode {value!r}; expected one of: {', '.join(m.value for m in cls)}")


_TITLE_TYPES: dict[str, ItemKind] = {
    "movie": ItemKind.MOVIE,
    "tv series": ItemKind.SHOW,
    "tv mini series": ItemKind.SHOW,
    "tv episode": ItemKind.EPISODE,
    "person": ItemKind.PERSON,
}


def kind_from_title_type(title_type: str | None) -> ItemKind:
    # IMDb has more title types (short, video, tv movie...); Trakt only knows them as movies.
    return _TITLE_TYPES.get(str(title_type or "").strip().lower(), ItemKind.MOVIE)


def format_ts(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def parse_ts(value: Any) -> datetime | None:
    s = str(value or "").strip()
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class IDMeta:
    imdb: str | None = None
    slug: str | None = None
    list_id: str | None = None
    list_name: str | None = None

    def to_json(self) -> dict[str, str]:
        # Only the ids Trakt understands go on the wire.
        out: dict[str, str] = {}
        if self.imdb:
            out["imdb"] = self.imdb
        if self.slug:
            out["slug"] = self.slug
        return out


@dataclass(frozen=True)
class ItemSpec:
    ids: IDMeta
    rated_at: str | None = None
    rating: int | None = None
    watched_at: str | None = None

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"ids": self.ids.to_json()}
        if self.rated_at is not None:
            out["rated_at"] = self.rated_at
        if self.rating is not None:
            out["rating"] = self.rating
        if self.watched_at is not None:
            out["watched_at"] = self.watched_at
        return out


@dataclass(frozen=True)
class Item:
    """A source-side item as exported by the user's source account."""

    id: str
    kind: ItemKind
    created: datetime = ZERO_TIME
    rating: int | None = None

    def to_trakt(self) -> "TraktItem":
        if self.rating is not None:
            ts = format_ts(self.created)
            spec = ItemSpec(ids=IDMeta(imdb=self.id), rated_at=ts, rating=self.rating, watched_at=ts)
        else:
            spec = ItemSpec(ids=IDMeta(imdb=self.id))
        return TraktItem(type=self.kind, spec=spec, created=self.created, rating=self.rating)


@dataclass(frozen=True)
class TraktItem:
    """Target-side item: a kind tag plus the single spec that kind carries."""

    type: ItemKind
    spec: ItemSpec
    created: datetime = ZERO_TIME
    rating: int | None = None

    def external_id(self) -> str | None:
        if self.type is ItemKind.SEASON:
            return None
        if self.type in (ItemKind.MOVIE, ItemKind.SHOW, ItemKind.EPISODE, ItemKind.PERSON):
            return self.spec.ids.imdb or None
        raise ValueError(f"unknown trakt item type {self.type!r}")

    def with_created(self, created: datetime) -> "TraktItem":
        return TraktItem(type=self.type, spec=self.spec, created=created, rating=self.rating)

    @classmethod
    def from_json(cls, row: Mapping[str, Any]) -> "TraktItem":
        try:
            kind = ItemKind(str(row.get("type") or "").lower())
        except ValueError as e:
            raise ValueError(f"unknown trakt item type {row.get('type')!r}") from e
        body = row.get(kind.value) or {}
        ids = body.get("ids") or {}
        rating = row.get("rating")
        rating = int(rating) if rating is not None else None
        rated_at = row.get("rated_at")
        created = parse_ts(rated_at) or parse_ts(row.get("listed_at")) or parse_ts(row.get("watched_at")) or ZERO_TIME
        spec = ItemSpec(
            ids=IDMeta(imdb=ids.get("imdb") or None, slug=ids.get("slug") or None),
            rated_at=rated_at,
            rating=rating,
        )
        return cls(type=kind, spec=spec, created=created, rating=rating)


@dataclass
class MediaList:
    """A source-side list; exactly one per account is the watchlist."""

    id: str
    name: str
    items: list[Item] = field(default_factory=list)
    is_watchlist: bool = False

    def idmeta(self, slug: str | None) -> IDMeta:
        return IDMeta(slug=slug, list_id=self.id, list_name=self.name)


@dataclass
class TraktList:
    ids: IDMeta
    name: str = ""
    items: list[TraktItem] = field(default_factory=list)
    is_watchlist: bool = False


@dataclass
class Diff:
    add: list[TraktItem] = field(default_factory=list)
    remove: list[TraktItem] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.add or self.remove)
