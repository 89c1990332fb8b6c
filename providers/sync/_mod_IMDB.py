# /providers/sync/_mod_IMDB.py
# WatchBridge IMDb source: reads the user's IMDb CSV exports (lists, watchlist, ratings)
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

__VERSION__ = "1.0.0"
__all__ = ["ImdbSource", "parse_export", "build_source", "WATCHLIST_ID"]

import csv
import io
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

import requests
from lxml import html

from _logging import log as _root_log
from wb_platform.models import Item, ItemKind, MediaList, kind_from_title_type

from ._mod_base import SourceFormatError, UnexpectedStatusCodeError
from ._mod_common import build_session

IMDB_BASE = "https://www.imdb.com"
LIST_PAGE = f"{IMDB_BASE}/list/{{lid}}/"
LIST_EXPORT = f"{IMDB_BASE}/list/{{lid}}/export"

WATCHLIST_ID = "watchlist"
WATCHLIST_FILE = "watchlist.csv"
RATINGS_FILE = "ratings.csv"

COOKIE_DOMAIN = ".imdb.com"

log = _root_log.child("IMDB")


# ── CSV parsing ───────────────────────────────────────────────────────────────
def _date(value: str, *, row: int) -> datetime:
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise SourceFormatError(f"row {row}: failure parsing date {value!r}") from e


def _layout(header: list[str]) -> str:
    cols = set(header)
    if "Position" in cols and "Known For" in cols:
        return "people"
    if "Position" in cols and "Title Type" in cols:
        return "titles"
    if {"Your Rating", "Date Rated", "Title Type"} <= cols:
        return "ratings"
    raise SourceFormatError(f"unrecognized imdb export with header {header}")


def parse_export(text: str) -> list[Item]:
    """Turn one IMDb CSV export (titles list, people list or ratings) into items."""
    rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    if not rows:
        raise SourceFormatError("expected imdb export to have at least a header row, got empty file")
    header = [h.strip() for h in rows[0]]
    kind = _layout(header)
    col = {name: n for n, name in enumerate(header)}

    def cell(rec: list[str], name: str) -> str:
        n = col[name]
        return rec[n] if n < len(rec) else ""

    items: list[Item] = []
    for n, rec in enumerate(rows[1:], start=2):
        if not any(c.strip() for c in rec):
            continue
        item_id = cell(rec, "Const").strip()
        if kind == "ratings":
            raw = cell(rec, "Your Rating").strip()
            try:
                rating = int(raw)
            except ValueError as e:
                raise SourceFormatError(f"row {n}: failure parsing rating {raw!r}") from e
            items.append(Item(
                id=item_id,
                kind=kind_from_title_type(cell(rec, "Title Type")),
                created=_date(cell(rec, "Date Rated"), row=n),
                rating=rating,
            ))
        elif kind == "titles":
            items.append(Item(
                id=item_id,
                kind=kind_from_title_type(cell(rec, "Title Type")),
                created=_date(cell(rec, "Created"), row=n),
            ))
        else:
            items.append(Item(id=item_id, kind=ItemKind.PERSON, created=_date(cell(rec, "Created"), row=n)))
    return items


# ── source ────────────────────────────────────────────────────────────────────
class ImdbSource:
    """Source collaborator backed by a directory of IMDb exports.

    Lists can be fetched by id without signing in; the watchlist and ratings
    exports have to be placed in the export directory by the user.
    """

    def __init__(
        self,
        export_dir: Path,
        *,
        session: requests.Session | None = None,
        list_names: Mapping[str, str] | None = None,
        refresh: bool = True,
    ):
        self.export_dir = Path(export_dir)
        self.session = session or requests.Session()
        self.list_names = dict(list_names or {})
        self.refresh = refresh

    # paths
    def _csv(self, name: str) -> Path:
        return self.export_dir / (name if name.endswith(".csv") else f"{name}.csv")

    def _name_file(self, lid: str) -> Path:
        return self.export_dir / f"{lid}.name"

    def _read(self, path: Path) -> list[Item]:
        if not path.exists():
            raise SourceFormatError(f"imdb export {path} is missing; export it from imdb.com into {self.export_dir}")
        return parse_export(path.read_text(encoding="utf-8"))

    @staticmethod
    def _write(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, path)

    def _get(self, url: str) -> requests.Response:
        r = self.session.get(url)
        if r.status_code != 200:
            raise UnexpectedStatusCodeError(r.status_code, (200,))
        return r

    # exports
    def export_list(self, lid: str) -> None:
        target = self._csv(lid)
        if target.exists() and not self.refresh:
            log.debug(f"using existing export for list {lid}")
            return
        csv_text = self._get(LIST_EXPORT.format(lid=lid)).text
        parse_export(csv_text)
        self._write(target, csv_text)
        if lid not in self.list_names:
            doc = html.fromstring(self._get(LIST_PAGE.format(lid=lid)).text or "<html/>")
            title = " ".join(t.strip() for t in doc.xpath("//h1//text()") if t.strip())
            if title:
                self._write(self._name_file(lid), title)
        log.info(f"exported imdb list {lid}")

    def export_lists(self, lids: Iterable[str]) -> None:
        for lid in lids:
            self.export_list(lid)

    def export_watchlist(self) -> None:
        self._read(self._csv(WATCHLIST_FILE))

    def export_ratings(self) -> None:
        self._read(self._csv(RATINGS_FILE))

    # reads
    def list_name(self, lid: str) -> str:
        if lid in self.list_names:
            return self.list_names[lid]
        nf = self._name_file(lid)
        if nf.exists():
            name = nf.read_text(encoding="utf-8").strip()
            if name:
                return name
        return lid

    def get_lists(self, lids: Iterable[str]) -> list[MediaList]:
        return [MediaList(id=lid, name=self.list_name(lid), items=self._read(self._csv(lid))) for lid in lids]

    def get_watchlist(self) -> MediaList:
        items = self._read(self._csv(WATCHLIST_FILE))
        return MediaList(id=WATCHLIST_ID, name="Watchlist", items=items, is_watchlist=True)

    def get_ratings(self) -> list[Item]:
        return self._read(self._csv(RATINGS_FILE))


def build_source(cfg: Mapping[str, Any], **kw: Any) -> ImdbSource:
    im = dict(cfg.get("imdb") or {})
    session = build_session(ctx=kw.get("ctx"), timeout=float(im.get("timeout") or 30), sleep=kw.get("sleep"))
    if str(im.get("auth") or "") == "cookies":
        session.cookies.set("at-main", str(im.get("cookie_at_main") or ""), domain=COOKIE_DOMAIN)
        session.cookies.set("ubid-main", str(im.get("cookie_ubid_main") or ""), domain=COOKIE_DOMAIN)
    export_dir = im.get("export_dir") or kw.get("default_dir") or "imdb"
    return ImdbSource(
        Path(export_dir),
        session=session,
        list_names=im.get("list_names") or {},
        refresh=bool(im.get("refresh_exports", True)),
    )
