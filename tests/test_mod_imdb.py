# WatchBridge test scripts
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
import responses

from providers.sync._mod_IMDB import ImdbSource, build_source, parse_export
from providers.sync._mod_base import SourceFormatError
from wb_platform.models import ItemKind

TITLES_CSV = (
    "\ufeffPosition,Const,Created,Modified,Description,Title,URL,Title Type,IMDb Rating,Runtime (mins),Year,Genres,Num Votes,Release Date,Directors\n"
    "1,tt0111161,2023-05-01,2023-05-01,,The Shawshank Redemption,https://www.imdb.com/title/tt0111161/,Movie,9.3,142,1994,Drama,2800000,1994-09-23,Frank Darabont\n"
    "2,tt0903747,2023-05-02,2023-05-02,,Breaking Bad,https://www.imdb.com/title/tt0903747/,TV Series,9.5,49,2008,Drama,2000000,2008-01-20,\n"
    "3,tt0959621,2023-05-03,2023-05-03,,Pilot,https://www.imdb.com/title/tt0959621/,TV Episode,9.0,58,2008,Drama,40000,2008-01-20,Vince Gilligan\n"
)

PEOPLE_CSV = (
    "Position,Const,Created,Modified,Description,Name,Known For,Birth Date\n"
    "1,nm0000151,2023-06-01,2023-06-01,,Morgan Freeman,The Shawshank Redemption,1937-06-01\n"
)

RATINGS_CSV = (
    "Const,Your Rating,Date Rated,Title,URL,Title Type,IMDb Rating,Runtime (mins),Year,Genres,Num Votes,Release Date,Directors\n"
    "tt0111161,10,2022-01-15,The Shawshank Redemption,https://www.imdb.com/title/tt0111161/,Movie,9.3,142,1994,Drama,2800000,1994-09-23,Frank Darabont\n"
    "tt0108778,7,2022-02-01,Friends,https://www.imdb.com/title/tt0108778/,TV Series,8.9,22,1994,Comedy,1000000,1994-09-22,\n"
)


def test_parse_titles_export() -> None:
    items = parse_export(TITLES_CSV)
    assert [(i.id, i.kind) for i in items] == [
        ("tt0111161", ItemKind.MOVIE),
        ("tt0903747", ItemKind.SHOW),
        ("tt0959621", ItemKind.EPISODE),
    ]
    assert items[0].created == datetime(2023, 5, 1, tzinfo=timezone.utc)
    assert all(i.rating is None for i in items)


def test_parse_people_export() -> None:
    items = parse_export(PEOPLE_CSV)
    assert len(items) == 1
    assert items[0].kind is ItemKind.PERSON
    assert items[0].id == "nm0000151"


def test_parse_ratings_export() -> None:
    items = parse_export(RATINGS_CSV)
    assert [(i.id, i.kind, i.rating) for i in items] == [
        ("tt0111161", ItemKind.MOVIE, 10),
        ("tt0108778", ItemKind.SHOW, 7),
    ]
    assert items[1].created == datetime(2022, 2, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "Foo,Bar\n1,2\n",
        "Const,Your Rating,Date Rated,Title Type\ntt01,ten,2022-01-01,Movie\n",
        "Const,Your Rating,Date Rated,Title Type\ntt01,7,01/02/2022,Movie\n",
    ],
)
def test_parse_rejects_malformed_exports(text: str) -> None:
    with pytest.raises(SourceFormatError):
        parse_export(text)


def test_blank_rows_are_ignored() -> None:
    items = parse_export(PEOPLE_CSV + "\n,,,,,,,\n")
    assert len(items) == 1


def test_export_list_downloads_csv_and_name(tmp_path: Path) -> None:
    src = ImdbSource(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.imdb.com/list/ls000000001/export", body=TITLES_CSV, status=200)
        rsps.add(
            responses.GET,
            "https://www.imdb.com/list/ls000000001/",
            body="<html><body><h1 class='header'>My  <span>Favourite</span> Films</h1></body></html>",
            status=200,
        )
        src.export_lists(["ls000000001"])

    assert (tmp_path / "ls000000001.csv").exists()
    lists = src.get_lists(["ls000000001"])
    assert lists[0].name == "My Favourite Films"
    assert lists[0].id == "ls000000001"
    assert not lists[0].is_watchlist
    assert len(lists[0].items) == 3


def test_export_list_rejects_non_csv_without_writing(tmp_path: Path) -> None:
    src = ImdbSource(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.imdb.com/list/ls000000001/export", body="<html>sign in</html>", status=200)
        with pytest.raises(SourceFormatError):
            src.export_list("ls000000001")
    assert not (tmp_path / "ls000000001.csv").exists()


def test_configured_name_skips_page_scrape(tmp_path: Path) -> None:
    src = ImdbSource(tmp_path, list_names={"ls000000002": "Crime"})
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.imdb.com/list/ls000000002/export", body=TITLES_CSV, status=200)
        src.export_list("ls000000002")
        assert len(rsps.calls) == 1
    assert src.list_name("ls000000002") == "Crime"


def test_existing_export_kept_when_refresh_off(tmp_path: Path) -> None:
    (tmp_path / "ls000000003.csv").write_text(PEOPLE_CSV, encoding="utf-8")
    src = ImdbSource(tmp_path, refresh=False)
    with responses.RequestsMock():
        src.export_list("ls000000003")
    assert src.list_name("ls000000003") == "ls000000003"


def test_watchlist_and_ratings_read_from_export_dir(tmp_path: Path) -> None:
    (tmp_path / "watchlist.csv").write_text(TITLES_CSV, encoding="utf-8")
    (tmp_path / "ratings.csv").write_text(RATINGS_CSV, encoding="utf-8")
    src = ImdbSource(tmp_path)
    src.export_watchlist()
    src.export_ratings()

    wl = src.get_watchlist()
    assert wl.is_watchlist and wl.id == "watchlist"
    assert len(wl.items) == 3
    assert [r.rating for r in src.get_ratings()] == [10, 7]


def test_missing_ratings_export_is_reported(tmp_path: Path) -> None:
    with pytest.raises(SourceFormatError, match="ratings.csv"):
        ImdbSource(tmp_path).export_ratings()


def test_build_source_sets_cookies(tmp_path: Path) -> None:
    cfg = {"imdb": {"auth": "cookies", "cookie_at_main": "AT", "cookie_ubid_main": "UB", "export_dir": str(tmp_path)}}
    src = build_source(cfg)
    assert src.export_dir == tmp_path
    assert src.session.cookies.get("at-main", domain=".imdb.com") == "AT"
    assert src.session.cookies.get("ubid-main", domain=".imdb.com") == "UB"
