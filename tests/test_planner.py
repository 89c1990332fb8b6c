from __future__ import annotations

from datetime import datetime, timezone

from wb_platform.models import ZERO_TIME, IDMeta, Item, ItemKind, ItemSpec, MediaList, TraktItem, TraktList
from wb_platform.orchestrator._planner import index_target, infer_list_slug, items_difference, list_diff


def _ts(day: int) -> datetime:
    return datetime(2024, 1, day, tzinfo=timezone.utc)


def _dst(imdb: str, kind: ItemKind = ItemKind.MOVIE, rating: int | None = None, day: int = 1) -> TraktItem:
    return TraktItem(type=kind, spec=ItemSpec(ids=IDMeta(imdb=imdb), rating=rating), created=_ts(day), rating=rating)


def _ids(items: list[TraktItem]) -> list[str | None]:
    return [it.spec.ids.imdb for it in items]


def test_diff_adds_missing_and_removes_target_only() -> None:
    src = {
        "tt01": Item(id="tt01", kind=ItemKind.MOVIE, created=_ts(1)),
        "tt02": Item(id="tt02", kind=ItemKind.SHOW, created=_ts(2)),
    }
    dst = {"tt01": _dst("tt01"), "tt03": _dst("tt03", day=5)}

    d = items_difference(src, dst)
    assert _ids(d.add) == ["tt02"]
    assert d.add[0].type is ItemKind.SHOW
    assert _ids(d.remove) == ["tt03"]
    assert d.remove[0].created == ZERO_TIME


def test_diff_identical_sides_is_empty() -> None:
    src = {"tt01": Item(id="tt01", kind=ItemKind.MOVIE, created=_ts(1), rating=7)}
    dst = {"tt01": _dst("tt01", rating=7)}
    d = items_difference(src, dst)
    assert not d
    assert d.add == [] and d.remove == []


def test_diff_empty_source_removes_everything() -> None:
    dst = {"tt01": _dst("tt01"), "tt02": _dst("tt02")}
    d = items_difference({}, dst)
    assert d.add == []
    assert sorted(_ids(d.remove)) == ["tt01", "tt02"]


def test_rating_change_is_an_add_with_source_values() -> None:
    created = _ts(3)
    src = {"tt01": Item(id="tt01", kind=ItemKind.MOVIE, created=created, rating=8)}
    dst = {"tt01": _dst("tt01", rating=6)}

    d = items_difference(src, dst)
    assert d.remove == []
    assert len(d.add) == 1
    spec = d.add[0].spec
    assert spec.rating == 8
    assert spec.rated_at == "2024-01-03T00:00:00.000Z"
    assert spec.watched_at == spec.rated_at


def test_unrated_source_does_not_trigger_rating_update() -> None:
    src = {"tt01": Item(id="tt01", kind=ItemKind.MOVIE, created=_ts(1))}
    dst = {"tt01": _dst("tt01", rating=6)}
    assert not items_difference(src, dst)


def test_adds_sorted_by_created_then_id() -> None:
    src = {
        "tt09": Item(id="tt09", kind=ItemKind.MOVIE, created=_ts(1)),
        "tt05": Item(id="tt05", kind=ItemKind.MOVIE, created=_ts(2)),
        "tt02": Item(id="tt02", kind=ItemKind.MOVIE, created=_ts(1)),
    }
    d = items_difference(src, {})
    assert _ids(d.add) == ["tt02", "tt09", "tt05"]


def test_every_target_only_key_is_removed_exactly_once() -> None:
    src = {f"tt{n:02d}": Item(id=f"tt{n:02d}", kind=ItemKind.MOVIE, created=_ts(1)) for n in range(0, 10, 2)}
    dst = {f"tt{n:02d}": _dst(f"tt{n:02d}") for n in range(0, 10, 3)}
    d = items_difference(src, dst)
    assert sorted(_ids(d.remove)) == sorted(set(dst) - set(src))
    assert sorted(_ids(d.add)) == sorted(set(src) - set(dst))


def test_index_target_skips_seasons_and_items_without_imdb_id() -> None:
    season = TraktItem(type=ItemKind.SEASON, spec=ItemSpec(ids=IDMeta(slug="s1")))
    no_id = TraktItem(type=ItemKind.MOVIE, spec=ItemSpec(ids=IDMeta(slug="x")))
    idx = index_target([season, no_id, _dst("tt01")])
    assert list(idx) == ["tt01"]


def test_list_diff_against_missing_target_adds_all() -> None:
    src = MediaList(id="ls000000001", name="Faves", items=[
        Item(id="tt01", kind=ItemKind.MOVIE, created=_ts(1)),
        Item(id="nm01", kind=ItemKind.PERSON, created=_ts(2)),
    ])
    d = list_diff(src, None)
    assert _ids(d.add) == ["tt01", "nm01"]
    assert d.remove == []


def test_list_diff_leaves_target_seasons_alone() -> None:
    src = MediaList(id="ls000000001", name="Faves", items=[Item(id="tt01", kind=ItemKind.MOVIE, created=_ts(1))])
    dst = TraktList(ids=IDMeta(slug="faves"), items=[
        _dst("tt01"),
        TraktItem(type=ItemKind.SEASON, spec=ItemSpec(ids=IDMeta(slug="s1"))),
    ])
    assert not list_diff(src, dst)


def test_infer_list_slug() -> None:
    assert infer_list_slug("My Favourite Films") == "my-favourite-films"
    assert infer_list_slug("  Sci-Fi  &  Horror!! ") == "sci-fi-horror"
    assert infer_list_slug("Best of 2023 (so far)") == "best-of-2023-so-far"
    assert infer_list_slug("snake_case list") == "snake_case-list"
    assert infer_list_slug("") == ""
