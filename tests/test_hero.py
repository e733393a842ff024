"""Tests for hero carousel selection."""
from __future__ import annotations

import random
from datetime import date

from homefeed.feed.catalog import InMemoryCatalog
from homefeed.feed.hero import HeroSelector
from homefeed.feed.models import MediaItem, MediaKind, User


def _movie(item_id: str, library: str, released: date, kind: MediaKind = MediaKind.MOVIE, parent=None):
    return MediaItem(
        id=item_id,
        title=f"Title {item_id}",
        kind=kind,
        library_id=library,
        parent_id=parent or library,
        premiere_date=released,
    )


def _library_items():
    return [
        _movie("m1", "lib-movies", date(2024, 2, 1)),
        _movie("m2", "lib-movies", date(2023, 6, 1)),
        _movie("m3", "lib-movies", date(2022, 1, 1)),
        _movie("s1", "lib-shows", date(2024, 3, 1), MediaKind.SERIES),
        _movie("s2", "lib-shows", date(2021, 3, 1), MediaKind.SERIES),
        _movie("s3", "lib-shows", date(2020, 3, 1), MediaKind.SERIES),
        # Episodes are never hero material
        _movie("e1", "lib-shows", date(2024, 4, 1), MediaKind.EPISODE),
    ]


async def test_featured_collection_wins_and_skips_fallback():
    featured = MediaItem(id="featured", title="Featured", kind=MediaKind.BOX_SET)
    a = _movie("A", "lib-movies", date(2024, 5, 1), parent="featured")
    b = _movie("B", "lib-movies", date(2023, 1, 1), parent="featured")
    catalog = InMemoryCatalog(User("u1"), items=[featured, b, a] + _library_items())

    result = await HeroSelector(catalog, limit=10).select("u1", ["lib-movies", "lib-shows"])

    assert [i.id for i in result] == ["A", "B"]
    assert catalog.calls["get_items"] == 2
    assert catalog.calls["get_items:lib-movies"] == 0
    assert catalog.calls["get_items:lib-shows"] == 0


async def test_empty_featured_collection_falls_back():
    featured = MediaItem(id="featured", title="Featured", kind=MediaKind.FOLDER)
    catalog = InMemoryCatalog(User("u1"), items=[featured] + _library_items())

    result = await HeroSelector(catalog, limit=10, rng=random.Random(7)).select("u1", ["lib-movies"])

    assert {i.id for i in result} == {"m1", "m2", "m3"}
    assert catalog.calls["get_items:lib-movies"] == 1


async def test_fallback_returns_union_of_libraries():
    catalog = InMemoryCatalog(User("u1"), items=_library_items())

    result = await HeroSelector(catalog, limit=10, rng=random.Random(1)).select(
        "u1", ["lib-movies", "lib-shows"]
    )

    assert sorted(i.id for i in result) == ["m1", "m2", "m3", "s1", "s2", "s3"]
    assert len(result) == len({i.id for i in result})


async def test_fallback_respects_limit_and_dedupes_overlap():
    items = _library_items()
    # Same item reachable from two libraries
    items.append(MediaItem(id="m1", title="Title m1", library_id="lib-shows", parent_id="lib-shows",
                           premiere_date=date(2024, 2, 1)))
    catalog = InMemoryCatalog(User("u1"))
    for item in items:
        catalog.add_item(item, key=f"{item.id}:{item.library_id}")

    result = await HeroSelector(catalog, limit=4, rng=random.Random(3)).select(
        "u1", ["lib-movies", "lib-shows"]
    )

    assert len(result) == 4
    assert len({i.id for i in result}) == 4


async def test_failing_library_is_excluded_not_fatal(caplog):
    catalog = InMemoryCatalog(User("u1"), items=_library_items())
    catalog.fail("get_items:lib-shows")

    with caplog.at_level("ERROR"):
        result = await HeroSelector(catalog, limit=10).select("u1", ["lib-movies", "lib-shows"])

    assert sorted(i.id for i in result) == ["m1", "m2", "m3"]
    assert any("lib-shows" in r.getMessage() for r in caplog.records)


async def test_non_positive_limit_yields_empty_without_queries():
    catalog = InMemoryCatalog(User("u1"), items=_library_items())

    assert await HeroSelector(catalog, limit=0).select("u1", ["lib-movies"]) == []
    assert catalog.calls["get_items"] == 0


async def test_nothing_anywhere_is_an_empty_carousel():
    catalog = InMemoryCatalog(User("u1"))
    assert await HeroSelector(catalog).select("u1", []) == []


async def test_keyed_add_item_keeps_copies_sharing_an_id():
    catalog = InMemoryCatalog(User("u1"))
    first = _movie("m1", "lib-movies", date(2024, 2, 1))
    second = _movie("m1", "lib-shows", date(2024, 2, 1))

    catalog.add_item(first, key="m1:lib-movies")
    catalog.add_item(second, key="m1:lib-shows")

    assert catalog.get("m1:lib-movies") is first
    assert catalog.get("m1:lib-shows") is second
    assert catalog.get("m1") is None
