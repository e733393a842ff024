from __future__ import annotations

import json

import pytest

from homefeed.feed.libraries import build_latest_requests, visible_libraries
from homefeed.feed.models import Library
from homefeed.feed import telemetry
from homefeed.feed.telemetry import get_telemetry_sink, reset_telemetry_sink, timed_fetch


def test_latest_requests_only_for_supported_collection_types():
    libraries = [
        Library("lib-movies", "Movies", "movies"),
        Library("lib-tv", "Shows", "TVShows"),
        Library("lib-live", "Live TV", "livetv"),
        Library("lib-music", "Music", "music"),
        Library("lib-mixed", "Recordings", None),
        Library("lib-home", "Home Videos", "homevideos"),
    ]

    requests = build_latest_requests(libraries, limit=12)

    assert [r.library_id for r in requests] == ["lib-movies", "lib-tv", "lib-mixed", "lib-home"]
    assert requests[0].title == "Recently Added in Movies"
    assert all(r.limit == 12 for r in requests)


def test_hidden_libraries_are_removed():
    libraries = [Library("a", "A", "movies"), Library("b", "B", "movies")]
    assert [lib.id for lib in visible_libraries(libraries, ("b",))] == ["a"]


@pytest.fixture
def telemetry_file(tmp_path, monkeypatch):
    target = tmp_path / "telemetry" / "feed.jsonl"
    monkeypatch.setenv("HOMEFEED_TELEMETRY", str(target))
    reset_telemetry_sink()
    yield target
    reset_telemetry_sink()


def test_timed_fetch_records_count(telemetry_file):
    with timed_fetch("latest:lib-movies") as sample:
        sample.count = 7

    lines = telemetry_file.read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[0])
    assert payload["category"] == "home_feed"
    assert payload["name"] == "latest:lib-movies"
    assert payload["count"] == 7
    assert payload["duration"] >= 0


def test_timed_fetch_records_even_when_fetch_raises(telemetry_file):
    with pytest.raises(RuntimeError):
        with timed_fetch("sports"):
            raise RuntimeError("boom")

    payload = json.loads(telemetry_file.read_text(encoding="utf-8").splitlines()[0])
    assert payload["name"] == "sports"
    assert "count" not in payload


def test_no_sink_without_environment(monkeypatch):
    monkeypatch.delenv("HOMEFEED_TELEMETRY", raising=False)
    reset_telemetry_sink()
    assert get_telemetry_sink() is None
    with timed_fetch("hero") as sample:
        sample.count = 1
    assert telemetry._sink is None
