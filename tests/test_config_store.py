from __future__ import annotations

import json
from pathlib import Path

import pytest

from homefeed.core.config import ConfigStore, FeedConfig, FEED_SECTION
from homefeed.core.services import FeedServices


def test_config_store_persists_section_values(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    store = ConfigStore(config_path)

    store.update_section("Home_Feed", {"max_items_per_row": 12})
    store.update_section("home_feed", {"combine_continue_next": True})

    reload_store = ConfigStore(config_path)
    assert reload_store.get_section("home_feed") == {
        "max_items_per_row": 12,
        "combine_continue_next": True,
    }


def test_section_write_and_remove(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path / "settings.json")
    store.write_section("demo", {"a": 1, "b": 2})
    store.write_section("demo", {"a": 3})
    assert store.get_section("demo") == {"a": 3}

    store.remove_section("demo")
    assert ConfigStore(tmp_path / "settings.json").get_section("demo") == {}


def test_config_store_handles_invalid_json(tmp_path: Path) -> None:
    config_path = tmp_path / "broken.json"
    config_path.write_text("{ invalid json")

    store = ConfigStore(config_path)
    assert store.get_snapshot() == {}

    store.update_section("demo", {"mode": "test"})
    assert json.loads(config_path.read_text())["demo"] == {"mode": "test"}


def test_feed_config_rejects_non_positive_row_limit() -> None:
    with pytest.raises(ValueError):
        FeedConfig(max_items_per_row=0)


def test_feed_config_from_mapping_falls_back_per_key() -> None:
    config = FeedConfig.from_mapping(
        {
            "max_items_per_row": "abc",
            "enable_rewatching_next_up": "yes",
            "combine_continue_next": True,
            "hero_limit": -4,
            "hidden_library_ids": "not-a-list",
        }
    )
    assert config.max_items_per_row == FeedConfig().max_items_per_row
    assert config.enable_rewatching_next_up is True
    assert config.combine_continue_next is True
    assert config.hero_limit == 10
    assert config.hidden_library_ids == ()


def test_services_round_trip_feed_config(tmp_path: Path) -> None:
    services = FeedServices(app_name="HomeFeed-Tests", data_dir=tmp_path / "data")
    assert services.load_feed_config() == FeedConfig()

    wanted = FeedConfig(max_items_per_row=8, combine_continue_next=True, hidden_library_ids=("lib-tv",))
    services.save_feed_config(wanted)

    reloaded = FeedServices(app_name="HomeFeed-Tests", data_dir=tmp_path / "data")
    assert reloaded.load_feed_config() == wanted
    assert reloaded.config_store.get_snapshot()[FEED_SECTION]["hidden_library_ids"] == ["lib-tv"]


def test_send_notification_reaches_subscribers(tmp_path: Path) -> None:
    services = FeedServices(app_name="HomeFeed-Tests", data_dir=tmp_path)
    received = []
    services.notifications.subscribe(received.append)

    services.send_notification("Home refresh error: boom", "warning", source="home_feed")

    assert len(received) == 1
    assert received[0].level == "warning"
    assert received[0].source == "home_feed"
