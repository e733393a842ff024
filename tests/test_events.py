"""
Tests for the feed EventBus.

Tests cover:
- Basic pub/sub functionality
- Subscribe/unsubscribe lifecycle
- Thread safety with concurrent access
- Error isolation (bad subscribers don't affect others)
"""

import threading

from homefeed.core.events import EventBus, USER_ACTION


def test_event_bus_basic_subscribe_emit():
    bus = EventBus()
    received = []

    bus.subscribe(USER_ACTION, lambda name, data: received.append((name, data)))
    bus.emit(USER_ACTION, {"item_id": "m1", "action": "mark_watched"})

    assert received == [(USER_ACTION, {"item_id": "m1", "action": "mark_watched"})]


def test_event_bus_unsubscribe():
    bus = EventBus()
    received = []

    def handler(event_name, data):
        received.append(data)

    bus.subscribe("feed.session_started", handler)
    bus.emit("feed.session_started", {"session_id": 1})
    bus.unsubscribe("feed.session_started", handler)
    bus.emit("feed.session_started", {"session_id": 2})

    assert received == [{"session_id": 1}]
    assert bus.subscriber_count("feed.session_started") == 0


def test_event_bus_error_isolation(caplog):
    """A failing subscriber is logged and does not stop the others."""
    bus = EventBus()
    received_good = []

    def bad_handler(event_name, data):
        raise ValueError("I'm broken!")

    def good_handler(event_name, data):
        received_good.append(data)

    bus.subscribe("test.event", bad_handler)
    bus.subscribe("test.event", good_handler)

    with caplog.at_level("ERROR", logger="HomeFeed.Events"):
        bus.emit("test.event", {"message": "test"})

    assert received_good == [{"message": "test"}]
    assert any("test.event" in record.getMessage() for record in caplog.records)


def test_event_bus_thread_safety():
    bus = EventBus()
    received = []
    lock = threading.Lock()

    def handler(event_name, data):
        with lock:
            received.append(data)

    bus.subscribe("test.event", handler)

    threads = [threading.Thread(target=bus.emit, args=("test.event", {"id": i})) for i in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(item["id"] for item in received) == list(range(10))


def test_event_bus_subscribe_same_handler_multiple_times():
    bus = EventBus()
    received = []

    def handler(event_name, data):
        received.append(data)

    bus.subscribe("test.event", handler)
    bus.subscribe("test.event", handler)
    bus.emit("test.event")

    assert received == [{}]
