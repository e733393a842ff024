"""Lifecycle event bus for the home feed.

Qt signals on :class:`~homefeed.feed.snapshot.FeedSnapshot` carry the data a
view renders. This bus carries coarse lifecycle events for components that
are not Qt objects (analytics, caches, background refreshers).

Events emitted by the orchestrator:
    feed.session_started   {'session_id', 'cold_start'}
    feed.phase1_published  {'session_id', 'watching_rows', 'latest_rows'}
    feed.session_failed    {'session_id', 'message', 'cold_start'}
    feed.user_action       {'item_id', 'action'}

Example usage:
    bus.subscribe('feed.user_action', lambda name, data: cache.evict(data['item_id']))
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional


EventCallback = Callable[[str, Dict[str, Any]], None]

SESSION_STARTED = "feed.session_started"
PHASE1_PUBLISHED = "feed.phase1_published"
SESSION_FAILED = "feed.session_failed"
USER_ACTION = "feed.user_action"


class EventBus:
    """Thread-safe pub/sub keyed by event name."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._subscribers: Dict[str, List[EventCallback]] = {}
        self._lock = threading.RLock()
        self._log = logger or logging.getLogger("HomeFeed.Events")

    def subscribe(self, event_name: str, callback: EventCallback) -> None:
        """Register ``callback`` for ``event_name``; duplicates are ignored.

        Args:
            event_name: Name of the event to listen for (e.g. 'feed.user_action')
            callback: Called with (event_name, data) on every emit.
        """
        with self._lock:
            callbacks = self._subscribers.setdefault(event_name, [])
            if callback not in callbacks:
                callbacks.append(callback)

    def unsubscribe(self, event_name: str, callback: EventCallback) -> None:
        with self._lock:
            if event_name in self._subscribers:
                try:
                    self._subscribers[event_name].remove(callback)
                except ValueError:
                    pass

    def emit(self, event_name: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Deliver ``data`` to every subscriber of ``event_name``.

        A failing subscriber is logged and skipped; the others still run.
        """
        if data is None:
            data = {}

        with self._lock:
            callbacks = self._subscribers.get(event_name, []).copy()

        # Call outside the lock so subscribers may (un)subscribe re-entrantly
        for callback in callbacks:
            try:
                callback(event_name, data)
            except Exception:
                self._log.exception("Subscriber for %s failed", event_name)

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()

    def subscriber_count(self, event_name: str) -> int:
        with self._lock:
            return len(self._subscribers.get(event_name, []))


__all__ = [
    "EventBus",
    "EventCallback",
    "SESSION_STARTED",
    "PHASE1_PUBLISHED",
    "SESSION_FAILED",
    "USER_ACTION",
]
