"""Observable read model of the home feed.

Each field has its own change signal so a view can re-render one shelf
without touching the others. Values are immutable tuples; a field is replaced
as a whole on every write (last write wins), so a reader never sees a
half-updated field.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Tuple

from PySide6.QtCore import QObject, Signal  # type: ignore[import-not-found]

from .models import MediaItem, Pending, Row, RowState


class FeedSnapshot(QObject):
    """Current state of the feed, written by the orchestrator only."""

    overall_state_changed = Signal(object)  # RowState
    refresh_state_changed = Signal(object)  # RowState
    watching_rows_changed = Signal(object)  # Tuple[Row, ...]
    sports_rows_changed = Signal(object)  # Tuple[Row, ...]
    latest_rows_changed = Signal(object)  # Tuple[Row, ...]
    hero_items_changed = Signal(object)  # Tuple[MediaItem, ...]

    def __init__(self) -> None:
        super().__init__()
        self._overall_state: RowState = Pending()
        self._refresh_state: RowState = Pending()
        self._watching_rows: Tuple[Row, ...] = ()
        self._sports_rows: Tuple[Row, ...] = ()
        self._latest_rows: Tuple[Row, ...] = ()
        self._hero_items: Tuple[MediaItem, ...] = ()

    # ------------- Read side -------------
    @property
    def overall_state(self) -> RowState:
        return self._overall_state

    @property
    def refresh_state(self) -> RowState:
        return self._refresh_state

    @property
    def watching_rows(self) -> Tuple[Row, ...]:
        return self._watching_rows

    @property
    def sports_rows(self) -> Tuple[Row, ...]:
        return self._sports_rows

    @property
    def latest_rows(self) -> Tuple[Row, ...]:
        return self._latest_rows

    @property
    def hero_items(self) -> Tuple[MediaItem, ...]:
        return self._hero_items

    def as_dict(self) -> Dict[str, Any]:
        return {
            "overall_state": self._overall_state,
            "refresh_state": self._refresh_state,
            "watching_rows": self._watching_rows,
            "sports_rows": self._sports_rows,
            "latest_rows": self._latest_rows,
            "hero_items": self._hero_items,
        }

    # ------------- Write side (orchestrator) -------------
    def set_overall_state(self, state: RowState) -> None:
        self._overall_state = state
        self.overall_state_changed.emit(state)

    def set_refresh_state(self, state: RowState) -> None:
        self._refresh_state = state
        self.refresh_state_changed.emit(state)

    def set_watching_rows(self, rows: Iterable[Row]) -> None:
        self._watching_rows = tuple(rows)
        self.watching_rows_changed.emit(self._watching_rows)

    def set_sports_rows(self, rows: Iterable[Row]) -> None:
        self._sports_rows = tuple(rows)
        self.sports_rows_changed.emit(self._sports_rows)

    def set_latest_rows(self, rows: Iterable[Row]) -> None:
        self._latest_rows = tuple(rows)
        self.latest_rows_changed.emit(self._latest_rows)

    def replace_latest_row(self, index: int, row: Row) -> None:
        rows = list(self._latest_rows)
        rows[index] = row
        self.set_latest_rows(rows)

    def set_hero_items(self, items: Iterable[MediaItem]) -> None:
        self._hero_items = tuple(items)
        self.hero_items_changed.emit(self._hero_items)


__all__ = ["FeedSnapshot"]
