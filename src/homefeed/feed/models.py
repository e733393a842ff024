"""Data model for the home feed.

Items are immutable snapshots of remote catalog state at fetch time. Row
states are small tagged variants so a consumer can render a skeleton for a
``Loading`` row before any content exists.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple, Union

from ..core.config import FeedConfig


class MediaKind(Enum):
    MOVIE = "movie"
    SERIES = "series"
    EPISODE = "episode"
    PROGRAM = "program"
    CHANNEL = "channel"
    # Containers, only used to locate the "Featured" collection
    BOX_SET = "box_set"
    FOLDER = "folder"
    COLLECTION_FOLDER = "collection_folder"


@dataclass(frozen=True)
class MediaItem:
    """One catalog entry as seen by the feed."""

    id: str
    title: str
    kind: MediaKind = MediaKind.MOVIE
    progress: Optional[float] = None
    watched: bool = False
    favorite: bool = False
    series_id: Optional[str] = None
    channel_id: Optional[str] = None
    parent_id: Optional[str] = None
    library_id: Optional[str] = None
    premiere_date: Optional[date] = None
    last_played: Optional[datetime] = None
    date_created: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_sports: bool = False

    def __post_init__(self) -> None:
        if self.progress is not None and not 0.0 <= float(self.progress) <= 100.0:
            raise ValueError(f"progress must be within [0, 100], got {self.progress!r}")

    def with_user_data(
        self, *, watched: Optional[bool] = None, favorite: Optional[bool] = None
    ) -> "MediaItem":
        changes = {}
        if watched is not None:
            changes["watched"] = watched
            if watched:
                changes["progress"] = None
        if favorite is not None:
            changes["favorite"] = favorite
        return replace(self, **changes)


# ---------------- Row states -----------------

@dataclass(frozen=True)
class Pending:
    title: str = ""


@dataclass(frozen=True)
class Loading:
    title: str = ""


@dataclass(frozen=True)
class Success:
    title: str = ""
    items: Tuple[MediaItem, ...] = ()


@dataclass(frozen=True)
class Error:
    title: str = ""
    message: str = ""


RowState = Union[Pending, Loading, Success, Error]


def is_terminal(state: RowState) -> bool:
    return isinstance(state, (Success, Error))


def can_transition(old: Optional[RowState], new: RowState) -> bool:
    """Return True if ``old`` may be replaced by ``new`` within one session.

    Terminal states only ever give way to another terminal state; they never
    fall back to Pending/Loading.
    """
    if old is None or not is_terminal(old):
        return True
    return is_terminal(new)


@dataclass(frozen=True)
class Row:
    """A titled shelf, tagged with the session that produced it."""

    state: RowState
    session_id: int = 0

    @property
    def title(self) -> str:
        return self.state.title

    @property
    def items(self) -> Tuple[MediaItem, ...]:
        if isinstance(self.state, Success):
            return self.state.items
        return ()


# ---------------- Session + collaborators' records -----------------

@dataclass(frozen=True)
class User:
    id: str
    name: str = ""


@dataclass(frozen=True)
class Library:
    id: str
    name: str
    collection_type: Optional[str] = None


class UserAction(Enum):
    MARK_WATCHED = "mark_watched"
    MARK_UNWATCHED = "mark_unwatched"
    ADD_FAVORITE = "add_favorite"
    REMOVE_FAVORITE = "remove_favorite"


@dataclass(frozen=True)
class LoadSession:
    """Read-only context shared by every source of one load cycle."""

    session_id: int
    user_id: str
    limit: int
    library_ids: Tuple[str, ...] = ()
    config: FeedConfig = field(default_factory=FeedConfig)


__all__ = [
    "MediaKind",
    "MediaItem",
    "Pending",
    "Loading",
    "Success",
    "Error",
    "RowState",
    "Row",
    "User",
    "Library",
    "UserAction",
    "LoadSession",
    "is_terminal",
    "can_transition",
]
