"""Catalog client contract consumed by the home feed.

The orchestrator only depends on :class:`CatalogClient`. Transport, auth and
retries belong to concrete implementations; from the feed's point of view
every call may succeed, raise, or take arbitrarily long.

:class:`InMemoryCatalog` is a deterministic implementation backed by plain
dicts. It applies writes, counts calls and can be told to fail specific
operations, which is all the feed needs for tests and offline demos.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional

from .models import Library, MediaItem, MediaKind, User


class CatalogError(Exception):
    """Transport or server failure reported by a catalog client."""


# Sort keys understood by ItemQuery
SORT_NAME = "sort_name"
SORT_PREMIERE_DATE = "premiere_date"
SORT_DATE_CREATED = "date_created"
SORT_START_DATE = "start_date"


@dataclass(frozen=True)
class ItemQuery:
    user_id: str
    parent_id: Optional[str] = None
    search_term: Optional[str] = None
    include_kinds: FrozenSet[MediaKind] = field(default_factory=frozenset)
    recursive: bool = False
    sort_by: str = SORT_NAME
    descending: bool = False
    limit: Optional[int] = None


@dataclass(frozen=True)
class ProgramQuery:
    """Live programs whose broadcast window contains a point in time."""

    user_id: str
    max_start_date: datetime
    min_end_date: datetime
    is_sports: Optional[bool] = None
    sort_by: str = SORT_START_DATE
    descending: bool = False
    limit: Optional[int] = None


class CatalogClient(ABC):
    """Async query interface of the remote media catalog.

    Every operation is independent of the others and safe to run
    concurrently.
    """

    @abstractmethod
    async def current_user(self) -> Optional[User]:  # pragma: no cover - interface
        """Return the signed-in user, or None when nobody is signed in."""

    @abstractmethod
    async def list_libraries(self, user_id: str) -> List[Library]:  # pragma: no cover - interface
        """Return the libraries (user views) visible to ``user_id``."""

    @abstractmethod
    async def get_items(self, query: ItemQuery) -> List[MediaItem]:  # pragma: no cover - interface
        """Return items matching ``query`` in the requested order."""

    @abstractmethod
    async def get_resume(self, user_id: str, limit: int) -> List[MediaItem]:  # pragma: no cover - interface
        """Return in-progress items, most recently played first."""

    @abstractmethod
    async def get_next_up(
        self, user_id: str, limit: int, enable_rewatching: bool = False
    ) -> List[MediaItem]:  # pragma: no cover - interface
        """Return the next episode to watch per series."""

    @abstractmethod
    async def get_latest(self, user_id: str, library_id: str, limit: int) -> List[MediaItem]:  # pragma: no cover - interface
        """Return the most recently added items of one library."""

    @abstractmethod
    async def get_programs(self, query: ProgramQuery) -> List[MediaItem]:  # pragma: no cover - interface
        """Return live programs in the order ``query`` asks for."""

    @abstractmethod
    async def set_watched(self, item_id: str, watched: bool) -> None:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def set_favorite(self, item_id: str, favorite: bool) -> None:  # pragma: no cover - interface
        ...


def _sort_key(sort_by: str):
    if sort_by == SORT_PREMIERE_DATE:
        return lambda item: (item.premiere_date is not None, item.premiere_date or datetime.min.date())
    if sort_by == SORT_DATE_CREATED:
        return lambda item: (item.date_created is not None, item.date_created or datetime.min)
    if sort_by == SORT_START_DATE:
        return lambda item: (item.start_date is not None, item.start_date or datetime.min)
    return lambda item: item.title.casefold()


class InMemoryCatalog(CatalogClient):
    """Dict-backed catalog with call counting and injectable failures."""

    def __init__(
        self,
        user: Optional[User] = None,
        libraries: Iterable[Library] = (),
        items: Iterable[MediaItem] = (),
        next_up: Iterable[str] = (),
        rewatching: Iterable[str] = (),
    ) -> None:
        self.user = user
        self.libraries: List[Library] = list(libraries)
        self._items: Dict[str, MediaItem] = {}
        for item in items:
            self.add_item(item)
        self.next_up_ids: List[str] = list(next_up)
        self.rewatching_ids: List[str] = list(rewatching)
        self.calls: Counter = Counter()
        self._failures: Dict[str, BaseException] = {}

    # ------------- Setup helpers -------------
    def add_item(self, item: MediaItem, key: Optional[str] = None) -> None:
        """Store ``item``; an explicit ``key`` keeps copies that share an id apart."""
        if key is not None:
            self._items[key] = item
            return
        # Programs may be listed more than once (one entry per channel)
        key = item.id
        if key in self._items and item.kind is MediaKind.PROGRAM:
            key = f"{item.id}@{item.channel_id or len(self._items)}"
        self._items[key] = item

    def get(self, item_id: str) -> Optional[MediaItem]:
        return self._items.get(item_id)

    def fail(self, operation: str, error: Optional[BaseException] = None) -> None:
        """Make ``operation`` raise; ``get_latest:<library_id>`` targets one library."""
        self._failures[operation] = error or CatalogError(f"{operation} unavailable")

    def recover(self, operation: str) -> None:
        self._failures.pop(operation, None)

    def _enter(self, operation: str, key: Optional[str] = None) -> None:
        self.calls[operation] += 1
        if key is not None:
            self.calls[f"{operation}:{key}"] += 1
            keyed = self._failures.get(f"{operation}:{key}")
            if keyed is not None:
                raise keyed
        error = self._failures.get(operation)
        if error is not None:
            raise error

    def _values(self) -> List[MediaItem]:
        return list(self._items.values())

    # ------------- CatalogClient -------------
    async def current_user(self) -> Optional[User]:
        self._enter("current_user")
        return self.user

    async def list_libraries(self, user_id: str) -> List[Library]:
        self._enter("list_libraries")
        return list(self.libraries)

    async def get_items(self, query: ItemQuery) -> List[MediaItem]:
        self._enter("get_items", query.parent_id or query.search_term)
        matches = []
        for item in self._values():
            if query.include_kinds and item.kind not in query.include_kinds:
                continue
            if query.search_term and query.search_term.casefold() not in item.title.casefold():
                continue
            if query.parent_id is not None:
                in_parent = item.parent_id == query.parent_id
                if query.recursive:
                    in_parent = in_parent or item.library_id == query.parent_id
                if not in_parent:
                    continue
            matches.append(item)
        matches.sort(key=_sort_key(query.sort_by), reverse=query.descending)
        if query.limit is not None:
            matches = matches[: max(0, query.limit)]
        return matches

    async def get_resume(self, user_id: str, limit: int) -> List[MediaItem]:
        self._enter("get_resume")
        resumable = [i for i in self._values() if i.progress and not i.watched]
        resumable.sort(key=lambda i: (i.last_played is not None, i.last_played or datetime.min), reverse=True)
        return resumable[:limit]

    async def get_next_up(self, user_id: str, limit: int, enable_rewatching: bool = False) -> List[MediaItem]:
        self._enter("get_next_up")
        ids = list(self.next_up_ids)
        if enable_rewatching:
            ids.extend(self.rewatching_ids)
        result = []
        for item_id in ids:
            item = self._items.get(item_id)
            if item is None:
                continue
            if item.watched and item_id not in self.rewatching_ids:
                continue
            result.append(item)
        return result[:limit]

    async def get_latest(self, user_id: str, library_id: str, limit: int) -> List[MediaItem]:
        self._enter("get_latest", library_id)
        latest = [i for i in self._values() if i.library_id == library_id]
        latest.sort(key=_sort_key(SORT_DATE_CREATED), reverse=True)
        return latest[:limit]

    async def get_programs(self, query: ProgramQuery) -> List[MediaItem]:
        self._enter("get_programs")
        programs = []
        for item in self._values():
            if item.kind is not MediaKind.PROGRAM or item.start_date is None or item.end_date is None:
                continue
            if query.is_sports is not None and item.is_sports != query.is_sports:
                continue
            if item.start_date > query.max_start_date or item.end_date < query.min_end_date:
                continue
            programs.append(item)
        programs.sort(key=_sort_key(query.sort_by), reverse=query.descending)
        if query.limit is not None:
            programs = programs[: query.limit]
        return programs

    async def set_watched(self, item_id: str, watched: bool) -> None:
        self._enter("set_watched", item_id)
        self._apply(item_id, watched=watched)

    async def set_favorite(self, item_id: str, favorite: bool) -> None:
        self._enter("set_favorite", item_id)
        self._apply(item_id, favorite=favorite)

    def _apply(self, item_id: str, **changes: bool) -> None:
        if item_id not in self._items:
            raise CatalogError(f"Unknown item {item_id!r}")
        self._items[item_id] = self._items[item_id].with_user_data(**changes)


__all__ = [
    "CatalogClient",
    "CatalogError",
    "InMemoryCatalog",
    "ItemQuery",
    "ProgramQuery",
    "SORT_NAME",
    "SORT_PREMIERE_DATE",
    "SORT_DATE_CREATED",
    "SORT_START_DATE",
]
