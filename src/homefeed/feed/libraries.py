"""Planning of the per-library "latest" rows."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .models import Library

# Live TV is left out; its recordings folder shows up as a mixed (None) view.
SUPPORTED_LATEST_COLLECTION_TYPES = frozenset({"movies", "tvshows", "homevideos", None})


@dataclass(frozen=True)
class LatestRequest:
    title: str
    library_id: str
    limit: int


def latest_row_title(library: Library) -> str:
    return f"Recently Added in {library.name}"


def visible_libraries(libraries: Iterable[Library], hidden_ids: Sequence[str] = ()) -> List[Library]:
    hidden = set(hidden_ids)
    return [lib for lib in libraries if lib.id not in hidden]


def _normalize_type(collection_type: Optional[str]) -> Optional[str]:
    if collection_type is None:
        return None
    return collection_type.strip().lower() or None


def build_latest_requests(libraries: Iterable[Library], limit: int) -> List[LatestRequest]:
    """Return one request per library that supports a latest row, in library order."""
    return [
        LatestRequest(title=latest_row_title(lib), library_id=lib.id, limit=limit)
        for lib in libraries
        if _normalize_type(lib.collection_type) in SUPPORTED_LATEST_COLLECTION_TYPES
    ]


__all__ = [
    "LatestRequest",
    "SUPPORTED_LATEST_COLLECTION_TYPES",
    "build_latest_requests",
    "latest_row_title",
    "visible_libraries",
]
