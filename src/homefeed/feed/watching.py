"""Continue-watching / next-up rows.

Both sources are fetched together in phase one. Depending on configuration
they end up as a single combined row or as up to two separate rows.
"""
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Sequence, Tuple

from .catalog import CatalogClient
from .dedupe import distinct_by_id
from .models import MediaItem, Row, Success

CONTINUE_WATCHING_TITLE = "Continue Watching"
NEXT_UP_TITLE = "Next Up"

Combiner = Callable[[Sequence[MediaItem], Sequence[MediaItem], int], List[MediaItem]]


def combine_by_recency(resume: Sequence[MediaItem], next_up: Sequence[MediaItem], limit: int) -> List[MediaItem]:
    """Merge both lists, most recently played first.

    Items never played sort last; ties keep resume entries ahead of next-up
    entries (the sort is stable). Duplicates keep their best-ranked copy.
    """
    merged = list(resume) + list(next_up)
    merged.sort(key=_recency, reverse=True)
    return distinct_by_id(merged)[: max(0, limit)]


def _recency(item: MediaItem) -> Tuple[bool, float]:
    if item.last_played is None:
        return (False, 0.0)
    return (True, item.last_played.timestamp())


async def fetch_watching(
    catalog: CatalogClient, user_id: str, limit: int, enable_rewatching: bool
) -> Tuple[List[MediaItem], List[MediaItem]]:
    """Fetch resume points and next-up concurrently; any failure propagates."""
    resume, next_up = await asyncio.gather(
        catalog.get_resume(user_id, limit),
        catalog.get_next_up(user_id, limit, enable_rewatching),
    )
    return list(resume), list(next_up)


def build_watching_rows(
    resume: Sequence[MediaItem],
    next_up: Sequence[MediaItem],
    *,
    combine: bool,
    limit: int,
    combiner: Optional[Combiner] = None,
    session_id: int = 0,
) -> List[Row]:
    if combine:
        items = (combiner or combine_by_recency)(resume, next_up, limit)
        # A custom combiner may not dedupe or respect the bound itself
        items = distinct_by_id(items)[: max(0, limit)]
        return [Row(Success(CONTINUE_WATCHING_TITLE, tuple(items)), session_id)]
    rows: List[Row] = []
    if resume:
        rows.append(Row(Success(CONTINUE_WATCHING_TITLE, tuple(distinct_by_id(resume)[:limit])), session_id))
    if next_up:
        rows.append(Row(Success(NEXT_UP_TITLE, tuple(distinct_by_id(next_up)[:limit])), session_id))
    return rows


__all__ = [
    "CONTINUE_WATCHING_TITLE",
    "NEXT_UP_TITLE",
    "Combiner",
    "build_watching_rows",
    "combine_by_recency",
    "fetch_watching",
]
