"""Hero carousel selection.

The carousel prefers a curated collection named "Featured". Servers without
one get a shuffled sample of recently released movies and series drawn from
every library the user can see.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import List, Optional, Sequence

from .catalog import SORT_NAME, SORT_PREMIERE_DATE, CatalogClient, ItemQuery
from .dedupe import distinct_by_id
from .fallback import FallbackChain
from .models import MediaItem, MediaKind

FEATURED_NAME = "Featured"
DEFAULT_HERO_LIMIT = 10

CONTAINER_KINDS = frozenset({MediaKind.COLLECTION_FOLDER, MediaKind.BOX_SET, MediaKind.FOLDER})
HERO_KINDS = frozenset({MediaKind.MOVIE, MediaKind.SERIES})


class HeroSelector:
    """Resolve the hero items for one user."""

    def __init__(
        self,
        catalog: CatalogClient,
        limit: int = DEFAULT_HERO_LIMIT,
        *,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._catalog = catalog
        self.limit = int(limit)
        self._rng = rng or random.Random()
        self._log = logger or logging.getLogger("HomeFeed.Hero")
        self._chain = FallbackChain(self._log, name="hero")

    async def select(self, user_id: str, library_ids: Sequence[str]) -> List[MediaItem]:
        if self.limit <= 0:
            return []
        items = await self._chain.resolve(
            lambda: self.load_featured(user_id),
            lambda: self.load_recently_released(user_id, library_ids),
        )
        return items[: self.limit]

    async def load_featured(self, user_id: str) -> List[MediaItem]:
        """Children of the first "Featured" container, newest release first."""
        containers = await self._catalog.get_items(
            ItemQuery(
                user_id=user_id,
                search_term=FEATURED_NAME,
                include_kinds=CONTAINER_KINDS,
                sort_by=SORT_NAME,
                limit=1,
            )
        )
        if not containers:
            return []
        return await self._catalog.get_items(
            ItemQuery(
                user_id=user_id,
                parent_id=containers[0].id,
                include_kinds=HERO_KINDS,
                recursive=False,
                sort_by=SORT_PREMIERE_DATE,
                descending=True,
                limit=self.limit,
            )
        )

    async def load_recently_released(self, user_id: str, library_ids: Sequence[str]) -> List[MediaItem]:
        """Shuffled sample of recent releases across ``library_ids``.

        Each library is over-fetched (2x the limit) so the shuffle has room to
        vary; a library that fails is logged and left out.
        """
        if not library_ids:
            return []
        results = await asyncio.gather(
            *(self._recent_in_library(user_id, lib_id) for lib_id in library_ids),
            return_exceptions=True,
        )
        merged: List[MediaItem] = []
        for lib_id, result in zip(library_ids, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                self._log.error(
                    "Error loading recently released items for %s",
                    lib_id,
                    exc_info=(type(result), result, result.__traceback__),
                )
                continue
            merged.extend(result)
        candidates = distinct_by_id(merged)
        self._rng.shuffle(candidates)
        return candidates[: self.limit]

    async def _recent_in_library(self, user_id: str, library_id: str) -> List[MediaItem]:
        return await self._catalog.get_items(
            ItemQuery(
                user_id=user_id,
                parent_id=library_id,
                include_kinds=HERO_KINDS,
                recursive=True,
                sort_by=SORT_PREMIERE_DATE,
                descending=True,
                limit=self.limit * 2,
            )
        )


__all__ = ["HeroSelector", "FEATURED_NAME", "DEFAULT_HERO_LIMIT"]
