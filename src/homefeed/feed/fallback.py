"""Two-tier "try A, else B" resolution for optional feed content.

Absence of curated content is never an error for the feed: a tier that fails
is logged and counts as empty, and the next tier gets its turn.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

T = TypeVar("T")

SourceResult = Union[Sequence[T], Awaitable[Sequence[T]]]
Source = Callable[[], SourceResult]


class FallbackChain:
    """Evaluate a primary source and only consult the secondary when it is empty."""

    def __init__(self, logger: Optional[logging.Logger] = None, name: str = "fallback") -> None:
        self._log = logger or logging.getLogger("HomeFeed.Fallback")
        self._name = name

    async def resolve(self, primary: Source, secondary: Source) -> List[Any]:
        items = await self._evaluate(primary, "primary")
        if items:
            return items
        return await self._evaluate(secondary, "secondary")

    async def _evaluate(self, source: Source, tier: str) -> List[Any]:
        try:
            result = source()
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            self._log.exception("%s: %s source failed, treating as empty", self._name, tier)
            return []
        return list(result or [])


__all__ = ["FallbackChain"]
