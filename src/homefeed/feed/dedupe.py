"""Identity-based de-duplication for item sequences.

Several queries can return the same entry (a program listed on two channels,
an item visible from overlapping libraries). The first occurrence wins.
"""
from __future__ import annotations

from typing import Callable, Hashable, Iterable, List, Optional, Set, TypeVar

T = TypeVar("T")


def _item_id(item: object) -> Hashable:
    return getattr(item, "id")


def distinct_by_id(items: Iterable[T], key: Optional[Callable[[T], Hashable]] = None) -> List[T]:
    """Return ``items`` with repeated identities dropped, order preserved."""
    key_fn = key or _item_id
    seen: Set[Hashable] = set()
    result: List[T] = []
    for item in items:
        ident = key_fn(item)
        if ident in seen:
            continue
        seen.add(ident)
        result.append(item)
    return result


__all__ = ["distinct_by_id"]
