"""Live "sports on now" row."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from .catalog import SORT_START_DATE, CatalogClient, ProgramQuery
from .dedupe import distinct_by_id
from .models import MediaItem
from .time_utils import utc_now

SPORTS_ON_NOW_TITLE = "Sports On Now"


async def fetch_sports_on_now(
    catalog: CatalogClient,
    user_id: str,
    limit: int,
    *,
    now: Optional[datetime] = None,
    logger: Optional[logging.Logger] = None,
) -> List[MediaItem]:
    """Return sports programs airing at ``now``, earliest start first.

    Many servers have no live TV at all, so any failure here yields an empty
    list instead of an error row.
    """
    if limit <= 0:
        return []
    moment = now or utc_now()
    query = ProgramQuery(
        user_id=user_id,
        max_start_date=moment,
        min_end_date=moment,
        is_sports=True,
        sort_by=SORT_START_DATE,
        descending=False,
    )
    try:
        programs = await catalog.get_programs(query)
    except Exception:
        (logger or logging.getLogger("HomeFeed.Sports")).exception(
            "Error loading sports programs on now"
        )
        return []
    # The same program is listed once per channel carrying it
    return distinct_by_id(programs)[:limit]


__all__ = ["SPORTS_ON_NOW_TITLE", "fetch_sports_on_now"]
