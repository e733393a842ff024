"""Home feed package.

Re-exports the pieces a client needs to build and observe the feed.
"""
from __future__ import annotations

from .catalog import CatalogClient, CatalogError, InMemoryCatalog  # noqa: F401
from .models import (  # noqa: F401
    Error,
    Library,
    Loading,
    MediaItem,
    MediaKind,
    Pending,
    Row,
    Success,
    User,
    UserAction,
)
from .orchestrator import HomeFeedOrchestrator  # noqa: F401
from .snapshot import FeedSnapshot  # noqa: F401

__all__ = [
    "CatalogClient",
    "CatalogError",
    "InMemoryCatalog",
    "HomeFeedOrchestrator",
    "FeedSnapshot",
    "MediaItem",
    "MediaKind",
    "Library",
    "User",
    "UserAction",
    "Row",
    "Pending",
    "Loading",
    "Success",
    "Error",
]
