from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple


FEED_SECTION = "home_feed"


@dataclass(frozen=True)
class FeedConfig:
    """Settings consumed by one home feed load cycle."""

    max_items_per_row: int = 25
    enable_rewatching_next_up: bool = False
    combine_continue_next: bool = False
    hero_limit: int = 10
    hidden_library_ids: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if int(self.max_items_per_row) <= 0:
            raise ValueError("max_items_per_row must be > 0")
        object.__setattr__(self, "hidden_library_ids", tuple(self.hidden_library_ids))

    @classmethod
    def from_mapping(
        cls, raw: Optional[Mapping[str, Any]], logger: Optional[logging.Logger] = None
    ) -> "FeedConfig":
        """Build a config from a stored bucket, falling back per key on bad values."""
        log = logger or logging.getLogger("HomeFeed.Config")
        defaults = cls()
        if not raw:
            return defaults

        def _int(key: str, default: int, minimum: int) -> int:
            value = raw.get(key, default)
            try:
                number = int(value)
            except (TypeError, ValueError):
                log.warning("Ignoring invalid %s=%r", key, value)
                return default
            if number < minimum:
                log.warning("Ignoring out-of-range %s=%r", key, value)
                return default
            return number

        def _bool(key: str, default: bool) -> bool:
            value = raw.get(key, default)
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)

        hidden = raw.get("hidden_library_ids", ())
        if not isinstance(hidden, (list, tuple)):
            log.warning("Ignoring invalid hidden_library_ids=%r", hidden)
            hidden = ()
        return cls(
            max_items_per_row=_int("max_items_per_row", defaults.max_items_per_row, 1),
            enable_rewatching_next_up=_bool("enable_rewatching_next_up", defaults.enable_rewatching_next_up),
            combine_continue_next=_bool("combine_continue_next", defaults.combine_continue_next),
            hero_limit=_int("hero_limit", defaults.hero_limit, 0),
            hidden_library_ids=tuple(str(v) for v in hidden),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_items_per_row": self.max_items_per_row,
            "enable_rewatching_next_up": self.enable_rewatching_next_up,
            "combine_continue_next": self.combine_continue_next,
            "hero_limit": self.hero_limit,
            "hidden_library_ids": list(self.hidden_library_ids),
        }


class ConfigStore:
    """Thread-safe JSON-backed store of named configuration sections."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()
        self._data: Dict[str, Dict[str, Any]] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._data = {}
            return
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, json.JSONDecodeError):
            logging.getLogger("HomeFeed.Config").warning(
                "Unreadable config file %s, starting empty", self._path
            )
            self._data = {}
            return
        if isinstance(raw, dict):
            self._data = {key.lower(): value for key, value in raw.items() if isinstance(value, dict)}
        else:
            self._data = {}

    def save(self) -> None:
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as handle:
                json.dump(self._data, handle, indent=2, sort_keys=True)

    def get_section(self, name: str) -> Dict[str, Any]:
        """Return a copy of a section; missing sections read as empty."""
        with self._lock:
            return dict(self._data.get(name.lower(), {}))

    def update_section(self, name: str, values: Dict[str, Any]) -> None:
        with self._lock:
            bucket = self._data.setdefault(name.lower(), {})
            bucket.update(values)
            self.save()

    def write_section(self, name: str, values: Dict[str, Any]) -> None:
        with self._lock:
            self._data[name.lower()] = dict(values)
            self.save()

    def remove_section(self, name: str) -> None:
        name = name.lower()
        with self._lock:
            if name in self._data:
                del self._data[name]
                self.save()

    def get_snapshot(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return json.loads(json.dumps(self._data))


__all__ = ["ConfigStore", "FeedConfig", "FEED_SECTION"]
