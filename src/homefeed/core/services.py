from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .config import FEED_SECTION, ConfigStore, FeedConfig
from .events import EventBus


class NotificationCenter:
    """Lightweight pub/sub for user-facing, non-blocking notices."""

    def __init__(self) -> None:
        self._subscribers: List[Callable[["Notification"], None]] = []

    def subscribe(self, callback: Callable[["Notification"], None]) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[["Notification"], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, notification: "Notification") -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(notification)
            except Exception:
                logging.getLogger("HomeFeed.NotificationCenter").exception(
                    "Notification subscriber failed"
                )


@dataclass(frozen=True)
class Notification:
    message: str
    level: str = "info"
    source: Optional[str] = None


class FeedServices:
    """Shared services for the feed: logging, config, events, notifications."""

    def __init__(
        self,
        app_name: str = "HomeFeed",
        data_dir: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.app_name = app_name
        self.data_dir = data_dir or self._resolve_data_dir(app_name)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logger or self._configure_logger(app_name)
        self.notifications = NotificationCenter()
        self._config_store = ConfigStore(self.data_dir / "config.json")
        self.event_bus = EventBus(self.get_logger("Events"))

    @staticmethod
    def _resolve_data_dir(app_name: str) -> Path:
        if os.name == "nt":
            base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
        else:
            base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
        return base / app_name.lower()

    @staticmethod
    def _configure_logger(app_name: str) -> logging.Logger:
        logger = logging.getLogger(app_name)
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        return logger

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def get_logger(self, name: str) -> logging.Logger:
        return self._logger.getChild(name)

    def send_notification(
        self, message: str, level: str = "info", *, source: Optional[str] = None
    ) -> None:
        notification = Notification(message=message, level=level, source=source)
        self.notifications.publish(notification)
        log_method = getattr(self._logger, level, self._logger.info)
        log_method("%s", message)

    @property
    def config_store(self) -> ConfigStore:
        return self._config_store

    def load_feed_config(self) -> FeedConfig:
        return FeedConfig.from_mapping(
            self._config_store.get_section(FEED_SECTION), self.get_logger("Config")
        )

    def save_feed_config(self, config: FeedConfig) -> None:
        self._config_store.write_section(FEED_SECTION, config.to_dict())


__all__ = ["FeedServices", "Notification", "NotificationCenter"]
