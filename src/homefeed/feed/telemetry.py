"""Lightweight fetch telemetry for the home feed."""

from __future__ import annotations

import json
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

__all__ = [
    "TelemetrySink",
    "get_telemetry_sink",
    "reset_telemetry_sink",
    "timed_fetch",
]

_ENV_VAR = "HOMEFEED_TELEMETRY"


class TelemetrySink:
    """Thread-safe sink that appends telemetry events to a JSON lines file."""

    def __init__(self, target: Path) -> None:
        self._target = target
        self._lock = threading.Lock()
        target.parent.mkdir(parents=True, exist_ok=True)

    def record(self, category: str, name: str, duration: float, count: Optional[int] = None) -> None:
        payload: dict[str, Any] = {
            "ts": time.time(),
            "category": str(category),
            "name": str(name),
            "duration": float(duration),
        }
        if count is not None:
            payload["count"] = int(count)
        try:
            with self._lock, self._target.open("a", encoding="utf-8", newline="\n") as handle:
                json.dump(payload, handle, ensure_ascii=False)
                handle.write("\n")
        except OSError:
            # Sample is dropped when the file cannot be written
            pass


_sink_lock = threading.Lock()
_sink: Optional[TelemetrySink] = None


def get_telemetry_sink() -> Optional[TelemetrySink]:
    """Return a singleton telemetry sink if the environment enables it."""

    global _sink
    if _sink is not None:
        return _sink
    path = os.environ.get(_ENV_VAR)
    if not path:
        return None
    candidate = Path(path).expanduser()
    with _sink_lock:
        if _sink is None:
            try:
                _sink = TelemetrySink(candidate)
            except OSError:
                _sink = None
        return _sink


def reset_telemetry_sink() -> None:
    """Reset the cached telemetry sink (useful for tests)."""

    global _sink
    with _sink_lock:
        _sink = None


class _FetchSample:
    __slots__ = ("count",)

    def __init__(self) -> None:
        self.count: Optional[int] = None


@contextmanager
def timed_fetch(name: str, category: str = "home_feed") -> Iterator[_FetchSample]:
    """Time the enclosed fetch and record it, even when the fetch raises.

    Callers may set ``sample.count`` to the number of items returned.
    """
    sample = _FetchSample()
    started = time.perf_counter()
    try:
        yield sample
    finally:
        sink = get_telemetry_sink()
        if sink is not None:
            sink.record(category, name, time.perf_counter() - started, sample.count)
