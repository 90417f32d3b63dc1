"""In-memory ring buffer of recent log events, fed by a structlog processor."""

from __future__ import annotations

import threading
from collections import deque
from typing import Any

_RESERVED = frozenset({"event", "level", "timestamp", "logger", "exc_info", "stack_info"})
_SKIPPED_LEVELS = frozenset({"debug"})


def _jsonable(value: Any) -> Any:  # noqa: ANN401
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return repr(value)


class LogBuffer:
    """Keeps the most recent structured log entries.

    Installed as a structlog processor: it records a copy of the event dict
    and passes the original through untouched.
    """

    def __init__(self, maxlen: int = 500) -> None:
        self._entries: deque[dict[str, Any]] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def __call__(self, _logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:  # noqa: ANN401
        level = str(event_dict.get("level", method_name)).lower()
        if level not in _SKIPPED_LEVELS:
            self.append(level, event_dict)
        return event_dict

    def append(self, level: str, event_dict: dict[str, Any]) -> None:
        entry = {
            "timestamp": event_dict.get("timestamp"),
            "level": level,
            "message": str(event_dict.get("event", "")),
            "context": {k: _jsonable(v) for k, v in event_dict.items() if k not in _RESERVED},
        }
        if "exception" in event_dict:
            entry["context"]["exception"] = str(event_dict["exception"])
        with self._lock:
            self._entries.append(entry)

    def resize(self, maxlen: int) -> None:
        with self._lock:
            if maxlen != self._entries.maxlen:
                self._entries = deque(self._entries, maxlen=maxlen)

    def recent(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Entries newest first."""
        with self._lock:
            entries = list(self._entries)
        entries.reverse()
        return entries if limit is None else entries[:limit]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


log_buffer = LogBuffer()
