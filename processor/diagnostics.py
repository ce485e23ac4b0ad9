"""Bounded in-process diagnostic log."""
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Dict, List

from processor.models import DebugLogEntry


class DebugLog:
    """Ring buffer of recent diagnostic messages, active only in debug mode."""

    MAX_ENTRIES = 100

    def __init__(self, max_entries: int = MAX_ENTRIES):
        self._entries = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self.enabled = False

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        """Turn diagnostics off and drop collected entries."""
        self.enabled = False
        self.clear()

    def append(self, message: str) -> None:
        if not self.enabled:
            return
        entry = DebugLogEntry(
            timestamp=datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S'),
            message=message
        )
        with self._lock:
            self._entries.append(entry)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def entries(self) -> List[DebugLogEntry]:
        with self._lock:
            return list(self._entries)

    def to_list(self) -> List[Dict[str, str]]:
        return [
            {'timestamp': entry.timestamp, 'message': entry.message}
            for entry in self.entries()
        ]

    def __len__(self) -> int:
        return len(self._entries)


class DebugLogHandler(logging.Handler):
    """Logging handler that mirrors records into a DebugLog."""

    def __init__(self, debug_log: DebugLog, level: int = logging.DEBUG):
        super().__init__(level)
        self.debug_log = debug_log

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.debug_log.append(f"{record.levelname} {record.name}: {record.getMessage()}")
        except Exception:
            self.handleError(record)


# Process-wide ring shared across warm Lambda invocations
debug_log = DebugLog()
