"""Bounded in-memory ring of hook and fetch output."""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Optional

from worktree_agent.constants import LOG_CAPACITY
from worktree_agent.models.events import OutputStream


@dataclass(frozen=True)
class LogEntry:
    source: str
    line: str
    stream: OutputStream = OutputStream.STDOUT
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LogBuffer:
    """Fixed-capacity log; appending evicts the oldest entry and never blocks."""

    def __init__(self, capacity: int = LOG_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        # Entries ever appended, including evicted ones
        self.total = 0

    def append(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)
            self.total += 1

    def add(self, source: str, line: str, stream: OutputStream = OutputStream.STDOUT,
            timestamp: Optional[datetime] = None) -> LogEntry:
        entry = LogEntry(source=source, line=line, stream=stream,
                         timestamp=timestamp or datetime.now(timezone.utc))
        self.append(entry)
        return entry

    def entries(self, source: Optional[str] = None) -> List[LogEntry]:
        """Entries oldest first, optionally only those from one source."""
        with self._lock:
            entries = list(self._entries)
        if source is not None:
            entries = [e for e in entries if e.source == source]
        return entries

    def tail(self, count: int) -> List[LogEntry]:
        with self._lock:
            if count <= 0:
                return []
            return list(self._entries)[-count:]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
