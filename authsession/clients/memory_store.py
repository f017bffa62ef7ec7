"""In-process session store used while the Redis cache is unreachable."""

from __future__ import annotations

import threading
from typing import Dict, Optional

from authsession.models.session import SessionRecord


class InMemorySessionStore:
    """Thread-safe map of session key to record.

    Entries never expire; they live until deleted or the process restarts.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, SessionRecord] = {}

    def put(self, key: str, record: SessionRecord) -> None:
        with self._lock:
            self._records[key] = record

    def get(self, key: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._records.get(key)

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns whether an entry existed."""
        with self._lock:
            return self._records.pop(key, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["InMemorySessionStore"]
