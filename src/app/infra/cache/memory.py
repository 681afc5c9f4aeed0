# src/app/infra/cache/memory.py
from __future__ import annotations

import threading
from typing import Optional

from src.app.infra.cache.base import RateLimitStore, TranscriptCache


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self) -> None:
        self._entries: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def get(self, identifier: str) -> list[float]:
        with self._lock:
            return list(self._entries.get(identifier, ()))

    def set(self, identifier: str, timestamps: list[float]) -> None:
        with self._lock:
            self._entries[identifier] = list(timestamps)

    def sweep(self, window_start: float) -> int:
        removed = 0
        with self._lock:
            for identifier in list(self._entries):
                retained = [ts for ts in self._entries[identifier] if ts > window_start]
                if retained:
                    self._entries[identifier] = retained
                else:
                    del self._entries[identifier]
                    removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._entries)


class InMemoryTranscriptCache(TranscriptCache):
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, transcript: str) -> None:
        self._items[key] = transcript

    def clear(self) -> None:
        self._items.clear()
