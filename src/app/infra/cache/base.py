# src/app/infra/cache/base.py
"""
Abstract interfaces for the process-local caches used by the pipeline.
Both are best-effort: losing their content only costs a redundant request.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class RateLimitStore(ABC):
    """
    Storage for per-identifier request timestamps (milliseconds).

    Implementations:
    - InMemoryRateLimitStore: dict in the current process
    - Future: a shared key-value store for multi-instance deployments
    """

    @abstractmethod
    def get(self, identifier: str) -> list[float]:
        """Return the recorded timestamps for an identifier (oldest first)."""
        pass

    @abstractmethod
    def set(self, identifier: str, timestamps: list[float]) -> None:
        """Replace the recorded timestamps for an identifier."""
        pass

    @abstractmethod
    def sweep(self, window_start: float) -> int:
        """
        Drop timestamps at or before window_start and forget identifiers
        left with none.

        Returns:
            Number of identifiers removed
        """
        pass


class TranscriptCache(ABC):
    """Mapping from a caller-chosen cache key to transcript text."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, transcript: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass
