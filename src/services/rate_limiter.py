# src/services/rate_limiter.py
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from src.app.domain.models import RateLimitInfo
from src.app.infra.cache.base import RateLimitStore
from src.app.infra.cache.memory import InMemoryRateLimitStore

log = logging.getLogger("rate_limiter")

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_MS = 60_000


def _now_ms() -> float:
    return time.time() * 1000


class RateLimiter:
    """
    Janela deslizante por identificador (normalmente o IP do cliente).

    O estado vive no processo: reiniciar zera tudo e varias instancias
    nao compartilham contagem.
    """

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        self._store = store or InMemoryRateLimitStore()
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._sweeper: Optional[asyncio.Task[None]] = None
        self._lock = asyncio.Lock()

    def check(self, identifier: str) -> RateLimitInfo:
        """Conta uma requisicao para o identificador quando ela e permitida."""
        return self._evaluate(identifier, record=True)

    def peek(self, identifier: str) -> RateLimitInfo:
        """Mesmo calculo de check(), sem registrar requisicao."""
        return self._evaluate(identifier, record=False)

    def _evaluate(self, identifier: str, *, record: bool) -> RateLimitInfo:
        now = self._clock()
        window_start = now - self.window_ms

        # so timestamps estritamente dentro da janela contam
        timestamps = [ts for ts in self._store.get(identifier) if ts > window_start]
        count = len(timestamps)
        allowed = count < self.max_requests
        remaining = max(0, self.max_requests - count) - (1 if allowed else 0)

        oldest = timestamps[0] if timestamps else now
        reset_at = datetime.fromtimestamp((oldest + self.window_ms) / 1000, tz=timezone.utc)

        if record and allowed:
            timestamps.append(now)
        if record:
            self._store.set(identifier, timestamps)

        return RateLimitInfo(allowed=allowed, remaining=remaining, reset_at=reset_at)

    def sweep(self) -> int:
        """Remove identificadores sem nenhum timestamp na janela atual."""
        removed = self._store.sweep(self._clock() - self.window_ms)
        if removed:
            log.info("rate_limiter.sweep removed=%s", removed)
        return removed

    async def start_sweeper(self) -> None:
        async with self._lock:
            if self._sweeper and not self._sweeper.done():
                return
            self._sweeper = asyncio.create_task(self._run_sweeper(), name="rate-limit-sweeper")

    async def stop_sweeper(self) -> None:
        async with self._lock:
            if not self._sweeper:
                return
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            finally:
                self._sweeper = None

    async def _run_sweeper(self) -> None:
        interval = self.window_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception:
                log.exception("rate_limiter.sweep_failed")


def format_reset(reset_at: datetime) -> str:
    """ISO-8601 em UTC com milissegundos e sufixo Z."""
    return reset_at.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
