"""
In-process idempotency store — best-effort local dedup.

Гарантия at-most-once действует только внутри одного процесса:
два инстанса (или холодный старт serverless-функции) могут оба
захватить один и тот же ключ. Это известное ограничение стратегии.
"""
from __future__ import annotations

import threading
import time
from typing import Callable

from app.core.logging import get_logger
from app.domain.services.idempotency.base_store import BaseIdempotencyStore

logger = get_logger(__name__)

# чистка просроченных ключей, когда словарь разрастается;
# не чаще раза в _PRUNE_INTERVAL секунд, даже если все ключи живые
_PRUNE_THRESHOLD = 10_000
_PRUNE_INTERVAL = 60.0


class InMemoryIdempotencyStore(BaseIdempotencyStore):
    """Словарь ``key -> expires_at`` под блокировкой."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expiry: dict[str, float] = {}
        self._lock = threading.Lock()
        self._last_prune = float("-inf")

    @property
    def strategy_name(self) -> str:
        return "memory"

    @property
    def is_shared(self) -> bool:
        return False

    async def claim(self, key: str, ttl_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            expires_at = self._expiry.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._expiry[key] = now + ttl_seconds
            if (
                len(self._expiry) > _PRUNE_THRESHOLD
                and now - self._last_prune >= _PRUNE_INTERVAL
            ):
                self._prune(now)
        return True

    def _prune(self, now: float) -> None:
        self._last_prune = now
        expired = [k for k, until in self._expiry.items() if until <= now]
        for k in expired:
            del self._expiry[k]
        if expired:
            logger.debug(
                "Pruned expired idempotency keys",
                extra_data={"removed": len(expired), "remaining": len(self._expiry)},
            )

    def __len__(self) -> int:
        return len(self._expiry)
