"""
Store Factory — выбор стратегии идемпотентности один раз на процесс.

REDIS_URL задан → RedisIdempotencyStore, иначе InMemoryIdempotencyStore.
"""
from __future__ import annotations

import threading

from app.core.logging import get_logger
from app.core.redis_client import is_redis_configured
from app.domain.services.idempotency.base_store import BaseIdempotencyStore

logger = get_logger(__name__)

_store: BaseIdempotencyStore | None = None
_lock = threading.Lock()


def _create_store() -> BaseIdempotencyStore:
    if is_redis_configured():
        from app.domain.services.idempotency.redis_store import RedisIdempotencyStore

        return RedisIdempotencyStore()

    from app.domain.services.idempotency.memory_store import InMemoryIdempotencyStore

    logger.warning(
        "REDIS_URL не задан — идемпотентность только в памяти процесса",
        extra_data={"strategy": "memory"},
    )
    return InMemoryIdempotencyStore()


def get_idempotency_store() -> BaseIdempotencyStore:
    """Singleton хранилища идемпотентности для текущего процесса."""
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                _store = _create_store()
                logger.info(
                    "Idempotency store initialized",
                    extra_data={"strategy": _store.strategy_name, "shared": _store.is_shared},
                )
    return _store


def reset_idempotency_store() -> None:
    """Сброс singleton — только для тестов."""
    global _store
    with _lock:
        _store = None
