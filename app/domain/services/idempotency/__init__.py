"""
Idempotency Store

Хранилище ключей идемпотентности для уведомлений о заказах.
Две стратегии за одним интерфейсом: общий Redis и локальная память процесса.
"""
from app.domain.services.idempotency.base_store import BaseIdempotencyStore
from app.domain.services.idempotency.store_factory import (
    get_idempotency_store,
    reset_idempotency_store,
)

__all__ = [
    "BaseIdempotencyStore",
    "get_idempotency_store",
    "reset_idempotency_store",
]
