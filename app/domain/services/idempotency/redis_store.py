"""
Redis idempotency store — durable shared dedup.

``SET key 1 NX EX ttl`` атомарен на стороне Redis, поэтому
параллельные вызовы из разных инстансов получают "first writer wins".
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.exceptions import AppException, IdempotencyStoreError
from app.core.logging import get_logger
from app.core.redis_client import get_redis
from app.domain.services.idempotency.base_store import BaseIdempotencyStore

logger = get_logger(__name__)

RedisGetter = Callable[[], Awaitable[aioredis.Redis]]


class RedisIdempotencyStore(BaseIdempotencyStore):
    """
    Общее хранилище ключей в Redis.

    Ошибки Redis (и при подключении, и при вызове) поднимаются как
    IdempotencyStoreError. Перехода на локальную память нет: он нарушил бы
    at-most-once между инстансами.
    """

    def __init__(self, redis_getter: RedisGetter = get_redis) -> None:
        self._get_redis = redis_getter

    @property
    def strategy_name(self) -> str:
        return "redis"

    @property
    def is_shared(self) -> bool:
        return True

    async def claim(self, key: str, ttl_seconds: int) -> bool:
        try:
            client = await self._get_redis()
            result = await client.set(key, "1", nx=True, ex=ttl_seconds)
        except (RedisError, OSError, AppException) as exc:
            logger.error(
                "Idempotency claim failed in Redis",
                extra_data={"key": key, "error": str(exc)},
            )
            raise IdempotencyStoreError(self.strategy_name, str(exc), key=key) from exc
        return bool(result)

    async def ping(self) -> bool:
        """Проверка доступности для readiness."""
        try:
            client = await self._get_redis()
            return bool(await client.ping())
        except (RedisError, OSError, AppException) as exc:
            logger.warning("Redis ping failed", extra_data={"error": str(exc)})
            return False
