"""
Redis Client — async singleton.

Используется только если задан REDIS_URL; без него сервис работает
на локальном in-memory хранилище идемпотентности.
"""
import asyncio
from urllib.parse import urlparse

import redis.asyncio as aioredis

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.core.logging import get_logger

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None
_init_lock = asyncio.Lock()


def _mask_redis_url(url: str) -> str:
    """Скрывает пароль в REDIS_URL для логов (redis://:****@host:6379)."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            return url.replace(f":{parsed.password}@", ":****@")
        return url
    except ValueError:
        return "redis://****"


def is_redis_configured() -> bool:
    return bool(settings.REDIS_URL)


async def get_redis() -> aioredis.Redis:
    """Возвращает Redis client singleton (async, connection pool).

    Raises:
        ConfigurationError: REDIS_URL не задан.
        redis.RedisError / OSError: Redis недоступен при первом подключении.
    """
    global _redis_client
    if _redis_client is not None:
        return _redis_client

    if not is_redis_configured():
        raise ConfigurationError("REDIS_URL is not configured", missing=["REDIS_URL"])

    async with _init_lock:
        # повторная проверка под блокировкой — параллельный запрос мог уже создать клиент
        if _redis_client is not None:
            return _redis_client

        client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )
        await client.ping()
        _redis_client = client
        logger.info("Redis client initialized", extra_data={
            "url": _mask_redis_url(settings.REDIS_URL),
        })
    return _redis_client


async def close_redis() -> None:
    """Закрытие соединения — вызывается при остановке приложения."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")
