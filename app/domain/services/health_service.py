"""
Сервис проверки готовности — зависимости и конфигурация.

Два уровня:
- liveness: процесс жив (без проверки зависимостей)
- readiness: Redis (если задан REDIS_URL) и наличие настроек интеграций
"""
from typing import Any

from app.core.config import settings
from app.core.logging import get_logger
from app.core.redis_client import get_redis, is_redis_configured
from app.domain.services.idempotency import get_idempotency_store

logger = get_logger(__name__)

_STATUS_HEALTHY = "healthy"
_STATUS_DEGRADED = "degraded"

_CHECK_OK = "ok"
_CHECK_SKIPPED = "not_configured"

# без деталей инфраструктуры в ответе
_ERROR_REDIS = "error: redis_unavailable"


async def _check_redis() -> str:
    """PING в Redis; без REDIS_URL проверка пропускается."""
    if not is_redis_configured():
        return _CHECK_SKIPPED
    try:
        client = await get_redis()
        await client.ping()
        return _CHECK_OK
    except Exception as e:
        logger.warning("Redis health check failed", extra_data={"error": str(e)})
        return _ERROR_REDIS


def configuration_flags() -> dict[str, bool]:
    """Какие интеграции настроены (без значений секретов)."""
    return {
        "telegram": bool(settings.TG_BOT_TOKEN and settings.telegram_chat_ids),
        "order_webhook_token": bool(settings.SUPABASE_WEBHOOK_TOKEN),
        "tinkoff": bool(settings.TINKOFF_TERMINAL_KEY and settings.TINKOFF_PASSWORD),
        "green_api": bool(
            settings.GREEN_API_URL and settings.GREEN_API_ID_INSTANCE and settings.GREEN_API_TOKEN
        ),
    }


async def check_readiness() -> dict[str, Any]:
    """
    Readiness: ``degraded``, если Redis задан, но недоступен.

    Отсутствие настроек интеграций не делает сервис неготовым —
    соответствующие вызовы просто не выполняются, флаги показывают это.
    """
    redis_status = await _check_redis()
    store = get_idempotency_store()

    ok = redis_status in (_CHECK_OK, _CHECK_SKIPPED)
    result = {
        "status": _STATUS_HEALTHY if ok else _STATUS_DEGRADED,
        "redis": redis_status,
        "idempotency": store.strategy_name,
        "configured": configuration_flags(),
    }

    if not ok:
        logger.warning("Readiness check degraded", extra_data=result)

    return result
