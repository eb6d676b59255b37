"""
Flower Shop Notify — точка входа ASGI.

    uvicorn app.main:app
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_redoc_html
from fastapi.responses import JSONResponse

from app.core.config import parse_csv_setting, settings
from app.core.logging import setup_logging, get_logger
from app.core.middleware import setup_middleware, setup_exception_handlers
from app.api.routes import router as api_router

setup_logging(
    level="DEBUG" if settings.DEBUG else "INFO",
    json_format=not settings.DEBUG,
    app_name=settings.APP_NAME
)

logger = get_logger(__name__)

_DEV_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]

_OPENAPI_TAGS = [
    {
        "name": "webhooks",
        "description": "Входящие уведомления: триггер заказов БД и callback Tinkoff. Всегда 200.",
    },
    {"name": "payments", "description": "Создание платежа Tinkoff для корзины витрины."},
    {"name": "whatsapp", "description": "Приветственное сообщение подписчику через Green API."},
    {"name": "Health", "description": "Liveness и readiness для платформы деплоя."},
]


def _cors_origins() -> list[str]:
    """ALLOWED_ORIGINS; при DEBUG без настройки — localhost витрины"""
    origins = parse_csv_setting(settings.ALLOWED_ORIGINS)
    if not origins and settings.DEBUG:
        return list(_DEV_ORIGINS)
    return origins


@asynccontextmanager
async def lifespan(_: FastAPI):
    from app.core.redis_client import close_redis
    from app.domain.services.idempotency import get_idempotency_store

    store = get_idempotency_store()
    logger.info(
        f"{settings.APP_NAME} started",
        extra_data={"idempotency": store.strategy_name, "shared": store.is_shared},
    )
    yield
    logger.info(f"{settings.APP_NAME} stopping")
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description=(
        "Серверная часть цветочного магазина: уведомления о заказах в Telegram "
        "с защитой от дублей, платежи Tinkoff и приветствия в WhatsApp."
    ),
    redoc_url=None,
    openapi_tags=_OPENAPI_TAGS,
    lifespan=lifespan,
)

setup_middleware(app)
setup_exception_handlers(app)

allowed_origins = _cors_origins()
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Correlation-ID"],
    )

app.include_router(api_router, prefix="/api")


@app.get(
    "/health",
    summary="Liveness Probe",
    description="Процесс жив. Redis не проверяется: его сбой не должен рестартовать сервис.",
    tags=["Health"],
)
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get(
    "/health/ready",
    summary="Readiness Probe",
    description=(
        "Redis (если задан REDIS_URL), активная стратегия идемпотентности и "
        "флаги настроенных интеграций. 503, если Redis задан, но недоступен."
    ),
    responses={
        200: {
            "description": "Сервис готов",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "redis": "ok",
                        "idempotency": "redis",
                        "configured": {
                            "telegram": True,
                            "order_webhook_token": True,
                            "tinkoff": True,
                            "green_api": False,
                        },
                    }
                }
            },
        },
        503: {"description": "Redis задан, но недоступен"},
    },
    tags=["Health"],
)
async def readiness_check() -> JSONResponse:
    from app.domain.services.health_service import check_readiness

    result = await check_readiness()
    return JSONResponse(
        content=result,
        status_code=200 if result["status"] == "healthy" else 503,
    )


@app.get("/redoc", include_in_schema=False)
async def redoc_html():
    # бандл с jsdelivr иногда не грузится, берём unpkg
    return get_redoc_html(
        openapi_url=app.openapi_url,
        title=f"{app.title} - ReDoc",
        redoc_js_url="https://unpkg.com/redoc@latest/bundles/redoc.standalone.js",
    )
