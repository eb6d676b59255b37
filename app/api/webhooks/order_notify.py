"""
Order Notify Webhook — уведомления о заказах из триггера Supabase.

Граница webhook никогда не сообщает об ошибке статусом: все исходы
отвечают 200 с коротким текстом (OK, OK_DUP, IGNORED_*, HANDLED),
чтобы триггер не делал повторных вызовов. Единственное исключение —
405 для неподдерживаемых методов.
"""
import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from app.api.dependencies.webhook_auth import bearer_token_matches
from app.core.config import settings
from app.core.logging import get_logger
from app.domain.services.idempotency import BaseIdempotencyStore, get_idempotency_store
from app.domain.services.order_notification_service import (
    NotificationEvent,
    NotifyOutcome,
    OrderNotificationService,
)
from app.domain.services.telegram_notifier import TelegramNotifier, get_telegram_notifier

logger = get_logger(__name__)

router = APIRouter()

# все методы приходят в обработчик: на всё, кроме GET/POST, ответ 405 в формате webhook
WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def _outcome_response(outcome: NotifyOutcome) -> PlainTextResponse:
    return PlainTextResponse(outcome.value, status_code=200)


def method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"ok": False, "error": "Method Not Allowed"},
    )


async def read_json_body(request: Request) -> Any:
    """Тело запроса как JSON; пустое или битое тело — {}."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Webhook body is not valid JSON", extra_data={"size": len(raw)})
        return {}


@router.api_route(
    "/order-notify",
    methods=WEBHOOK_METHODS,
    summary="Уведомление о заказе (webhook триггера БД)",
    description=(
        "POST — событие заказа `{event, order}` с `Authorization: Bearer <token>`. "
        "GET — тестовое сообщение во все чаты. Ответ всегда 200, кроме 405."
    ),
    response_model=None,
)
async def order_notify(
    request: Request,
    store: BaseIdempotencyStore = Depends(get_idempotency_store),
    notifier: TelegramNotifier = Depends(get_telegram_notifier),
) -> Response:
    try:
        if request.method == "GET":
            host = request.headers.get("host", "")
            await notifier.send(f"✅ Тест order-notify с {host}")
            return JSONResponse({"ok": True, "mode": "GET"})

        if request.method != "POST":
            return method_not_allowed()

        # подтверждаем, но игнорируем — триггер не должен повторять вызов
        if not bearer_token_matches(
            request.headers.get("authorization"), settings.SUPABASE_WEBHOOK_TOKEN
        ):
            logger.warning(
                "Order webhook rejected: bad token",
                extra_data={"has_header": "authorization" in request.headers},
            )
            return _outcome_response(NotifyOutcome.IGNORED_BAD_TOKEN)

        body = await read_json_body(request)
        event = NotificationEvent.from_body(body)

        service = OrderNotificationService(store=store, notifier=notifier)
        outcome = await service.process(event)
        return _outcome_response(outcome)
    except Exception as exc:
        logger.error(
            "[order-notify] error",
            extra_data={"error": str(exc), "exception_type": type(exc).__name__},
            exc_info=True,
        )
        return _outcome_response(NotifyOutcome.HANDLED)
