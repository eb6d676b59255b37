"""
Payment Callback Webhook — уведомления Tinkoff о статусе платежа.

Всегда отвечает 200, даже при внутренней ошибке, чтобы банк не ретраил.
Повторные уведомления с тем же статусом платежа в чат не дублируются.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from app.api.webhooks.order_notify import WEBHOOK_METHODS, method_not_allowed, read_json_body
from app.core.config import settings
from app.core.logging import get_logger
from app.domain.services.idempotency import BaseIdempotencyStore, get_idempotency_store
from app.domain.services.payment_service import (
    format_payment_message,
    verify_notification_token,
)
from app.domain.services.telegram_notifier import TelegramNotifier, get_telegram_notifier

logger = get_logger(__name__)

router = APIRouter()



def payment_idempotency_key(body: dict[str, Any]) -> Optional[str]:
    """``payment:{PaymentId|OrderId}:{status}`` или None, если идентификатора нет."""
    payment_ref = body.get("PaymentId") or body.get("OrderId")
    if not payment_ref:
        return None
    status = str(body.get("Status") or "nostatus").lower()
    return f"payment:{payment_ref}:{status}"


@router.api_route(
    "/callback",
    methods=WEBHOOK_METHODS,
    summary="Уведомление Tinkoff о платеже",
    description="POST — уведомление банка, пересылается в Telegram. GET — тестовое сообщение.",
    response_model=None,
)
async def payment_callback(
    request: Request,
    store: BaseIdempotencyStore = Depends(get_idempotency_store),
    notifier: TelegramNotifier = Depends(get_telegram_notifier),
) -> Response:
    host = request.headers.get("host", "")
    try:
        if request.method == "GET":
            now = datetime.now(timezone.utc).isoformat()
            results = await notifier.send_with_results(f"✅ Тест из callback ({now})\nДомен: {host}")
            return JSONResponse({"ok": True, "mode": "GET", "telegram": results})

        if request.method != "POST":
            return method_not_allowed()

        body = await read_json_body(request)
        if not isinstance(body, dict):
            body = {}

        if settings.TINKOFF_PASSWORD and not verify_notification_token(
            body, settings.TINKOFF_PASSWORD
        ):
            logger.warning(
                "Payment callback with bad token ignored",
                extra_data={"order_id": body.get("OrderId"), "status": body.get("Status")},
            )
            return JSONResponse({"ok": True, "mode": "POST", "ignored": "bad_token"})

        key = payment_idempotency_key(body)
        if key and not await store.claim(key, settings.IDEMPOTENCY_TTL_SEC):
            logger.info("Duplicate payment callback skipped", extra_data={"key": key})
            return JSONResponse({"ok": True, "mode": "POST", "duplicate": True})

        results = await notifier.send_with_results(format_payment_message(body))
        return JSONResponse({"ok": True, "mode": "POST", "telegram": results})
    except Exception as exc:
        logger.error(
            "Payment callback failed",
            extra_data={"error": str(exc), "exception_type": type(exc).__name__},
            exc_info=True,
        )
        return JSONResponse({"ok": True, "error": "handled"})


# старый адрес, указанный в личном кабинете терминала
legacy_router = APIRouter()
legacy_router.add_api_route(
    "/tinkoff-callback", payment_callback, methods=WEBHOOK_METHODS, response_model=None
)
