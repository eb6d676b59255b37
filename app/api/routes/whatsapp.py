"""
WhatsApp API — приветственное сообщение подписчику рассылки.
"""
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import ValidationException
from app.core.logging import get_logger
from app.domain.services.whatsapp import BaseWhatsAppProvider, get_whatsapp_provider
from app.domain.services.whatsapp.welcome import build_welcome_message

logger = get_logger(__name__)

router = APIRouter()


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


@router.get(
    "/send-welcome",
    summary="Проверка доступности (ping)",
    description="`?check` — быстрый ping. Без параметра — 405: отправка только через POST.",
)
async def send_welcome_check(request: Request) -> JSONResponse:
    if "check" in request.query_params:
        return JSONResponse({"ok": True, "message": "ping"})
    return JSONResponse(status_code=405, content={"error": "Use POST to send message"})


@router.post(
    "/send-welcome",
    summary="Отправка приветствия в WhatsApp",
    description=(
        "Тело: `phone` (обязательно), `name`, `promoCode`. "
        "Номер нормализуется в российский формат chatId Green API."
    ),
)
async def send_welcome(
    request: Request,
    provider: BaseWhatsAppProvider = Depends(get_whatsapp_provider),
) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationException("Invalid JSON")
    if not isinstance(body, dict):
        raise ValidationException("Invalid JSON")

    phone = _optional_text(body.get("phone")) or ""
    chat_id = provider.normalize_phone(phone)
    if not chat_id:
        raise ValidationException("Bad phone format", field="phone")

    text = build_welcome_message(
        name=_optional_text(body.get("name")),
        promo_code=_optional_text(body.get("promoCode")),
    )
    result = await provider.send_text(chat_id, text)
    return JSONResponse({"ok": True, "chatId": chat_id, "greenApi": result})


legacy_router = APIRouter()
legacy_router.add_api_route("/whatsapp-send-welcome", send_welcome_check, methods=["GET"])
legacy_router.add_api_route("/whatsapp-send-welcome", send_welcome, methods=["POST"])
