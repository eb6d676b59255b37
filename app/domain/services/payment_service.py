"""
Payment Service — интеграция с интернет-эквайрингом Tinkoff.

Подпись запроса (Token): корневые скалярные поля без пустых значений,
плюс Password, сортировка по ключу, конкатенация значений, SHA-256.
Вложенные объекты (Receipt, DATA) в подпись не входят.
"""
from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import (
    ConfigurationError,
    PaymentGatewayError,
    ServiceTimeoutError,
    ValidationException,
)
from app.core.logging import get_logger, log_async_operation
from app.domain.services.order_message import plain_number, to_decimal

logger = get_logger(__name__)

DEFAULT_DESCRIPTION = "Оплата заказа"


def _token_value(value: Any) -> str:
    # в JSON булевы значения — true/false, подпись считается по ним
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def make_token(fields: dict[str, Any], password: str) -> str:
    """Подпись запроса/уведомления Tinkoff."""
    clean: dict[str, str] = {}
    for key, value in fields.items():
        if key == "Token" or value is None or value == "":
            continue
        if isinstance(value, (dict, list)):
            continue
        clean[key] = _token_value(value)
    clean["Password"] = password
    joined = "".join(clean[key] for key in sorted(clean))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def verify_notification_token(body: dict[str, Any], password: str) -> bool:
    """Проверка Token во входящем уведомлении (constant-time сравнение)."""
    token = body.get("Token")
    if not isinstance(token, str) or not token:
        return False
    expected = make_token(body, password)
    return hmac.compare_digest(token.lower(), expected)


@dataclass(frozen=True)
class PaymentInitRequest:
    amount: int  # копейки
    order_id: str
    description: str = DEFAULT_DESCRIPTION
    customer_key: Optional[str] = None
    success_url: Optional[str] = None
    fail_url: Optional[str] = None
    receipt: Optional[dict[str, Any]] = None

    @classmethod
    def from_body(cls, body: Any) -> "PaymentInitRequest":
        """Разбор тела запроса фронтенда; ошибки — ValidationException (400)."""
        if not isinstance(body, dict):
            body = {}

        amount = body.get("amount")
        # 100.0 из JSON — то же целое число копеек
        if isinstance(amount, float) and amount.is_integer():
            amount = int(amount)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationException(
                "amount (kopecks) is required and must be > 0", field="amount"
            )

        order_id = body.get("orderId")
        if not isinstance(order_id, str) or not order_id:
            raise ValidationException("orderId is required", field="orderId")

        receipt = body.get("receipt")
        customer_key = body.get("customerKey")
        return cls(
            amount=amount,
            order_id=order_id,
            description=body.get("description") or DEFAULT_DESCRIPTION,
            customer_key=str(customer_key) if customer_key else None,
            success_url=body.get("successUrl") or None,
            fail_url=body.get("failUrl") or None,
            receipt=receipt if isinstance(receipt, dict) else None,
        )


@dataclass(frozen=True)
class PaymentInitResult:
    payment_url: str
    payment_id: str


class PaymentService:
    """Создание платежа (метод Init)."""

    def __init__(
        self,
        terminal_key: Optional[str] = None,
        password: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._terminal_key = settings.TINKOFF_TERMINAL_KEY if terminal_key is None else terminal_key
        self._password = settings.TINKOFF_PASSWORD if password is None else password
        self._api_url = settings.TINKOFF_API_URL if api_url is None else api_url
        self._timeout = (
            settings.PAYMENT_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )

    def _require_credentials(self) -> None:
        missing = []
        if not self._terminal_key:
            missing.append("TINKOFF_TERMINAL_KEY")
        if not self._password:
            missing.append("TINKOFF_PASSWORD")
        if missing:
            raise ConfigurationError("Server not configured: missing env vars", missing=missing)

    def build_init_payload(self, request: PaymentInitRequest) -> dict[str, Any]:
        """Тело запроса Init с подписью. Receipt добавляется после подписи."""
        payload: dict[str, Any] = {
            "TerminalKey": self._terminal_key,
            "Amount": request.amount,
            "OrderId": request.order_id,
            "Description": request.description,
            "CustomerKey": request.customer_key,
            "SuccessURL": request.success_url or settings.TINKOFF_SUCCESS_URL,
            "FailURL": request.fail_url or settings.TINKOFF_FAIL_URL,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        payload["Token"] = make_token(payload, self._password)
        if request.receipt:
            payload["Receipt"] = request.receipt
        return payload

    @log_async_operation("tinkoff_init")
    async def init_payment(self, request: PaymentInitRequest) -> PaymentInitResult:
        """
        Создать платёж и получить ссылку на платёжную форму.

        Raises:
            ConfigurationError: нет TINKOFF_TERMINAL_KEY / TINKOFF_PASSWORD.
            PaymentGatewayError: ответ не JSON (502) или Success=false (400).
            ServiceTimeoutError: шлюз не ответил вовремя.
        """
        self._require_credentials()
        payload = self.build_init_payload(request)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(f"{self._api_url}/Init", json=payload)
        except httpx.TimeoutException as exc:
            raise ServiceTimeoutError("tinkoff", self._timeout) from exc
        except httpx.HTTPError as exc:
            raise PaymentGatewayError(
                f"Tinkoff Init network error: {exc}",
                status_code=502,
                details={"order_id": request.order_id},
            ) from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            logger.error(
                "Tinkoff Init returned non-JSON",
                extra_data={"order_id": request.order_id, "status_code": response.status_code},
            )
            raise PaymentGatewayError.from_response(
                "Init", response, message="Bad gateway to Tinkoff"
            )

        if not data.get("Success"):
            logger.error(
                "Tinkoff Init failed",
                extra_data={
                    "order_id": request.order_id,
                    "error_code": data.get("ErrorCode"),
                    "message": data.get("Message"),
                },
            )
            raise PaymentGatewayError(
                data.get("Message") or "Init failed",
                details={"gateway": data},
            )

        return PaymentInitResult(
            payment_url=str(data.get("PaymentURL") or ""),
            payment_id=str(data.get("PaymentId") or ""),
        )


# ──────────────────────────────────────────────
#  Уведомление о платеже (callback)
# ──────────────────────────────────────────────

def kopecks_to_rub(value: Any) -> str:
    """15050 → '150.50'"""
    number = to_decimal(value)
    if number is None:
        number = Decimal(0)
    return f"{(number / 100).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):f}"


def extract_receipt_items(body: dict[str, Any]) -> list[Any]:
    data = body.get("DATA") if isinstance(body.get("DATA"), dict) else {}
    candidates = (
        (body.get("Receipt") or {}).get("Items") if isinstance(body.get("Receipt"), dict) else None,
        body.get("Items"),
        (data.get("Receipt") or {}).get("Items") if isinstance(data.get("Receipt"), dict) else None,
    )
    for items in candidates:
        if items:
            return items if isinstance(items, list) else []
    return []


def format_payment_message(body: dict[str, Any]) -> str:
    """Текст уведомления о платеже для Telegram."""
    status = body.get("Status") or "—"
    order_id = body.get("OrderId") or body.get("PaymentId") or "—"
    customer = body.get("CustomerKey") or body.get("Phone") or body.get("Email") or "не указано"
    items = [it if isinstance(it, dict) else {} for it in extract_receipt_items(body)]

    lines = [
        "💳 Оповещение Tinkoff",
        "",
        f"Статус: {status}",
        f"Заказ: {order_id}",
        f"Покупатель: {customer}",
        f"Сумма: {kopecks_to_rub(body.get('Amount') or 0)} ₽",
    ]

    first_name = str(items[0]["Name"]) if items and items[0].get("Name") else ""
    if first_name:
        lines += ["", f"Название букета: {first_name}"]

    if items:
        lines += ["", "Позиции:"]
        for item in items:
            name = str(item.get("Name") or "").strip()
            quantity = to_decimal(item.get("Quantity"))
            qty = plain_number(quantity) if quantity is not None else "1"
            lines.append(
                f"• {name} ×{qty} — {kopecks_to_rub(item.get('Amount'))} ₽ "
                f"({kopecks_to_rub(item.get('Price'))} ₽/шт)"
            )

    return "\n".join(lines)
