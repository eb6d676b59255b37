"""
Order Notification Service — идемпотентная отправка уведомлений о заказах.

Порядок внутри запроса строгий: сначала claim ключа, и только после
успешного захвата — форматирование и отправка.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.domain.services.idempotency import BaseIdempotencyStore
from app.domain.services.order_message import format_order_message, integral_id
from app.domain.services.telegram_notifier import TelegramNotifier

logger = get_logger(__name__)

EVENT_ORDER_INSERT = "order.insert"
EVENT_ORDER_UPDATE = "order.update"
EVENT_UNKNOWN = "order.unknown"


class NotifyOutcome(str, Enum):
    """Тело ответа webhook для каждого исхода"""

    OK = "OK"
    DUPLICATE = "OK_DUP"
    IGNORED_BAD_TOKEN = "IGNORED_BAD_TOKEN"
    IGNORED_NO_ORDER = "IGNORED_NO_ORDER"
    HANDLED = "HANDLED"


@dataclass(frozen=True)
class NotificationEvent:
    """Событие из тела webhook: ``{event, order}``."""

    event_name: str
    order: Optional[dict[str, Any]]

    @classmethod
    def from_body(cls, body: Any) -> "NotificationEvent":
        if not isinstance(body, dict):
            body = {}
        event_name = body.get("event")
        order = body.get("order")
        return cls(
            event_name=str(event_name) if event_name else EVENT_UNKNOWN,
            order=order if isinstance(order, dict) and order else None,
        )

    @property
    def order_id(self) -> Optional[str]:
        if not self.order:
            return None
        return format_order_id(self.order.get("id"))


def format_order_id(value: Any) -> Optional[str]:
    """id заказа для ключа; пустые/ложные значения — None."""
    if value is None or value is False or value == "" or value == 0:
        return None
    return str(integral_id(value))


def derive_idempotency_key(event_name: str, order: dict[str, Any]) -> str:
    """
    Ключ идемпотентности события.

    - order.insert → ``order:{id}`` (один раз на заказ)
    - order.update → ``order:{id}:{status}`` (один раз на каждый новый статус)
    - прочее → ``order:{id}:evt:{event}``
    """
    order_id = format_order_id(order.get("id"))
    if event_name == EVENT_ORDER_INSERT:
        return f"order:{order_id}"
    if event_name == EVENT_ORDER_UPDATE:
        status = order.get("payment_status") or order.get("status") or "nostatus"
        return f"order:{order_id}:{str(status).lower()}"
    return f"order:{order_id}:evt:{event_name}"


class OrderNotificationService:
    """Claim → format → send для одного события заказа."""

    def __init__(
        self,
        store: BaseIdempotencyStore,
        notifier: TelegramNotifier,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._ttl = settings.IDEMPOTENCY_TTL_SEC if ttl_seconds is None else ttl_seconds

    async def process(self, event: NotificationEvent) -> NotifyOutcome:
        """
        Обработка события.

        Raises:
            IdempotencyStoreError: общее хранилище недоступно — уведомление
                не отправляется, вызывающий отвечает HANDLED.
        """
        if event.order is None or event.order_id is None:
            logger.info(
                "Order notification ignored: no order",
                extra_data={"event": event.event_name},
            )
            return NotifyOutcome.IGNORED_NO_ORDER

        key = derive_idempotency_key(event.event_name, event.order)
        first = await self._store.claim(key, self._ttl)
        if not first:
            logger.info(
                "Duplicate order notification skipped",
                extra_data={"key": key, "strategy": self._store.strategy_name},
            )
            return NotifyOutcome.DUPLICATE

        text = format_order_message(event.order, event.event_name)
        # ошибки доставки не поднимаются: триггер не должен повторять вызов
        await self._notifier.send(text)

        logger.info(
            "Order notification processed",
            extra_data={"key": key, "event": event.event_name, "order_id": event.order_id},
        )
        return NotifyOutcome.OK
