"""
Order Message Formatter — текст уведомления о заказе для Telegram.

Payload приходит из триггера БД без фиксированной схемы: любое поле
может отсутствовать. На границе он разбирается в OrderPayload (все поля
опциональны) и нормализуется в OrderView с заполненными значениями.
Дальше границы сырые поля не читаются.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

PLACEHOLDER = "—"
SEPARATOR = "──────────────"
ITEMS_HEADING = "Состав заказа:"

# неразрывный пробел — разделитель разрядов в ru-RU
_GROUP_SEPARATOR = "\u00a0"
_MAX_FRACTION = Decimal("0.001")
# больше — уже не сумма, выводится как есть
_MAX_MAGNITUDE = Decimal("1e18")

PAYMENT_METHOD_LABELS = {
    "card": "Карта",
    "sbp": "СБП",
    "cash": "Наличные",
}

DELIVERY_TYPE_LABELS = {
    "delivery": "Доставка",
    "pickup": "Самовывоз",
    "clarify": "Уточнить",
}

DELIVERY_TYPE_DELIVERY = "delivery"


class OrderPayload(BaseModel):
    """Сырой заказ из webhook — все поля опциональны, лишние сохраняются."""

    model_config = ConfigDict(extra="allow")

    id: Any = None
    total_amount: Any = None
    amount_total: Any = None
    amount: Any = None
    payment_method: Any = None
    payment_status: Any = None
    status: Any = None
    delivery_type: Any = None
    delivery_date: Any = None
    delivery_time: Any = None
    district: Any = None
    recipient_name: Any = None
    recipient_phone: Any = None
    recipient_address: Any = None
    customer_name: Any = None
    customer_phone: Any = None
    promo_code: Any = None
    discount_amount: Any = None
    card_wishes: Any = None
    card_message: Any = None
    order_comment: Any = None
    comment: Any = None
    items: Any = None

    @classmethod
    def from_raw(cls, raw: Any) -> "OrderPayload":
        return cls.model_validate(raw if isinstance(raw, dict) else {})


@dataclass(frozen=True)
class OrderItemView:
    name: str
    quantity: str
    unit_price: str
    line_total: str


@dataclass(frozen=True)
class OrderView:
    """Нормализованный заказ — все значения уже строки для шаблона."""

    order_id: str
    total: str
    payment_label: str
    delivery_label: str
    status: Optional[str]
    address: Optional[str]
    when: Optional[str]
    recipient: Optional[str]
    customer: Optional[str]
    promo: Optional[str]
    card_message: Optional[str]
    comment: Optional[str]
    items: Optional[tuple[OrderItemView, ...]]


# ──────────────────────────────────────────────
#  Числа
# ──────────────────────────────────────────────

def to_decimal(value: Any) -> Optional[Decimal]:
    """Число из значения payload; None — если это не конечное число."""
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return None
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return Decimal(0)
        try:
            number = Decimal(stripped)
        except InvalidOperation:
            return None
    else:
        return None
    if not number.is_finite() or abs(number) >= _MAX_MAGNITUDE:
        return None
    return number


def _group_digits(digits: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return _GROUP_SEPARATOR.join(groups)


def format_decimal_ru(number: Decimal) -> str:
    """1234567.5 → '1 234 567,5' (до трёх знаков после запятой, без лишних нулей)."""
    with localcontext() as ctx:
        # цена × количество может выйти за 28 знаков контекста по умолчанию
        ctx.prec = 60
        rounded = number.quantize(_MAX_FRACTION, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    integer_part, _, fraction = f"{abs(rounded):f}".partition(".")
    fraction = fraction.rstrip("0")
    text = _group_digits(integer_part)
    if fraction:
        text = f"{text},{fraction}"
    return sign + text


def format_rub(value: Any) -> str:
    """Сумма для сообщения: None → '0', не-число выводится как есть."""
    if value is None:
        return "0"
    number = to_decimal(value)
    if number is None:
        return str(value)
    return format_decimal_ru(number)


def plain_number(number: Decimal) -> str:
    """Количество без группировки разрядов: 3 → '3', 1.5 → '1.5'."""
    if number == number.to_integral_value():
        return str(int(number))
    return f"{number.normalize():f}"


# ──────────────────────────────────────────────
#  Текст
# ──────────────────────────────────────────────

def integral_id(value: Any) -> Any:
    """42.0 → 42: JSON-числа с нулевой дробной частью приходят как float."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _clean(value: Any) -> Optional[str]:
    """Обрезанная строка или None для пустых значений."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_free_text(value: Any) -> Optional[str]:
    """Комментарий/открытка: пустое и 'empty' (в любом регистре) считаются отсутствующими."""
    text = _clean(value)
    if text is None or text.lower() == "empty":
        return None
    return text


def _label(value: Any, labels: dict[str, str]) -> str:
    text = _clean(value)
    if text is None:
        return PLACEHOLDER
    return labels.get(text, text)


def _person(name: Any, phone: Any) -> Optional[str]:
    name_text = _clean(name)
    phone_text = _clean(phone)
    if not name_text and not phone_text:
        return None
    line = name_text or PLACEHOLDER
    if phone_text:
        line += f" ({phone_text})"
    return line


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _is_truthy_amount(value: Any) -> bool:
    number = to_decimal(value)
    if number is not None:
        return number != 0
    return _clean(value) is not None


def _normalize_item(raw: Any) -> OrderItemView:
    item = raw if isinstance(raw, dict) else {}
    name = _clean(_first_present(item.get("name"), item.get("Name"))) or ""

    quantity = to_decimal(_first_present(item.get("cartQuantity"), item.get("quantity")))
    if quantity is None:
        quantity = Decimal(1)

    raw_price = _first_present(item.get("price"), item.get("Price"), 0)
    unit_price = to_decimal(raw_price)
    if unit_price is None:
        return OrderItemView(
            name=name,
            quantity=plain_number(quantity),
            unit_price=str(raw_price),
            line_total=PLACEHOLDER,
        )
    return OrderItemView(
        name=name,
        quantity=plain_number(quantity),
        unit_price=format_decimal_ru(unit_price),
        line_total=format_decimal_ru(unit_price * quantity),
    )


def normalize_order(payload: OrderPayload) -> OrderView:
    """OrderPayload → OrderView: все fallback-значения подставляются здесь."""
    order_id = _clean(integral_id(payload.id)) or PLACEHOLDER
    total = format_rub(_first_present(payload.total_amount, payload.amount_total, payload.amount))

    address = None
    if _clean(payload.delivery_type) == DELIVERY_TYPE_DELIVERY:
        parts = [p for p in (_clean(payload.recipient_address), _clean(payload.district)) if p]
        address = ", ".join(parts) or None

    when_parts = [p for p in (_clean(payload.delivery_date), _clean(payload.delivery_time)) if p]

    promo = None
    promo_code = _clean(payload.promo_code)
    if promo_code:
        promo = promo_code
        if _is_truthy_amount(payload.discount_amount):
            promo += f" (−{format_rub(payload.discount_amount)} ₽)"

    items = None
    if isinstance(payload.items, list) and payload.items:
        items = tuple(_normalize_item(raw) for raw in payload.items)

    return OrderView(
        order_id=order_id,
        total=total,
        payment_label=_label(payload.payment_method, PAYMENT_METHOD_LABELS),
        delivery_label=_label(payload.delivery_type, DELIVERY_TYPE_LABELS),
        status=_clean(payload.payment_status) or _clean(payload.status),
        address=address,
        when=" ".join(when_parts) or None,
        recipient=_person(payload.recipient_name, payload.recipient_phone),
        customer=_person(payload.customer_name, payload.customer_phone),
        promo=promo,
        card_message=normalize_free_text(
            _first_present(payload.card_wishes, payload.card_message)
        ),
        comment=normalize_free_text(_first_present(payload.order_comment, payload.comment)),
        items=items,
    )


def format_item_line(item: OrderItemView) -> str:
    return f"• {item.name} ×{item.quantity} — {item.line_total} ₽ ({item.unit_price} ₽/шт)"


def render_order_message(view: OrderView, event: str) -> str:
    lines = [
        f"🧾 Заказ #{view.order_id} — {event}",
        SEPARATOR,
        f"Сумма: {view.total} ₽",
        f"Оплата: {view.payment_label}",
        f"Доставка: {view.delivery_label}",
    ]

    optional = [
        ("Статус", view.status),
        ("Адрес", view.address),
        ("Когда", view.when),
        ("Получатель", view.recipient),
        ("Заказчик", view.customer),
        ("Промокод", view.promo),
        ("Открытка", view.card_message),
        ("Комментарий", view.comment),
    ]
    lines.extend(f"{title}: {value}" for title, value in optional if value)

    if view.items:
        lines.append("")
        lines.append(ITEMS_HEADING)
        lines.extend(format_item_line(item) for item in view.items)

    return "\n".join(lines)


def format_order_message(order: Any, event: str) -> str:
    """
    Текст уведомления о заказе.

    Чистая функция: без I/O, одинаковый вход даёт байт-в-байт одинаковый текст.

    Args:
        order: сырой payload заказа (dict) или уже разобранный OrderPayload.
        event: имя события (order.insert, order.update, ...).
    """
    payload = order if isinstance(order, OrderPayload) else OrderPayload.from_raw(order)
    return render_order_message(normalize_order(payload), event)
