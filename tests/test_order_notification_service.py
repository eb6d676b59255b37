"""
Tests for OrderNotificationService — idempotency keys and claim → format → send
"""
import pytest

from app.core.exceptions import IdempotencyStoreError
from app.domain.services.idempotency.memory_store import InMemoryIdempotencyStore
from app.domain.services.order_notification_service import (
    EVENT_UNKNOWN,
    NotificationEvent,
    NotifyOutcome,
    OrderNotificationService,
    derive_idempotency_key,
    format_order_id,
)

from tests.conftest import FailingStore, RecordingNotifier


# ============================================================================
# Ключи
# ============================================================================

class TestIdempotencyKey:

    @pytest.mark.unit
    def test_insert_key(self):
        assert derive_idempotency_key("order.insert", {"id": 42, "status": "new"}) == "order:42"

    @pytest.mark.unit
    def test_update_key_uses_payment_status_first(self):
        order = {"id": 42, "payment_status": "PAID", "status": "new"}
        assert derive_idempotency_key("order.update", order) == "order:42:paid"

    @pytest.mark.unit
    def test_update_key_falls_back_to_status(self):
        assert derive_idempotency_key("order.update", {"id": 42, "status": "Shipped"}) == (
            "order:42:shipped"
        )

    @pytest.mark.unit
    def test_update_key_without_status(self):
        assert derive_idempotency_key("order.update", {"id": 42}) == "order:42:nostatus"

    @pytest.mark.unit
    def test_other_event_key(self):
        assert derive_idempotency_key("order.delete", {"id": 42}) == "order:42:evt:order.delete"

    @pytest.mark.unit
    def test_float_id_is_integral(self):
        assert derive_idempotency_key("order.insert", {"id": 42.0}) == "order:42"

    @pytest.mark.unit
    @pytest.mark.parametrize("value", [None, "", 0, False])
    def test_empty_order_id(self, value):
        assert format_order_id(value) is None


class TestNotificationEvent:

    @pytest.mark.unit
    def test_from_body(self):
        event = NotificationEvent.from_body({"event": "order.insert", "order": {"id": 1}})
        assert event.event_name == "order.insert"
        assert event.order_id == "1"

    @pytest.mark.unit
    def test_missing_event_name(self):
        event = NotificationEvent.from_body({"order": {"id": 1}})
        assert event.event_name == EVENT_UNKNOWN

    @pytest.mark.unit
    @pytest.mark.parametrize("body", [None, [], "text", {}, {"order": {}}, {"order": "42"}])
    def test_missing_order(self, body):
        assert NotificationEvent.from_body(body).order is None


# ============================================================================
# Обработка
# ============================================================================

class TestProcess:

    @pytest.fixture
    def service_parts(self):
        return InMemoryIdempotencyStore(), RecordingNotifier()

    @pytest.mark.unit
    async def test_insert_sent_once(self, service_parts):
        store, notifier = service_parts
        service = OrderNotificationService(store=store, notifier=notifier, ttl_seconds=60)
        event = NotificationEvent.from_body({"event": "order.insert", "order": {"id": 42}})

        assert await service.process(event) == NotifyOutcome.OK
        assert await service.process(event) == NotifyOutcome.DUPLICATE
        assert len(notifier.sent) == 1
        assert notifier.sent[0].startswith("🧾 Заказ #42 — order.insert")

    @pytest.mark.unit
    async def test_update_once_per_status(self, service_parts):
        store, notifier = service_parts
        service = OrderNotificationService(store=store, notifier=notifier, ttl_seconds=60)

        def update(status):
            return NotificationEvent.from_body(
                {"event": "order.update", "order": {"id": 42, "payment_status": status}}
            )

        assert await service.process(update("paid")) == NotifyOutcome.OK
        assert await service.process(update("paid")) == NotifyOutcome.DUPLICATE
        assert await service.process(update("shipped")) == NotifyOutcome.OK
        assert len(notifier.sent) == 2

    @pytest.mark.unit
    async def test_insert_and_update_are_separate(self, service_parts):
        store, notifier = service_parts
        service = OrderNotificationService(store=store, notifier=notifier, ttl_seconds=60)

        await service.process(NotificationEvent.from_body(
            {"event": "order.insert", "order": {"id": 42, "status": "new"}}
        ))
        outcome = await service.process(NotificationEvent.from_body(
            {"event": "order.update", "order": {"id": 42, "status": "new"}}
        ))

        assert outcome == NotifyOutcome.OK
        assert len(notifier.sent) == 2

    @pytest.mark.unit
    @pytest.mark.parametrize("order", [None, {"id": None, "status": "new"}, {"id": ""}])
    async def test_no_order_ignored(self, service_parts, order):
        store, notifier = service_parts
        service = OrderNotificationService(store=store, notifier=notifier, ttl_seconds=60)

        outcome = await service.process(
            NotificationEvent.from_body({"event": "order.insert", "order": order})
        )

        assert outcome == NotifyOutcome.IGNORED_NO_ORDER
        assert notifier.sent == []
        assert len(store) == 0

    @pytest.mark.unit
    async def test_store_failure_propagates_without_sending(self):
        notifier = RecordingNotifier()
        service = OrderNotificationService(store=FailingStore(), notifier=notifier, ttl_seconds=60)
        event = NotificationEvent.from_body({"event": "order.insert", "order": {"id": 42}})

        with pytest.raises(IdempotencyStoreError):
            await service.process(event)

        assert notifier.sent == []
