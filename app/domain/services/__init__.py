"""
Domain Services
"""
from app.domain.services.order_notification_service import OrderNotificationService
from app.domain.services.payment_service import PaymentService
from app.domain.services.telegram_notifier import TelegramNotifier

__all__ = [
    "OrderNotificationService",
    "PaymentService",
    "TelegramNotifier",
]
