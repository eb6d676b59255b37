"""
WhatsApp Provider Abstraction Layer

Отправка сообщений WhatsApp через внешний шлюз (Green API).
"""
from app.domain.services.whatsapp.base_provider import BaseWhatsAppProvider
from app.domain.services.whatsapp.provider_factory import get_whatsapp_provider

__all__ = [
    "BaseWhatsAppProvider",
    "get_whatsapp_provider",
]
