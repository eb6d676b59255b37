"""
Provider Factory — провайдер WhatsApp по настройкам.
"""
from __future__ import annotations

import threading

from app.core.logging import get_logger
from app.domain.services.whatsapp.base_provider import BaseWhatsAppProvider

logger = get_logger(__name__)

_provider: BaseWhatsAppProvider | None = None
_lock = threading.Lock()


def get_whatsapp_provider() -> BaseWhatsAppProvider:
    """Singleton провайдера WhatsApp."""
    global _provider
    if _provider is None:
        with _lock:
            if _provider is None:
                from app.domain.services.whatsapp.green_api_provider import GreenApiProvider

                _provider = GreenApiProvider()
                logger.info(
                    "WhatsApp provider initialized",
                    extra_data={
                        "provider": _provider.provider_name,
                        "configured": _provider.is_configured,
                    },
                )
    return _provider


def reset_providers() -> None:
    """Сброс провайдера — только для тестов."""
    global _provider
    with _lock:
        _provider = None
