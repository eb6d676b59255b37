"""
Базовый интерфейс провайдера WhatsApp.

Бизнес-логика зависит только от интерфейса, а не от конкретного шлюза.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class BaseWhatsAppProvider(ABC):
    """
    Единый интерфейс отправки сообщений WhatsApp.

    Реализация отвечает за:
    - HTTP-запрос к шлюзу
    - нормализацию телефона в идентификатор чата шлюза
    """

    @abstractmethod
    async def send_text(self, chat_id: str, text: str) -> dict[str, Any]:
        """
        Отправка текстового сообщения.

        Args:
            chat_id: идентификатор чата в формате шлюза (см. normalize_phone).
            text: текст сообщения, отправляется как есть.

        Returns:
            Ответ шлюза (например ``{"idMessage": "..."}``).

        Raises:
            WhatsAppError: шлюз вернул ошибку.
            ConfigurationError: шлюз не настроен.
        """

    @abstractmethod
    def normalize_phone(self, phone: str) -> Optional[str]:
        """
        Телефон в идентификатор чата шлюза.

        Returns:
            Идентификатор чата или None, если номер некорректен.
        """

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Заданы ли учётные данные шлюза."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Имя провайдера для логов."""
