"""
Базовый интерфейс хранилища идемпотентности.

Вызывающий код зависит только от ``claim`` и не знает,
какая стратегия активна.
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class BaseIdempotencyStore(ABC):
    """
    Атомарный check-and-set по ключу с TTL.

    Инвариант: в пределах TTL для одного ключа успешен не более чем
    один ``claim``; после истечения TTL ключ можно захватить снова.
    """

    @abstractmethod
    async def claim(self, key: str, ttl_seconds: int) -> bool:
        """
        Захват ключа.

        Args:
            key: ключ идемпотентности (например ``order:42:paid``).
            ttl_seconds: время жизни захвата в секундах.

        Returns:
            True — первый захват в окне TTL, False — дубликат.

        Raises:
            IdempotencyStoreError: хранилище не смогло ответить.
        """

    @property
    @abstractmethod
    def strategy_name(self) -> str:
        """Имя стратегии для логов и readiness."""

    @property
    @abstractmethod
    def is_shared(self) -> bool:
        """True — дедупликация общая для всех инстансов."""
