"""
Telegram Notifier — рассылка уведомлений о заказах в чаты магазина.

Best-effort: ``send`` никогда не бросает исключения вызывающему коду.
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import TelegramError
from app.core.logging import get_logger

logger = get_logger(__name__)

# отдельный логгер для уведомлений, которые не дошли ни с одной попытки
dead_letter_logger = get_logger("app.notifications.dead_letter")

TELEGRAM_API_BASE = "https://api.telegram.org"

# первая попытка + один повтор, без backoff
MAX_ATTEMPTS = 2


class TelegramNotifier:
    """Отправка текста во все настроенные чаты (TELEGRAM_CHAT_ID через запятую)."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_ids: Optional[list[str]] = None,
        thread_id: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._bot_token = settings.TG_BOT_TOKEN if bot_token is None else bot_token
        self._chat_ids = settings.telegram_chat_ids if chat_ids is None else chat_ids
        self._thread_id = settings.TELEGRAM_THREAD_ID if thread_id is None else thread_id
        self._timeout = (
            settings.NOTIFY_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._bot_token and self._chat_ids)

    @property
    def chat_ids(self) -> list[str]:
        return list(self._chat_ids)

    def _build_payload(self, chat_id: str, text: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        if self._thread_id is not None and self._thread_id > 0:
            payload["message_thread_id"] = self._thread_id
        return payload

    async def _post_once(self, url: str, payload: dict[str, Any]) -> None:
        """Одна попытка sendMessage; любая неудача — исключение."""
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(url, json=payload)
        if response.status_code != 200:
            raise TelegramError.from_response("sendMessage", response)
        try:
            body = response.json()
        except ValueError:
            body = None
        # Telegram может ответить 200 с {"ok": false}
        if isinstance(body, dict) and body.get("ok") is False:
            raise TelegramError.from_response(
                "sendMessage",
                response,
                message=f"sendMessage not ok: {body.get('description', '')}",
            )

    async def _send_to_chat(self, chat_id: str, text: str) -> bool:
        url = f"{TELEGRAM_API_BASE}/bot{self._bot_token}/sendMessage"
        payload = self._build_payload(chat_id, text)

        last_error: Optional[Exception] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                await self._post_once(url, payload)
                return True
            except httpx.TimeoutException as exc:
                last_error = exc
                logger.warning(
                    "Telegram sendMessage timeout",
                    extra_data={"chat_id": chat_id, "attempt": attempt, "timeout": self._timeout},
                )
            except (httpx.HTTPError, TelegramError) as exc:
                last_error = exc
                logger.warning(
                    "Telegram sendMessage failed",
                    extra_data={"chat_id": chat_id, "attempt": attempt, "error": str(exc)},
                )

        dead_letter_logger.error(
            "Telegram notification dropped",
            extra_data={
                "chat_id": chat_id,
                "attempts": MAX_ATTEMPTS,
                "error": str(last_error) if last_error else None,
                "text": text,
            },
        )
        return False

    async def _safe_send_to_chat(self, chat_id: str, text: str) -> bool:
        # каждая задача ловит свои ошибки — один чат не мешает остальным
        try:
            return await self._send_to_chat(chat_id, text)
        except Exception as exc:
            logger.error(
                "Unexpected error sending Telegram notification",
                extra_data={"chat_id": chat_id, "error": str(exc)},
                exc_info=True,
            )
            return False

    async def send_with_results(self, text: str) -> dict[str, bool]:
        """Рассылка с результатом по каждому чату (для диагностики GET)."""
        if not self.is_configured:
            logger.warning(
                "Telegram notifier not configured, message skipped",
                extra_data={"has_token": bool(self._bot_token), "chats": len(self._chat_ids)},
            )
            return {}

        results = await asyncio.gather(
            *(self._safe_send_to_chat(chat_id, text) for chat_id in self._chat_ids)
        )
        return dict(zip(self._chat_ids, results))

    async def send(self, text: str) -> None:
        """Отправить текст во все чаты. Ошибки только логируются."""
        try:
            results = await self.send_with_results(text)
        except Exception as exc:
            logger.error(
                "Telegram fan-out failed",
                extra_data={"error": str(exc)},
                exc_info=True,
            )
            return

        if results:
            logger.info(
                "Telegram notification sent",
                extra_data={
                    "delivered": sum(1 for ok in results.values() if ok),
                    "recipients": len(results),
                },
            )


def get_telegram_notifier() -> TelegramNotifier:
    """Notifier с текущими настройками (FastAPI dependency)."""
    return TelegramNotifier()
