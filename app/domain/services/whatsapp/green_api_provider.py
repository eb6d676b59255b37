"""
Green API Provider — реализация BaseWhatsAppProvider поверх Green API.

POST {GREEN_API_URL}/waInstance{id}/sendMessage/{token}
body: {"chatId": "79991234567@c.us", "message": "..."}
"""
from __future__ import annotations

import re
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import ConfigurationError, ServiceTimeoutError, WhatsAppError
from app.core.logging import get_logger
from app.domain.services.whatsapp.base_provider import BaseWhatsAppProvider

logger = get_logger(__name__)

_NON_DIGITS_RE = re.compile(r"\D")

_SEND_TIMEOUT_SECONDS = 15.0


def phone_to_chat_id(raw: Optional[str]) -> Optional[str]:
    """
    Российский номер → chatId Green API.

    8XXXXXXXXXX → 7XXXXXXXXXX, 10 цифр без кода страны → +7.
    Длина вне 10..15 цифр — некорректный номер.
    """
    if not raw:
        return None
    digits = _NON_DIGITS_RE.sub("", raw)
    if len(digits) == 11 and digits.startswith("8"):
        digits = "7" + digits[1:]
    if len(digits) == 10:
        digits = "7" + digits
    if len(digits) < 10 or len(digits) > 15:
        return None
    return f"{digits}@c.us"


def mask_chat_id(chat_id: str) -> str:
    """79991234567@c.us → 7999****567@c.us (для логов)"""
    number, sep, suffix = chat_id.partition("@")
    if len(number) <= 7:
        return chat_id
    return f"{number[:4]}****{number[-3:]}{sep}{suffix}"


class GreenApiProvider(BaseWhatsAppProvider):
    """Отправка через Green API (один инстанс, один токен)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        id_instance: Optional[str] = None,
        api_token: Optional[str] = None,
    ) -> None:
        self._base_url = settings.GREEN_API_URL if base_url is None else base_url.rstrip("/")
        self._id_instance = settings.GREEN_API_ID_INSTANCE if id_instance is None else id_instance
        self._api_token = settings.GREEN_API_TOKEN if api_token is None else api_token

    @property
    def provider_name(self) -> str:
        return "green-api"

    @property
    def is_configured(self) -> bool:
        return bool(self._id_instance and self._api_token)

    @property
    def base_url(self) -> str:
        return self._base_url

    def normalize_phone(self, phone: str) -> Optional[str]:
        return phone_to_chat_id(phone)

    async def send_text(self, chat_id: str, text: str) -> dict[str, Any]:
        if not self.is_configured:
            raise ConfigurationError(
                "Missing GREEN_API envs",
                missing=[
                    name for name, value in (
                        ("GREEN_API_ID_INSTANCE", self._id_instance),
                        ("GREEN_API_TOKEN", self._api_token),
                    ) if not value
                ],
            )

        url = f"{self._base_url}/waInstance{self._id_instance}/sendMessage/{self._api_token}"
        payload = {"chatId": chat_id, "message": text}

        try:
            async with httpx.AsyncClient(timeout=_SEND_TIMEOUT_SECONDS) as client:
                response = await client.post(url, json=payload)
        except httpx.TimeoutException as exc:
            raise ServiceTimeoutError("whatsapp", _SEND_TIMEOUT_SECONDS) from exc
        except httpx.HTTPError as exc:
            raise WhatsAppError(
                f"sendMessage network error: {exc}",
                details={"network_error": True},
            ) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning(
                "Green API sendMessage failed",
                extra_data={"chat_id": mask_chat_id(chat_id), "status_code": response.status_code},
            )
            raise WhatsAppError.from_response(
                "sendMessage",
                response,
                message="green-api sendMessage failed",
            )

        logger.info(
            "WhatsApp message sent",
            extra_data={"chat_id": mask_chat_id(chat_id), "provider": self.provider_name},
        )
        return body if isinstance(body, dict) else {}
