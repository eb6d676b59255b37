"""
Иерархия ошибок приложения.

Каждая ошибка знает свой HTTP-статус и код ``ERR_xxxx``; обработчик в
middleware отдаёт их клиенту как ``{"error": {code, message, details}}``.
Webhook-и эти ошибки наружу не пропускают — они всегда отвечают 200.
"""
from typing import Any
from enum import Enum


class ErrorCode(str, Enum):
    """Коды ошибок в ответах API"""

    # 1xxx — запрос и конфигурация
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    CONFIGURATION_ERROR = "ERR_1007"

    # 2xxx — эквайринг
    PAYMENT_GATEWAY_ERROR = "ERR_2001"
    PAYMENT_GATEWAY_BAD_RESPONSE = "ERR_2002"

    # 3xxx — идемпотентность уведомлений
    IDEMPOTENCY_STORE_ERROR = "ERR_3001"

    # 5xxx — внешние сервисы
    TELEGRAM_ERROR = "ERR_5001"
    WHATSAPP_ERROR = "ERR_5002"
    EXTERNAL_SERVICE_UNAVAILABLE = "ERR_5003"
    EXTERNAL_SERVICE_TIMEOUT = "ERR_5004"


class AppException(Exception):
    """Base exception for all application errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationException(AppException):
    """Некорректное тело запроса (400); ``field`` попадает в details"""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, 400, details)
        if field:
            self.details["field"] = field


class ConfigurationError(AppException):
    """Для операции не хватает переменных окружения"""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(
            message,
            ErrorCode.CONFIGURATION_ERROR,
            500,
            {"missing": missing} if missing else None,
        )


class IdempotencyStoreError(AppException):
    """Общее хранилище ключей не ответило на claim.

    Подмены локальной картой нет: уведомление для этого запроса
    не отправляется.
    """

    def __init__(self, backend: str, message: str, key: str | None = None):
        details: dict[str, Any] = {"backend": backend}
        if key:
            details["key"] = key
        super().__init__(
            f"Idempotency store '{backend}' failed: {message}",
            ErrorCode.IDEMPOTENCY_STORE_ERROR,
            503,
            details,
        )


class ExternalServiceException(AppException):
    """Ошибка внешнего HTTP API; имя сервиса кладётся в details["service"]"""

    def __init__(
        self,
        service_name: str,
        message: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_UNAVAILABLE,
        status_code: int = 503,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message, error_code, status_code, details)
        self.details["service"] = service_name

    @staticmethod
    def response_details(
        operation: str, response: Any, max_response_chars: int = 500
    ) -> dict[str, Any]:
        """Статус и обрезанное тело ответа для details"""
        text = getattr(response, "text", "") or ""
        return {
            "operation": operation,
            "status_code": getattr(response, "status_code", None),
            "response_text": text[:max_response_chars],
        }

    @classmethod
    def from_response(
        cls,
        operation: str,
        response: Any,
        *,
        message: str | None = None,
    ):
        """
        Ошибка по HTTP-ответу (httpx.Response).

        Args:
            operation: метод API, например sendMessage
            response: ответ внешнего сервиса
            message: текст ошибки; по умолчанию — из статуса ответа
        """
        status_code = getattr(response, "status_code", None)
        return cls(
            message=message or f"{operation} returned status {status_code}",
            details=cls.response_details(operation, response),
        )


class TelegramError(ExternalServiceException):
    """Telegram Bot API ответил ошибкой"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            "telegram",
            f"Telegram API error: {message}",
            ErrorCode.TELEGRAM_ERROR,
            details=details,
        )


class WhatsAppError(ExternalServiceException):
    """Green API не принял сообщение (502)"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            "whatsapp",
            f"WhatsApp API error: {message}",
            ErrorCode.WHATSAPP_ERROR,
            502,
            details,
        )


class PaymentGatewayError(ExternalServiceException):
    """Tinkoff отклонил запрос (400) или ответил не JSON (502)"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.PAYMENT_GATEWAY_ERROR,
        status_code: int = 400,
        details: dict[str, Any] | None = None
    ):
        super().__init__("tinkoff", message, error_code, status_code, details)

    @classmethod
    def from_response(
        cls,
        operation: str,
        response: Any,
        *,
        message: str | None = None,
    ) -> "PaymentGatewayError":
        return cls(
            message=message or f"Bad gateway response from {operation}",
            error_code=ErrorCode.PAYMENT_GATEWAY_BAD_RESPONSE,
            status_code=502,
            details=cls.response_details(operation, response),
        )


class ServiceTimeoutError(ExternalServiceException):
    """Внешний сервис не ответил за отведённое время (504)"""

    def __init__(self, service_name: str, timeout_seconds: float):
        super().__init__(
            service_name,
            f"{service_name} request timed out after {timeout_seconds}s",
            ErrorCode.EXTERNAL_SERVICE_TIMEOUT,
            504,
            {"timeout_seconds": timeout_seconds},
        )
