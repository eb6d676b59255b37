"""
HTTP middleware и обработчики ошибок.

Тела запросов в лог не пишутся: в них телефоны и адреса получателей.
Из query-строки маскируются значения token/phone/password.
"""
import time
from typing import Any, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import AppException, ErrorCode
from app.core.logging import (
    get_logger,
    set_correlation_id,
    get_correlation_id
)

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

_SENSITIVE_QUERY_KEYS = frozenset({"token", "phone", "password"})


def _safe_query_params(request: Request) -> dict[str, str]:
    return {
        key: ("***" if key.lower() in _SENSITIVE_QUERY_KEYS else value)
        for key, value in request.query_params.items()
    }


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Берёт X-Correlation-ID из запроса (или создаёт) и возвращает его в ответе"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        cid = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        request.state.correlation_id = cid

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = cid
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Одна запись на входе и одна на выходе, с длительностью в мс"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"
        base: dict[str, Any] = {"method": request.method, "path": request.url.path}

        logger.info(
            f"→ {route}",
            extra_data={
                **base,
                "query_params": _safe_query_params(request),
                "client_host": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"✗ {route}",
                extra_data={**base, "duration_ms": _elapsed_ms(started), "error": str(exc)},
                exc_info=True,
            )
            raise

        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            f"← {route} {response.status_code}",
            extra_data={
                **base,
                "status_code": response.status_code,
                "duration_ms": _elapsed_ms(started),
            },
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    nosniff на каждом ответе; CSP upgrade-insecure-requests и HSTS только
    вне DEBUG (локально сервис работает по HTTP).
    """

    _HSTS = "max-age=31536000; includeSubDomains"

    def __init__(self, app: FastAPI, *, debug: bool = False) -> None:
        super().__init__(app)
        self._debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        if not self._debug:
            response.headers["Content-Security-Policy"] = "upgrade-insecure-requests"
            response.headers["Strict-Transport-Security"] = self._HSTS
        return response


def _error_response(status_code: int, body: dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={CORRELATION_HEADER: get_correlation_id()},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """AppException → JSON c её статусом и кодом"""
    logger.warning(
        f"{exc.error_code.value} on {request.url.path}: {exc.message}",
        extra_data={
            "error_code": exc.error_code.value,
            "details": exc.details,
            "path": request.url.path,
        },
    )
    return _error_response(exc.status_code, exc.to_dict())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # текст исключения остаётся в логе и не уходит клиенту
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        extra_data={"exception_type": type(exc).__name__, "message": str(exc)},
        exc_info=True,
    )
    return _error_response(
        500,
        {
            "error": {
                "code": ErrorCode.INTERNAL_ERROR.value,
                "message": "An unexpected error occurred",
                "details": {},
            }
        },
    )


def setup_middleware(app: FastAPI) -> None:
    """
    Порядок обработки запроса: SecurityHeaders → CorrelationId → RequestLogging → app
    (последний добавленный middleware — внешний).
    """
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, debug=settings.DEBUG)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
