"""
Smoke tests for a deployed instance.

Runs lightweight HTTP checks against a running app instance:
- GET /health and /health/ready
- POST /api/order-notify without a valid token (must answer IGNORED_BAD_TOKEN)
- POST /api/order-notify without an order (IGNORED_NO_ORDER, needs SMOKE_WEBHOOK_TOKEN)
- GET /api/whatsapp/send-welcome?check

Ни одна проверка не отправляет сообщений в Telegram или WhatsApp.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import httpx

# запуск из любой директории (например `python scripts/smoke_webhooks.py`)
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.core.logging import get_logger, setup_logging  # noqa: E402


logger = get_logger(__name__)


def _base_url() -> str:
    port = os.environ.get("PORT", "8000")
    return os.environ.get("BASE_URL", f"http://127.0.0.1:{port}").rstrip("/")


def _timeout_seconds() -> float:
    return float(os.environ.get("SMOKE_TIMEOUT_SECONDS", "10"))


def _check_status(resp: httpx.Response, expected_family: int = 2) -> None:
    family = resp.status_code // 100
    if family != expected_family:
        raise RuntimeError(
            f"Unexpected status {resp.status_code} for {resp.request.method} {resp.request.url}. "
            f"Body: {(resp.text or '')[:500]}"
        )


def _check_text(resp: httpx.Response, expected: str) -> None:
    _check_status(resp, expected_family=2)
    if resp.text != expected:
        raise RuntimeError(
            f"Expected {expected!r} from {resp.request.url}, got {(resp.text or '')[:200]!r}"
        )


def main() -> None:
    setup_logging(level="INFO", json_format=False, app_name="flower-shop-notify-smoke")

    base_url = _base_url()
    timeout = _timeout_seconds()
    webhook_token = os.environ.get("SMOKE_WEBHOOK_TOKEN", "")

    logger.info("Starting smoke tests", extra_data={"base_url": base_url, "timeout_seconds": timeout})

    with httpx.Client(timeout=timeout) as client:
        for path in ("/health", "/health/ready"):
            logger.info("Checking health endpoint", extra_data={"url": f"{base_url}{path}"})
            _check_status(client.get(f"{base_url}{path}"), expected_family=2)

        notify_url = f"{base_url}/api/order-notify"
        logger.info("Posting order event with a wrong token", extra_data={"url": notify_url})
        resp = client.post(
            notify_url,
            json={"event": "order.insert", "order": {"id": "smoke"}},
            headers={"Authorization": "Bearer smoke-invalid-token"},
        )
        _check_text(resp, "IGNORED_BAD_TOKEN")

        if webhook_token:
            logger.info("Posting order event without an order", extra_data={"url": notify_url})
            resp = client.post(
                notify_url,
                json={"event": "order.insert"},
                headers={"Authorization": f"Bearer {webhook_token}"},
            )
            _check_text(resp, "IGNORED_NO_ORDER")
        else:
            logger.warning("SMOKE_WEBHOOK_TOKEN not set, authorized check skipped")

        welcome_url = f"{base_url}/api/whatsapp/send-welcome"
        logger.info("Pinging welcome endpoint", extra_data={"url": welcome_url})
        _check_status(client.get(welcome_url, params={"check": "1"}), expected_family=2)

    logger.info("Smoke tests completed successfully")


if __name__ == "__main__":
    main()
