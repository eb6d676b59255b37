"""
Pytest Configuration and Fixtures

Provides fixtures for:
- ASGI test client with dependency overrides
- In-memory idempotency store and a recording Telegram notifier
- Mocked outbound HTTP (httpx.AsyncClient)
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

# AsyncClient импортируется до любых patch("httpx.AsyncClient") в тестах
from httpx import ASGITransport, AsyncClient, Response

from app.core.config import settings
from app.core.exceptions import IdempotencyStoreError
from app.domain.services.idempotency import (
    BaseIdempotencyStore,
    get_idempotency_store,
    reset_idempotency_store,
)
from app.domain.services.idempotency.memory_store import InMemoryIdempotencyStore
from app.domain.services.telegram_notifier import get_telegram_notifier
from app.domain.services.whatsapp.provider_factory import reset_providers
from app.main import app

TEST_WEBHOOK_TOKEN = "test-webhook-token"
TEST_CHAT_IDS = "-1001,-1002"


class RecordingNotifier:
    """Заменяет TelegramNotifier: запоминает тексты, ничего не отправляет."""

    def __init__(self, chat_ids: list[str] | None = None) -> None:
        self.chat_ids = chat_ids if chat_ids is not None else ["-1001"]
        self.sent: list[str] = []

    async def send_with_results(self, text: str) -> dict[str, bool]:
        self.sent.append(text)
        return {chat_id: True for chat_id in self.chat_ids}

    async def send(self, text: str) -> None:
        await self.send_with_results(text)


class FailingStore(BaseIdempotencyStore):
    """Общее хранилище, которое недоступно"""

    strategy_name = "redis"
    is_shared = True

    async def claim(self, key: str, ttl_seconds: int) -> bool:
        raise IdempotencyStoreError("redis", "Connection refused", key=key)


class FakeRedis:
    """Redis для тестов — dict с SET NX и запоминанием TTL."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
        """SET с NX (только если ключа нет) и EX (TTL в секундах)"""
        if nx and key in self._store:
            return None
        self._store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def aclose(self) -> None:
        self._store.clear()
        self.ttls.clear()


def make_response(
    status_code: int = 200,
    json_data: object = None,
    text: str = "",
) -> MagicMock:
    """httpx.Response-подобный mock; json_data-исключение пробрасывается из .json()"""
    response = MagicMock(spec=Response)
    response.status_code = status_code
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


# ============================================================================
# Settings & singletons
# ============================================================================

@pytest.fixture(autouse=True)
def test_settings():
    """Предсказуемые настройки для каждого теста (независимо от окружения)."""
    with patch.object(settings, "SUPABASE_WEBHOOK_TOKEN", TEST_WEBHOOK_TOKEN), \
         patch.object(settings, "TG_BOT_TOKEN", "123456:test-bot-token"), \
         patch.object(settings, "TELEGRAM_CHAT_ID", TEST_CHAT_IDS), \
         patch.object(settings, "TELEGRAM_THREAD_ID", None), \
         patch.object(settings, "REDIS_URL", ""), \
         patch.object(settings, "TINKOFF_TERMINAL_KEY", ""), \
         patch.object(settings, "TINKOFF_PASSWORD", ""), \
         patch.object(settings, "GREEN_API_ID_INSTANCE", ""), \
         patch.object(settings, "GREEN_API_TOKEN", ""):
        yield settings


@pytest.fixture(autouse=True)
def reset_singletons():
    """Сброс singleton-ов хранилища и провайдера между тестами"""
    reset_idempotency_store()
    reset_providers()
    yield
    reset_idempotency_store()
    reset_providers()


# ============================================================================
# App client
# ============================================================================

@pytest.fixture
def memory_store() -> InMemoryIdempotencyStore:
    return InMemoryIdempotencyStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
async def test_client(memory_store, notifier):
    """Create test client with store/notifier overrides"""
    app.dependency_overrides[get_idempotency_store] = lambda: memory_store
    app.dependency_overrides[get_telegram_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_WEBHOOK_TOKEN}"}


# ============================================================================
# Mock External Services
# ============================================================================

@pytest.fixture
def mock_http():
    """Mock httpx.AsyncClient: POST по умолчанию отвечает 200 {"ok": true}"""
    with patch("httpx.AsyncClient") as mock_client:
        mock_instance = AsyncMock()
        mock_instance.post = AsyncMock(
            return_value=make_response(200, {"ok": True, "result": {}})
        )
        mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
        mock_instance.__aexit__ = AsyncMock(return_value=None)

        mock_client.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
