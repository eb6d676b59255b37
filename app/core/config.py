"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from typing import Optional

# 14 дней — повторные события вне окна считаются новыми
DEFAULT_IDEMPOTENCY_TTL_SEC = 60 * 60 * 24 * 14


def parse_csv_setting(value: str | None) -> list[str]:
    """Разбор CSV-настройки в список непустых значений"""
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    APP_NAME: str = "Flower Shop Notify"
    DEBUG: bool = False

    # CORS
    # Comma-separated list of allowed origins (e.g. "https://shop.example.ru")
    # Empty disables CORS entirely (webhooks are server-to-server).
    ALLOWED_ORIGINS: str = ""

    # Telegram
    TG_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""  # получатели уведомлений, через запятую
    TELEGRAM_THREAD_ID: Optional[int] = None  # тема (topic) в общем чате
    NOTIFY_TIMEOUT_SECONDS: float = 8.0

    @field_validator("TELEGRAM_THREAD_ID", mode="before")
    @classmethod
    def normalize_thread_id(cls, v: object) -> Optional[int]:
        """Только положительное целое, всё остальное игнорируется"""
        if v is None:
            return None
        try:
            thread_id = int(str(v).strip())
        except ValueError:
            return None
        return thread_id if thread_id > 0 else None

    # Webhook от триггера Supabase (тот же токен, что и в SQL-функции)
    SUPABASE_WEBHOOK_TOKEN: str = ""
    IDEMPOTENCY_TTL_SEC: int = DEFAULT_IDEMPOTENCY_TTL_SEC

    @field_validator("IDEMPOTENCY_TTL_SEC", mode="after")
    @classmethod
    def validate_idempotency_ttl(cls, v: int) -> int:
        """TTL должен быть положительным — иначе SET EX в Redis упадёт"""
        if v < 1:
            raise ValueError("IDEMPOTENCY_TTL_SEC must be at least 1")
        return v

    # Redis — общее хранилище ключей идемпотентности.
    # Пусто = локальный in-memory fallback (только в пределах одного процесса).
    REDIS_URL: str = ""
    # webhook не должен зависать на недоступном Redis
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 2.0

    # Tinkoff acquiring
    TINKOFF_TERMINAL_KEY: str = ""
    TINKOFF_PASSWORD: str = ""
    TINKOFF_API_URL: str = "https://securepay.tinkoff.ru/v2"
    TINKOFF_SUCCESS_URL: str = "https://your-site.ru/success"
    TINKOFF_FAIL_URL: str = "https://your-site.ru/fail"
    PAYMENT_TIMEOUT_SECONDS: float = 15.0

    @field_validator("TINKOFF_API_URL", "GREEN_API_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if v else v

    # WhatsApp (Green API)
    GREEN_API_URL: str = "https://api.green-api.com"
    GREEN_API_ID_INSTANCE: str = ""
    GREEN_API_TOKEN: str = ""
    SHOP_SIGNATURE: str = "THE AME FLOWERS"

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Кросс-проверки для продакшена.

        1. Бот настроен, но SUPABASE_WEBHOOK_TOKEN пуст — все вызовы триггера
           будут отброшены как IGNORED_BAD_TOKEN.
        2. Нет REDIS_URL вне DEBUG — дедупликация работает только внутри
           одного процесса.
        """
        import warnings

        if self.TG_BOT_TOKEN and not self.SUPABASE_WEBHOOK_TOKEN:
            warnings.warn(
                "SUPABASE_WEBHOOK_TOKEN пуст — order-notify будет игнорировать все вызовы. "
                "Задайте тот же токен, что и в SQL-функции триггера.",
                stacklevel=2,
            )

        if not self.REDIS_URL and not self.DEBUG:
            warnings.warn(
                "REDIS_URL не задан — идемпотентность уведомлений только в памяти процесса. "
                "Несколько инстансов могут отправить одно и то же уведомление.",
                stacklevel=2,
            )

        return self

    @property
    def telegram_chat_ids(self) -> list[str]:
        return parse_csv_setting(self.TELEGRAM_CHAT_ID)

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
