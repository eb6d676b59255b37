"""
Tests for application settings
"""
import pytest
from pydantic import ValidationError

from app.core.config import DEFAULT_IDEMPOTENCY_TTL_SEC, Settings, parse_csv_setting


def _settings(**overrides) -> Settings:
    params = {
        "DEBUG": True,
        "TG_BOT_TOKEN": "",
        "SUPABASE_WEBHOOK_TOKEN": "token",
        "_env_file": None,
    }
    params.update(overrides)
    return Settings(**params)


class TestSettings:

    @pytest.mark.unit
    def test_parse_csv_setting(self):
        assert parse_csv_setting(" -1001, ,-1002 ,") == ["-1001", "-1002"]
        assert parse_csv_setting("") == []
        assert parse_csv_setting(None) == []

    @pytest.mark.unit
    def test_telegram_chat_ids(self):
        assert _settings(TELEGRAM_CHAT_ID="-1001,-1002").telegram_chat_ids == ["-1001", "-1002"]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [("17", 17), (" 5 ", 5), ("0", None), ("-3", None), ("abc", None), ("", None), (None, None)],
    )
    def test_thread_id_only_positive(self, raw, expected):
        assert _settings(TELEGRAM_THREAD_ID=raw).TELEGRAM_THREAD_ID == expected

    @pytest.mark.unit
    def test_idempotency_ttl_default(self):
        assert _settings().IDEMPOTENCY_TTL_SEC == DEFAULT_IDEMPOTENCY_TTL_SEC == 1209600

    @pytest.mark.unit
    def test_idempotency_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            _settings(IDEMPOTENCY_TTL_SEC=0)

    @pytest.mark.unit
    def test_urls_without_trailing_slash(self):
        settings = _settings(
            TINKOFF_API_URL="https://securepay.tinkoff.ru/v2/",
            GREEN_API_URL="https://api.green-api.com/",
        )
        assert settings.TINKOFF_API_URL == "https://securepay.tinkoff.ru/v2"
        assert settings.GREEN_API_URL == "https://api.green-api.com"

    @pytest.mark.unit
    def test_warns_when_webhook_token_missing(self):
        with pytest.warns(UserWarning, match="SUPABASE_WEBHOOK_TOKEN"):
            _settings(TG_BOT_TOKEN="123:abc", SUPABASE_WEBHOOK_TOKEN="")

    @pytest.mark.unit
    def test_warns_without_redis_in_production(self):
        with pytest.warns(UserWarning, match="REDIS_URL"):
            _settings(DEBUG=False, REDIS_URL="")
