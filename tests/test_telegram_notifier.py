"""
Tests for TelegramNotifier — fan-out, single retry, dead-letter log
"""
import logging

import httpx
import pytest

from app.domain.services.telegram_notifier import MAX_ATTEMPTS, TelegramNotifier

from tests.conftest import make_response


def _notifier(**overrides) -> TelegramNotifier:
    params = {
        "bot_token": "123:abc",
        "chat_ids": ["-1001", "-1002"],
        "thread_id": None,
        "timeout_seconds": 1.0,
    }
    params.update(overrides)
    return TelegramNotifier(**params)


def _payloads(mock_http) -> list[dict]:
    return [call.kwargs["json"] for call in mock_http.post.call_args_list]


class TestFanOut:

    async def test_sends_to_every_chat(self, mock_http):
        results = await _notifier().send_with_results("hello")

        assert results == {"-1001": True, "-1002": True}
        assert sorted(p["chat_id"] for p in _payloads(mock_http)) == ["-1001", "-1002"]
        url = mock_http.post.call_args_list[0].args[0]
        assert url == "https://api.telegram.org/bot123:abc/sendMessage"

    async def test_payload_without_thread(self, mock_http):
        await _notifier(chat_ids=["-1001"]).send("text")

        payload = _payloads(mock_http)[0]
        assert payload == {
            "chat_id": "-1001",
            "text": "text",
            "disable_web_page_preview": True,
        }

    async def test_thread_id_attached(self, mock_http):
        await _notifier(chat_ids=["-1001"], thread_id=17).send("text")

        assert _payloads(mock_http)[0]["message_thread_id"] == 17

    async def test_not_configured_skips(self, mock_http):
        assert await _notifier(bot_token="").send_with_results("x") == {}
        assert await _notifier(chat_ids=[]).send_with_results("x") == {}
        mock_http.post.assert_not_called()

    async def test_defaults_from_settings(self, test_settings):
        notifier = TelegramNotifier()
        assert notifier.is_configured
        assert notifier.chat_ids == ["-1001", "-1002"]


class TestRetry:

    async def test_retry_once_after_timeout(self, mock_http):
        mock_http.post.side_effect = [
            httpx.ReadTimeout("timed out"),
            make_response(200, {"ok": True}),
        ]

        results = await _notifier(chat_ids=["-1001"]).send_with_results("x")

        assert results == {"-1001": True}
        assert mock_http.post.call_count == 2

    async def test_ok_false_counts_as_failure(self, mock_http):
        mock_http.post.side_effect = [
            make_response(200, {"ok": False, "description": "chat not found"}),
            make_response(200, {"ok": True}),
        ]

        results = await _notifier(chat_ids=["-1001"]).send_with_results("x")

        assert results == {"-1001": True}
        assert mock_http.post.call_count == 2

    async def test_gives_up_after_two_attempts(self, mock_http, caplog):
        mock_http.post.return_value = make_response(500, None, text="Internal Server Error")

        with caplog.at_level(logging.ERROR, logger="app.notifications.dead_letter"):
            results = await _notifier(chat_ids=["-1001"]).send_with_results("lost message")

        assert results == {"-1001": False}
        assert mock_http.post.call_count == MAX_ATTEMPTS
        dead = [r for r in caplog.records if r.name == "app.notifications.dead_letter"]
        assert len(dead) == 1
        assert dead[0].extra_data["chat_id"] == "-1001"
        assert dead[0].extra_data["text"] == "lost message"

    async def test_one_failing_chat_does_not_block_others(self, mock_http):
        def _post(url, json):
            if json["chat_id"] == "-1001":
                raise httpx.ConnectError("connection refused")
            return make_response(200, {"ok": True})

        mock_http.post.side_effect = _post

        results = await _notifier().send_with_results("x")

        assert results == {"-1001": False, "-1002": True}

    async def test_send_never_raises(self, mock_http):
        mock_http.post.side_effect = RuntimeError("unexpected")

        await _notifier().send("x")
