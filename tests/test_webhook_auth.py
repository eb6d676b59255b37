"""
Tests for Bearer token checks on the order webhook
"""
import pytest

from app.api.dependencies.webhook_auth import bearer_token_matches, extract_bearer_token


class TestExtractBearerToken:

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc", "abc"),
            ("Bearer ", ""),
            ("bearer abc", ""),
            ("Token abc", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestBearerTokenMatches:

    @pytest.mark.unit
    def test_match(self):
        assert bearer_token_matches("Bearer s3cret", "s3cret") is True

    @pytest.mark.unit
    def test_mismatch(self):
        assert bearer_token_matches("Bearer s3cre", "s3cret") is False
        assert bearer_token_matches("Bearer s3cret ", "s3cret") is False

    @pytest.mark.unit
    def test_missing_header(self):
        assert bearer_token_matches(None, "s3cret") is False

    @pytest.mark.unit
    def test_empty_secret_never_matches(self):
        assert bearer_token_matches("Bearer ", "") is False
        assert bearer_token_matches("Bearer anything", "") is False

    @pytest.mark.unit
    def test_unicode_token(self):
        assert bearer_token_matches("Bearer ключ", "ключ") is True
