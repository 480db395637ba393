"""
Tests for the error taxonomy (stockwatch/errors.py).
"""
import pytest

from stockwatch.errors import (
    BotProtectionError,
    CaptchaDetectedError,
    ChallengeDetectedError,
    ErrorKind,
    HttpStatusError,
    NetworkError,
    ScrapingError,
    ValidationError,
)


class TestEscalation:
    """Only blocked statuses, challenge pages and CAPTCHAs escalate."""

    @pytest.mark.parametrize("status", [403, 503])
    def test_blocked_statuses_escalate(self, status):
        assert HttpStatusError(status, "https://x.com").escalates

    @pytest.mark.parametrize("status", [400, 404, 429, 500, 502])
    def test_other_statuses_are_fatal(self, status):
        assert not HttpStatusError(status, "https://x.com").escalates

    def test_challenge_and_captcha_escalate(self):
        assert ChallengeDetectedError("https://x.com").escalates
        assert CaptchaDetectedError().escalates

    @pytest.mark.parametrize(
        "error",
        [
            NetworkError("dns"),
            ValidationError("bad"),
            ScrapingError("none"),
            BotProtectionError("blocked"),
        ],
    )
    def test_everything_else_is_fatal(self, error):
        assert not error.escalates


class TestMessages:
    """Display strings and serialization."""

    def test_prefixed_message(self):
        assert str(ScrapingError("No data")) == "Scraping error: No data"
        assert str(NetworkError("timed out")) == "HTTP error: timed out"

    def test_http_status_message(self):
        error = HttpStatusError(404, "https://x.com/p")

        assert str(error) == "HTTP 404 for URL: https://x.com/p"
        assert error.to_dict() == {
            "kind": "http_status",
            "code": "HTTP_STATUS_ERROR",
            "message": "HTTP 404 for URL: https://x.com/p",
            "status": 404,
            "url": "https://x.com/p",
        }

    def test_captcha_is_bot_protection(self):
        error = CaptchaDetectedError()

        assert isinstance(error, BotProtectionError)
        assert error.kind is ErrorKind.BOT_PROTECTION
        assert "manual verification" in error.message
