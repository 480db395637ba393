"""
Error taxonomy for the Stock Watch availability checker.

Every failure carries an ErrorKind. The fetch orchestrator branches on
``escalates`` rather than on exception messages. Only three errors escalate:
a 403/503 HttpStatusError, a ChallengeDetectedError on a 2xx page (both move
HTTP to headless) and a CaptchaDetectedError (headless to manual
verification). Everything else is fatal for the check.
"""
from enum import Enum
from typing import Any, Dict, Optional


# HTTP statuses that indicate bot protection rather than a real failure
ESCALATING_STATUS_CODES = (403, 503)


class ErrorKind(str, Enum):
    """Discriminator for ScraperError subclasses."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    BOT_PROTECTION = "bot_protection"
    SCRAPING = "scraping"
    INTERNAL = "internal"


class ScraperError(Exception):
    """Base class for all errors raised while checking a product page."""

    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "INTERNAL_ERROR"
    prefix: str = "Internal error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"

    @property
    def escalates(self) -> bool:
        """Whether this error should move the fetch chain to the next tier."""
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API responses and bulk check results."""
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": str(self),
        }


class ValidationError(ScraperError):
    """Bad input, e.g. an unparsable URL or unsupported scheme. Fatal."""
    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"
    prefix = "Validation error"


class NotFoundError(ScraperError):
    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"
    prefix = "Not found"


class NetworkError(ScraperError):
    """Timeout, DNS or TLS failure. Fatal, never triggers fallback."""
    kind = ErrorKind.NETWORK
    code = "HTTP_ERROR"
    prefix = "HTTP error"


class HttpStatusError(ScraperError):
    """Non-2xx response. 403/503 escalate, anything else is fatal."""
    kind = ErrorKind.HTTP_STATUS
    code = "HTTP_STATUS_ERROR"

    def __init__(self, status: int, url: str):
        self.status = status
        self.url = url
        super().__init__(f"HTTP {status} for URL: {url}")

    def __str__(self) -> str:
        return self.message

    @property
    def escalates(self) -> bool:
        return self.status in ESCALATING_STATUS_CODES

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        data["url"] = self.url
        return data


class BotProtectionError(ScraperError):
    """Challenge confirmed and no further fallback available or permitted."""
    kind = ErrorKind.BOT_PROTECTION
    code = "BOT_PROTECTION"
    prefix = "Bot protection"


class ChallengeDetectedError(BotProtectionError):
    """A 2xx page that is really an anti-bot challenge. Escalates to headless."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Challenge page served for URL: {url}")

    @property
    def escalates(self) -> bool:
        return True


class CaptchaDetectedError(BotProtectionError):
    """
    Raised by the headless browser when the page shows a CAPTCHA widget.
    Escalates to manual verification when that is allowed.
    """

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "This site requires manual verification (CAPTCHA). "
            "Enable manual verification in settings to solve it in a browser window."
        )

    @property
    def escalates(self) -> bool:
        return True


class ScrapingError(ScraperError):
    """An extractor (or the whole pipeline) could not find availability data."""
    kind = ErrorKind.SCRAPING
    code = "SCRAPING_ERROR"
    prefix = "Scraping error"


class InternalError(ScraperError):
    kind = ErrorKind.INTERNAL
    code = "INTERNAL_ERROR"
    prefix = "Internal error"
