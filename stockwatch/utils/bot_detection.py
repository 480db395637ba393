"""
Bot Protection Detection for the Stock Watch availability checker.
Classifies a fetched response as a genuine product page or an anti-bot challenge.
"""
from typing import Optional

from stockwatch.errors import ESCALATING_STATUS_CODES
from stockwatch.utils.logger import LayerLogger

# Real structured data outranks any status code
PRODUCT_DATA_MARKER = "application/ld+json"

# Cloudflare challenge markers. Plain "cloudflare" is not one: pages that load
# assets from cdnjs.cloudflare.com are ordinary pages.
CLOUDFLARE_MARKERS = [
    "just a moment...",
    "cf-browser-verification",
    "_cf_chl_opt",
    "checking your browser",
    "ray id:",
    "cf-challenge",
    "__cf_bm",
    "/cdn-cgi/challenge-platform/",
]

# Explicit block messages from various bot-management vendors
BOT_PROTECTION_PHRASES = [
    "bot detected",
    "please verify you are a human",
    "enable javascript and cookies",
    "pardon our interruption",
]

MINIMAL_PAGE_LENGTH = 5000


class BotProtectionDetector:
    """
    Decides whether a response is a challenge page.

    Detection order:
    1. Page carries JSON-LD -> real content, never a challenge
    2. Cloudflare markers or explicit block phrases -> challenge at any status
    3. 403/503 with a tiny or bodiless page -> challenge
    """

    def __init__(self):
        self.logger = LayerLogger("bot_detection")

    def is_challenge(self, status: int, body: str, url: Optional[str] = None) -> bool:
        """
        Classify a response.

        Args:
            status: HTTP status code of the response
            body: Response body
            url: Page URL, for logging only

        Returns:
            True if the body is an anti-bot challenge rather than the product page
        """
        body_lower = body.lower()

        if PRODUCT_DATA_MARKER in body_lower:
            return False

        if self._has_cloudflare_markers(body_lower):
            self.logger.log_decision(
                decision="challenge_detected",
                reason="cloudflare_markers",
                url=url,
                status_code=status,
            )
            return True

        if self._has_block_phrases(body_lower):
            self.logger.log_decision(
                decision="challenge_detected",
                reason="bot_protection_phrase",
                url=url,
                status_code=status,
            )
            return True

        if status in ESCALATING_STATUS_CODES and self._is_minimal_page(body_lower, len(body)):
            self.logger.log_decision(
                decision="challenge_detected",
                reason="minimal_page_on_blocking_status",
                url=url,
                status_code=status,
                content_length=len(body),
            )
            return True

        return False

    def has_product_data(self, body: str) -> bool:
        """Whether the page carries JSON-LD structured data."""
        return PRODUCT_DATA_MARKER in body.lower()

    def _has_cloudflare_markers(self, body_lower: str) -> bool:
        return any(marker in body_lower for marker in CLOUDFLARE_MARKERS)

    def _has_block_phrases(self, body_lower: str) -> bool:
        return any(phrase in body_lower for phrase in BOT_PROTECTION_PHRASES)

    def _is_minimal_page(self, body_lower: str, body_length: int) -> bool:
        return body_length < MINIMAL_PAGE_LENGTH or "<body" not in body_lower
