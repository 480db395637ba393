"""
Fetch Layer for the Stock Watch availability checker.

Acquires product-page HTML through an escalating chain of tiers:
plain HTTP, then a headless browser, then manual human verification.
Escalation is the only form of retry; no tier is attempted twice.
"""
import asyncio
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

import httpx

from stockwatch.adapters.browser import (
    HeadlessBrowser,
    ManualVerifier,
    PlaywrightHeadlessBrowser,
    PlaywrightManualVerifier,
    extract_domain,
)
from stockwatch.config import config
from stockwatch.errors import (
    BotProtectionError,
    ChallengeDetectedError,
    HttpStatusError,
    InternalError,
    NetworkError,
    ScraperError,
    ValidationError,
    ESCALATING_STATUS_CODES,
)
from stockwatch.layers.session_cache import InMemorySessionRepository
from stockwatch.models.availability import FetchOutcome, FetchTier
from stockwatch.utils.bot_detection import BotProtectionDetector
from stockwatch.utils.headers import USER_AGENT, browser_headers
from stockwatch.utils.logger import LayerLogger

ALLOWED_SCHEMES = ("http", "https")

BOT_PROTECTION_MESSAGE = (
    "This site has bot protection. Enable headless browser in settings to check this site."
)
MANUAL_NEEDS_HEADLESS_MESSAGE = (
    "This site has bot protection. Manual verification requires the headless browser; "
    "enable headless browser in settings to check this site."
)


def validate_url(url: str) -> None:
    """
    Accept only absolute http(s) URLs.

    Raises:
        ValidationError: Unparsable URL, missing host, or unsupported scheme
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ValidationError(f"Invalid URL: {e}") from e

    if not parsed.scheme:
        raise ValidationError("Invalid URL: relative URL without a base")
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValidationError(
            f"Unsupported URL scheme '{parsed.scheme}'. Only http and https are allowed."
        )
    if not parsed.hostname:
        raise ValidationError("Invalid URL: empty host")


# =============================================================================
# TIER TRANSITIONS
# =============================================================================

@dataclass(frozen=True)
class TierTransition:
    """Either the next tier to try or the error that ends the check."""
    next_tier: Optional[FetchTier] = None
    error: Optional[ScraperError] = None


def next_fetch_tier(
    tier: FetchTier,
    error: ScraperError,
    enable_headless: bool,
    allow_manual_verification: bool,
) -> TierTransition:
    """
    Decide what follows a failed tier. Pure; never revisits a tier.

    Args:
        tier: Tier that just failed
        error: Why it failed
        enable_headless: Headless browser tier permitted
        allow_manual_verification: Manual verification tier permitted

    Returns:
        TierTransition with exactly one of next_tier / error set
    """
    if not error.escalates:
        return TierTransition(error=error)

    if tier is FetchTier.HTTP:
        if enable_headless:
            return TierTransition(next_tier=FetchTier.HEADLESS)
        if allow_manual_verification:
            return TierTransition(error=BotProtectionError(MANUAL_NEEDS_HEADLESS_MESSAGE))
        return TierTransition(error=BotProtectionError(BOT_PROTECTION_MESSAGE))

    if tier is FetchTier.HEADLESS and allow_manual_verification:
        return TierTransition(next_tier=FetchTier.MANUAL_VERIFICATION)

    return TierTransition(error=error)


class FetchOrchestrator:
    """
    Fetch orchestrator.

    Key principles:
    - Network/DNS/TLS errors and non-403/503 statuses are fatal
    - 403/503 or a challenge page escalates to the headless browser
    - A CAPTCHA in the headless browser escalates to manual verification
    - Blocking browser collaborators run in a worker thread
    """

    def __init__(
        self,
        headless: Optional[HeadlessBrowser] = None,
        manual_verifier: Optional[ManualVerifier] = None,
        sessions: Optional[InMemorySessionRepository] = None,
        detector: Optional[BotProtectionDetector] = None,
        timeout: Optional[int] = None,
        session_duration_days: Optional[int] = None,
    ):
        self.headless = headless
        self.manual_verifier = manual_verifier
        self.sessions = sessions if sessions is not None else InMemorySessionRepository()
        self.detector = detector or BotProtectionDetector()
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.session_duration_days = session_duration_days or config.SESSION_CACHE_DURATION_DAYS
        self.logger = LayerLogger("fetch")

    async def fetch(
        self,
        url: str,
        enable_headless: bool,
        allow_manual_verification: bool,
    ) -> str:
        """Fetch page HTML through the fallback chain."""
        outcome = await self.fetch_with_outcome(url, enable_headless, allow_manual_verification)
        return outcome.html

    async def fetch_with_outcome(
        self,
        url: str,
        enable_headless: bool,
        allow_manual_verification: bool,
    ) -> FetchOutcome:
        """
        Fetch page HTML and report which tier produced it.

        Raises:
            ValidationError: URL rejected before any request
            ScraperError: The chain ended without HTML
        """
        validate_url(url)

        tier = FetchTier.HTTP
        attempted: List[FetchTier] = []

        while True:
            attempted.append(tier)
            self.logger.log_action("fetch_tier", "started", url=url, tier=tier.value)
            try:
                html = await self._run_tier(tier, url)
            except ScraperError as e:
                transition = next_fetch_tier(tier, e, enable_headless, allow_manual_verification)
                if transition.error is not None:
                    self.logger.log_error(
                        str(transition.error),
                        error_type=transition.error.code,
                        url=url,
                        tier=tier.value,
                        tiers_attempted=[t.value for t in attempted],
                    )
                    raise transition.error

                self.logger.log_fallback(
                    from_source=tier.value,
                    to_source=transition.next_tier.value,
                    reason=str(e),
                    url=url,
                )
                tier = transition.next_tier
                continue

            self.logger.log_action(
                "fetch_tier",
                "completed",
                url=url,
                tier=tier.value,
                content_length=len(html),
            )
            return FetchOutcome(html=html, tier=tier, tiers_attempted=attempted)

    async def _run_tier(self, tier: FetchTier, url: str) -> str:
        if tier is FetchTier.HTTP:
            return await self.fetch_http(url)
        if tier is FetchTier.HEADLESS:
            return await self.fetch_headless(url)
        return await self.fetch_with_manual_verification(url)

    # =========================================================================
    # TIER 1: PLAIN HTTP
    # =========================================================================

    async def fetch_http(self, url: str) -> str:
        """
        GET the page with browser-like headers.

        Raises:
            NetworkError: Transport failure (fatal)
            HttpStatusError: Non-2xx status (403/503 escalate)
            ChallengeDetectedError: 2xx body is a bot challenge (escalates)
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url, headers=browser_headers())
                body = response.text
        except httpx.HTTPError as e:
            self.logger.log_error(f"Failed to fetch URL: {e}", error_type="http_error", url=url)
            raise NetworkError(str(e) or e.__class__.__name__) from e

        self.logger.log_http_probe(
            url=url,
            endpoint="page",
            status_code=response.status_code,
            result="ok" if response.is_success else "failed",
            content_length=len(body),
        )

        if not response.is_success:
            if response.status_code in ESCALATING_STATUS_CODES and self.detector.has_product_data(body):
                self.logger.log_decision(
                    decision="accept_blocked_status_body",
                    reason="response carries JSON-LD product data",
                    url=url,
                    status_code=response.status_code,
                )
                return body
            raise HttpStatusError(response.status_code, url)

        if self.detector.is_challenge(200, body, url=url):
            raise ChallengeDetectedError(url)

        return body

    # =========================================================================
    # TIER 2: HEADLESS BROWSER
    # =========================================================================

    async def fetch_headless(self, url: str) -> str:
        if self.headless is None:
            self.headless = PlaywrightHeadlessBrowser(detector=self.detector)
        return await self._run_blocking(self.headless.fetch_page, url, task="Headless")

    # =========================================================================
    # TIER 3: MANUAL VERIFICATION
    # =========================================================================

    async def fetch_with_manual_verification(self, url: str) -> str:
        domain = extract_domain(url)

        cached = self.sessions.find_by_domain(domain)
        if cached is not None:
            # TODO: inject cached cookies into the headless context instead of re-verifying
            self.logger.log_decision(
                decision="cached_session_ignored",
                reason="cached cookie reuse not supported yet, re-verifying",
                url=url,
                domain=domain,
                expires_at=cached.expires_at.isoformat(),
            )

        if self.manual_verifier is None:
            self.manual_verifier = PlaywrightManualVerifier(detector=self.detector)

        html, cookies_json = await self._run_blocking(
            self.manual_verifier.launch_visible_browser, url, task="Manual verification"
        )
        self.sessions.create(
            domain=domain,
            cookies_json=cookies_json,
            user_agent=USER_AGENT,
            duration_days=self.session_duration_days,
        )
        return html

    async def _run_blocking(self, func, url: str, task: str):
        """Run a blocking collaborator in a worker thread."""
        try:
            return await asyncio.to_thread(func, url)
        except ScraperError:
            raise
        except Exception as e:
            self.logger.log_error(str(e), error_type="task_failure", url=url, task=task)
            raise InternalError(f"{task} task failed: {e}") from e
