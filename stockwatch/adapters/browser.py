"""
Browser collaborators for the Stock Watch availability checker.

Both collaborators drive a real Chromium through Playwright's sync API and
are blocking; the fetch orchestrator runs them off the event loop. Keeping
them behind ``fetch_page`` / ``launch_visible_browser`` lets the extraction
core be tested without a browser.
"""
import json
import time
from typing import Optional, Protocol, Tuple
from urllib.parse import urlparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from stockwatch.config import config
from stockwatch.errors import (
    BotProtectionError,
    CaptchaDetectedError,
    InternalError,
    ScrapingError,
    ValidationError,
)
from stockwatch.utils.bot_detection import BotProtectionDetector
from stockwatch.utils.headers import USER_AGENT
from stockwatch.utils.logger import LayerLogger

# DOM markers of interactive CAPTCHA widgets a headless browser cannot solve
CAPTCHA_INDICATORS = [
    "g-recaptcha",
    "h-captcha",
    "cf-turnstile",
    "captcha-container",
    "recaptcha-token",
    "hcaptcha-response",
]

HIDE_WEBDRIVER_SCRIPT = "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});"

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-infobars",
    "--no-first-run",
]


def is_captcha_challenge(html: str) -> bool:
    lower = html.lower()
    return any(indicator in lower for indicator in CAPTCHA_INDICATORS)


def extract_domain(url: str) -> str:
    """
    Host part of a URL, used as the verified-session cache key.

    Raises:
        ValidationError: URL is unparsable or has no host
    """
    try:
        host = urlparse(url).hostname
    except ValueError as e:
        raise ValidationError(f"Invalid URL: {e}") from e
    if not host:
        raise ValidationError("URL has no host")
    return host.lower()


class HeadlessBrowser(Protocol):
    def fetch_page(self, url: str) -> str:
        ...


class ManualVerifier(Protocol):
    def launch_visible_browser(self, url: str) -> Tuple[str, str]:
        ...


class PlaywrightHeadlessBrowser:
    """Headless Chromium fetcher for JavaScript-challenged pages."""

    def __init__(
        self,
        page_timeout: Optional[int] = None,
        render_wait_ms: Optional[int] = None,
        detector: Optional[BotProtectionDetector] = None,
    ):
        self.page_timeout = page_timeout or config.HEADLESS_PAGE_TIMEOUT
        self.render_wait_ms = (
            render_wait_ms if render_wait_ms is not None else config.HEADLESS_RENDER_WAIT_MS
        )
        self.detector = detector or BotProtectionDetector()
        self.logger = LayerLogger("headless_browser")

    def fetch_page(self, url: str) -> str:
        """
        Render ``url`` in headless Chromium and return the final HTML. Blocking.

        Raises:
            CaptchaDetectedError: Page shows an interactive CAPTCHA
            BotProtectionError: Rendered page is still a challenge page
            ScrapingError: Navigation failed or timed out
            InternalError: Browser could not be launched
        """
        self.logger.log_action("headless_fetch", "started", url=url)

        with sync_playwright() as playwright:
            try:
                browser = playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)
            except PlaywrightError as e:
                raise InternalError(f"Failed to launch Chromium: {e}") from e

            try:
                context = browser.new_context(
                    user_agent=USER_AGENT,
                    viewport={"width": 1920, "height": 1080},
                    locale="en-US",
                )
                context.add_init_script(HIDE_WEBDRIVER_SCRIPT)
                page = context.new_page()
                page.goto(url, wait_until="domcontentloaded", timeout=self.page_timeout * 1000)
                if self.render_wait_ms:
                    page.wait_for_timeout(self.render_wait_ms)
                html = page.content()
            except PlaywrightTimeoutError as e:
                raise ScrapingError(f"Page load timeout: {e}") from e
            except PlaywrightError as e:
                raise ScrapingError(f"Failed to navigate to URL: {e}") from e
            finally:
                browser.close()

        self.logger.log_action(
            "headless_fetch", "completed", url=url, content_length=len(html)
        )

        if is_captcha_challenge(html):
            self.logger.log_decision(
                decision="captcha_detected",
                reason="captcha widget present after render",
                url=url,
            )
            raise CaptchaDetectedError()

        if self.detector.is_challenge(200, html, url=url):
            raise BotProtectionError(
                "Bot protection challenge persisted in the headless browser"
            )

        return html


class PlaywrightManualVerifier:
    """
    Opens a visible browser window so a human can solve a CAPTCHA, then
    captures the rendered HTML and the session cookies.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        poll_interval: Optional[int] = None,
        user_data_dir: Optional[str] = None,
        detector: Optional[BotProtectionDetector] = None,
    ):
        self.timeout = timeout or config.MANUAL_VERIFICATION_TIMEOUT
        self.poll_interval = poll_interval or config.MANUAL_VERIFICATION_POLL_INTERVAL
        self.user_data_dir = user_data_dir
        self.detector = detector or BotProtectionDetector()
        self.logger = LayerLogger("manual_verification")

    def _is_still_challenged(self, html: str) -> bool:
        return is_captcha_challenge(html) or self.detector.is_challenge(200, html)

    def launch_visible_browser(self, url: str) -> Tuple[str, str]:
        """
        Wait (blocking) for the user to pass the challenge.

        Returns:
            (html, cookies_json)

        Raises:
            BotProtectionError: The challenge was not solved within the timeout
            InternalError: Browser could not be launched
        """
        self.logger.log_action("manual_verification", "started", url=url)

        with sync_playwright() as playwright:
            try:
                if self.user_data_dir:
                    context = playwright.chromium.launch_persistent_context(
                        self.user_data_dir,
                        headless=False,
                        args=LAUNCH_ARGS,
                        user_agent=USER_AGENT,
                    )
                    browser = None
                else:
                    browser = playwright.chromium.launch(headless=False, args=LAUNCH_ARGS)
                    context = browser.new_context(user_agent=USER_AGENT)
            except PlaywrightError as e:
                raise InternalError(f"Failed to launch Chromium: {e}") from e

            try:
                page = context.new_page()
                try:
                    page.goto(url, wait_until="domcontentloaded", timeout=self.timeout * 1000)
                except PlaywrightError as e:
                    raise ScrapingError(f"Failed to navigate to URL: {e}") from e

                self.logger.log_action("await_user_verification", "waiting", url=url)
                deadline = time.monotonic() + self.timeout
                verified = False
                while time.monotonic() < deadline:
                    time.sleep(self.poll_interval)
                    try:
                        html = page.content()
                    except PlaywrightError:
                        # Page mid-navigation while the user interacts
                        continue
                    if not self._is_still_challenged(html):
                        verified = True
                        break

                if not verified:
                    raise BotProtectionError("Manual verification timed out. Please try again.")

                html = page.content()
                cookies_json = json.dumps(context.cookies())
            finally:
                context.close()
                if browser is not None:
                    browser.close()

        self.logger.log_action(
            "manual_verification", "completed", url=url, content_length=len(html)
        )
        return html, cookies_json
