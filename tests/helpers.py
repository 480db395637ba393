"""
Stock Watch - Test helpers

Page builders and fake browser collaborators shared by the test modules.
"""
import json
from typing import List, Optional, Tuple

from stockwatch.errors import ScraperError


# ---------------------------------------------------------------------------
# Page builders
# ---------------------------------------------------------------------------


def json_ld_page(*blocks, body: str = "<h1>Product</h1>") -> str:
    """HTML page with one <script type="application/ld+json"> per block."""
    scripts = "\n".join(
        f'<script type="application/ld+json">{json.dumps(block)}</script>' for block in blocks
    )
    return f"<html><head>{scripts}</head><body>{body}</body></html>"


def inline_script_page(script: str, body: str = "") -> str:
    """HTML page with a single inline script."""
    return f"<html><head><script>{script}</script></head><body>{body}</body></html>"


def next_data_page(data: dict) -> str:
    return (
        '<html><body><script id="__NEXT_DATA__" type="application/json">'
        f"{json.dumps(data)}</script></body></html>"
    )


SHOPIFY_PAGE = (
    "<html><head><script>var Shopify = Shopify || {}; Shopify.shop = 'store.myshopify.com';"
    "</script></head><body><div class=\"shopify-section\">Widget</div></body></html>"
)

CLOUDFLARE_CHALLENGE = (
    "<html><head><title>Just a moment...</title></head>"
    "<body><script>window._cf_chl_opt = {};</script></body></html>"
)


# ---------------------------------------------------------------------------
# Fake browser collaborators
# ---------------------------------------------------------------------------


class FakeHeadlessBrowser:
    """Headless collaborator returning canned HTML or raising a canned error."""

    def __init__(self, html: str = "", error: Optional[Exception] = None):
        self.html = html
        self.error = error
        self.calls: List[str] = []

    def fetch_page(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.html


class FakeManualVerifier:
    """Manual verification collaborator returning canned HTML and cookies."""

    def __init__(self, html: str = "", cookies_json: str = "[]", error: Optional[Exception] = None):
        self.html = html
        self.cookies_json = cookies_json
        self.error = error
        self.calls: List[str] = []

    def launch_visible_browser(self, url: str) -> Tuple[str, str]:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.html, self.cookies_json
