"""
Shopify Adapter for the Stock Watch availability checker.

Many Shopify stores ship no JSON-LD, or no availability in it. This adapter
reads the storefront's product.json and, when that lacks an explicit
``available`` flag, probes the cart API: a successful add means in stock.
"""
import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import httpx

from stockwatch.config import config
from stockwatch.errors import NetworkError, ScrapingError
from stockwatch.models.availability import AvailabilityStatus, PriceInfo, ScrapingResult
from stockwatch.utils.headers import USER_AGENT, json_api_headers
from stockwatch.utils.logger import LayerLogger
from stockwatch.utils.price_parser import build_price_info

# HTML markers confirming the page is served by Shopify
SHOPIFY_HTML_MARKERS = ["Shopify.shop", "cdn.shopify.com", "shopify-section"]

# Stores using /products/ URLs that are not Shopify (they have their own adapters)
NON_SHOPIFY_STORES = ["chemistwarehouse"]

# Cart API error phrases meaning the variant cannot be bought
CART_ERROR_OUT_OF_STOCK_PHRASES = [
    "sold out",
    "not available",
    "out of stock",
    "no longer available",
    "all items are out of stock",
    "insufficient inventory",
]

# raw_availability values, "source:status[:details]"
RAW_PRODUCT_JSON_AVAILABLE = "product_json:available"
RAW_PRODUCT_JSON_UNAVAILABLE = "product_json:unavailable"
RAW_CART_API_IN_STOCK = "cart_api:in_stock"
RAW_CART_API_OUT_OF_STOCK = "cart_api:out_of_stock"


# =============================================================================
# URL HELPERS
# =============================================================================

def has_products_path_segment(url: str) -> bool:
    """Exact ``products`` path segment, e.g. /collections/x/products/y."""
    try:
        path = urlparse(url).path
    except ValueError:
        return False
    return "products" in path.split("/")


def is_known_non_shopify_store(url: str) -> bool:
    return any(store in url for store in NON_SHOPIFY_STORES)


def is_potential_shopify_product_url(url: str) -> bool:
    """URL heuristic only; the HTML markers must confirm it."""
    return has_products_path_segment(url) and not is_known_non_shopify_store(url)


def is_shopify_store(html: str) -> bool:
    return any(marker in html for marker in SHOPIFY_HTML_MARKERS)


def extract_product_handle(url: str) -> Optional[str]:
    """https://store.com/products/my-product -> "my-product"."""
    parts = urlparse(url).path.split("/")
    for index, part in enumerate(parts):
        if part == "products" and index + 1 < len(parts) and parts[index + 1]:
            return parts[index + 1]
    return None


def extract_variant_id(url: str) -> Optional[int]:
    """Numeric ``variant`` query parameter; non-numeric values are ignored."""
    values = parse_qs(urlparse(url).query).get("variant")
    if not values:
        return None
    try:
        return int(values[0])
    except ValueError:
        return None


def get_base_url(url: str) -> Optional[str]:
    """Scheme + host, keeping an explicit port (http://localhost:3000)."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return None
    if parsed.port:
        return f"{parsed.scheme}://{parsed.hostname}:{parsed.port}"
    return f"{parsed.scheme}://{parsed.hostname}"


def is_cart_error_out_of_stock(message: str) -> bool:
    lowered = message.lower()
    return any(phrase in lowered for phrase in CART_ERROR_OUT_OF_STOCK_PHRASES)


def select_variant(variants: List[Dict[str, Any]], variant_id: Optional[int]) -> Dict[str, Any]:
    """
    Pick the variant matching ``variant_id``, else the first variant.

    Raises:
        ScrapingError: product.json has no variants
    """
    if not variants:
        raise ScrapingError("No variants found in product.json")

    if variant_id is not None:
        for variant in variants:
            if variant.get("id") == variant_id:
                return variant
    return variants[0]


class ShopifyAdapter:
    """
    Shopify storefront adapter.

    Flow:
    1. Confirm Shopify markers in the HTML
    2. GET {base}/products/{handle}.json and pick the target variant
    3. Use the variant's ``available`` flag when present
    4. Otherwise POST {base}/cart/add.js and classify the response,
       clearing the cart afterwards on success
    """

    name = "shopify"

    def __init__(self, timeout: Optional[int] = None):
        self.timeout = timeout or config.SHOPIFY_API_TIMEOUT
        self.logger = LayerLogger("shopify_adapter")

    def matches_url(self, url: str) -> bool:
        return is_potential_shopify_product_url(url)

    async def extract(self, html: str, url: str) -> ScrapingResult:
        """
        Check availability for a Shopify product page.

        Args:
            html: Page HTML already fetched by the orchestrator
            url: Product page URL

        Returns:
            ScrapingResult from product.json or the cart API

        Raises:
            ScrapingError: Not a Shopify store, bad URL, or inconclusive API response
            NetworkError: Storefront API unreachable
        """
        if not is_shopify_store(html):
            raise ScrapingError("Not a Shopify store")

        base_url = get_base_url(url)
        if not base_url:
            raise ScrapingError("Could not parse base URL")
        handle = extract_product_handle(url)
        if not handle:
            raise ScrapingError("Could not extract product handle from URL")
        variant_id = extract_variant_id(url)

        self.logger.log_action(
            "shopify_check", "started", url=url, handle=handle, variant_id=variant_id
        )

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            variants = await self._fetch_variants(client, f"{base_url}/products/{handle}.json")
            variant = select_variant(variants, variant_id)
            if variant_id is not None and variant.get("id") != variant_id:
                self.logger.log_fallback(
                    from_source="requested_variant",
                    to_source="first_variant",
                    reason="Variant id not present in product.json",
                    url=url,
                    variant_id=variant_id,
                    available_ids=[v.get("id") for v in variants],
                )

            price = self._price_from_variant(variant, url)
            available = variant.get("available")

            if isinstance(available, bool):
                self.logger.log_decision(
                    decision="product_json_availability",
                    reason="variant carries explicit available flag",
                    url=url,
                    available=available,
                )
                if available:
                    status, raw = AvailabilityStatus.IN_STOCK, RAW_PRODUCT_JSON_AVAILABLE
                else:
                    status, raw = AvailabilityStatus.OUT_OF_STOCK, RAW_PRODUCT_JSON_UNAVAILABLE
                return ScrapingResult(status=status, raw_availability=raw, price=price)

            self.logger.log_fallback(
                from_source="product_json",
                to_source="cart_api",
                reason="product.json lacks availability",
                url=url,
                variant_id=variant.get("id"),
            )
            status, raw = await self.check_cart_availability(client, base_url, variant.get("id"))

        return ScrapingResult(status=status, raw_availability=raw, price=price)

    async def _fetch_variants(
        self, client: httpx.AsyncClient, product_json_url: str
    ) -> List[Dict[str, Any]]:
        try:
            response = await client.get(
                product_json_url,
                headers=json_api_headers(),
            )
        except httpx.HTTPError as e:
            self.logger.log_error(str(e), error_type="network_error", url=product_json_url)
            raise NetworkError(str(e)) from e

        self.logger.log_http_probe(
            url=product_json_url,
            endpoint="products.json",
            status_code=response.status_code,
            result="ok" if response.is_success else "failed",
        )
        if not response.is_success:
            raise ScrapingError(f"Failed to fetch product.json: HTTP {response.status_code}")

        try:
            payload = response.json()
        except json.JSONDecodeError as e:
            raise ScrapingError(f"Failed to parse product.json: {e}") from e

        product = payload.get("product") if isinstance(payload, dict) else None
        if not isinstance(product, dict):
            raise ScrapingError("Failed to parse product.json: missing product")

        variants = product.get("variants") or []
        return [v for v in variants if isinstance(v, dict)]

    async def check_cart_availability(
        self, client: httpx.AsyncClient, base_url: str, variant_id: Any
    ) -> Tuple[AvailabilityStatus, str]:
        """
        Probe stock by adding one unit to the cart.

        This mutates the live storefront cart; a best-effort clear follows a
        successful add.

        Returns:
            (AvailabilityStatus, raw_availability)

        Raises:
            ScrapingError: Error body is not a recognised out-of-stock message
        """
        cart_url = f"{base_url}/cart/add.js"
        payload = {"items": [{"id": variant_id, "quantity": 1}]}

        try:
            response = await client.post(
                cart_url,
                json=payload,
                headers=json_api_headers(),
            )
        except httpx.HTTPError as e:
            self.logger.log_error(str(e), error_type="network_error", url=cart_url)
            raise NetworkError(str(e)) from e

        body = response.text
        self.logger.log_http_probe(
            url=cart_url,
            endpoint="cart/add.js",
            status_code=response.status_code,
            result="added" if response.is_success else "rejected",
            body_preview=body[:200],
        )

        if response.is_success:
            await self.clear_cart(client, base_url)
            return AvailabilityStatus.IN_STOCK, RAW_CART_API_IN_STOCK

        message = self._cart_error_out_of_stock_message(body)
        if message is not None:
            return AvailabilityStatus.OUT_OF_STOCK, f"{RAW_CART_API_OUT_OF_STOCK}:{message}"

        raise ScrapingError(
            f"Cart API returned unexpected response: HTTP {response.status_code} - {body[:100]}"
        )

    async def clear_cart(self, client: httpx.AsyncClient, base_url: str) -> None:
        """Undo the probe. Failures are logged, never raised."""
        clear_url = f"{base_url}/cart/clear.js"
        try:
            await client.post(clear_url, headers={"User-Agent": USER_AGENT})
        except httpx.HTTPError as e:
            self.logger.log_debug("cart_clear_failed", url=clear_url, error=str(e))

    def _cart_error_out_of_stock_message(self, body: str) -> Optional[str]:
        """
        Lower-cased out-of-stock message from a cart error body, if any.

        Shopify puts a generic "Cart Error" in ``message`` and the detail in
        ``description``, so both are checked.
        """
        try:
            error = json.loads(body)
        except json.JSONDecodeError:
            return None
        if not isinstance(error, dict):
            return None

        for field in ("message", "description"):
            text = error.get(field)
            if isinstance(text, str) and is_cart_error_out_of_stock(text):
                return text.lower()
        return None

    def _price_from_variant(self, variant: Dict[str, Any], url: str) -> PriceInfo:
        raw_price = variant.get("price")
        if raw_price in (None, ""):
            return PriceInfo.none()
        return build_price_info(raw_price, variant.get("price_currency"), url)
