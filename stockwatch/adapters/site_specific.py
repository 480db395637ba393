"""
Site-specific adapters for the Stock Watch availability checker.

Each adapter pairs a URL predicate with a parser for one site's proprietary
embedded-JSON format. New sites are added by registering another pair; the
extraction pipeline never needs to change.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from stockwatch.adapters.nextjs_data import extract_next_data, get_page_props
from stockwatch.errors import ScrapingError
from stockwatch.models.availability import AvailabilityStatus, PriceInfo, ScrapingResult
from stockwatch.utils.logger import LayerLogger
from stockwatch.utils.price_parser import build_price_info, raw_price_text

UrlPredicate = Callable[[str], bool]
PageParser = Callable[[str, str], ScrapingResult]

logger = LayerLogger("site_adapters")


@dataclass(frozen=True)
class SiteAdapter:
    """A (predicate, parser) pair for one site."""
    name: str
    matches: UrlPredicate
    parse: PageParser


class SiteAdapterRegistry:
    """Ordered list of site adapters, looked up by URL."""

    def __init__(self, adapters: Optional[List[SiteAdapter]] = None):
        self._adapters: List[SiteAdapter] = list(adapters or [])

    def register(self, name: str, matches: UrlPredicate, parse: PageParser) -> SiteAdapter:
        adapter = SiteAdapter(name=name, matches=matches, parse=parse)
        self._adapters.append(adapter)
        return adapter

    def matching(self, url: str) -> List[SiteAdapter]:
        """Adapters whose predicate accepts ``url``, in registration order."""
        return [adapter for adapter in self._adapters if adapter.matches(url)]

    def __len__(self) -> int:
        return len(self._adapters)


# =============================================================================
# SHARED ACCEPTANCE RULE
# =============================================================================

IDENTIFIER_FIELDS = ("name", "sku", "productName")
STOCK_OR_PRICE_FIELDS = ("availability", "stock", "stockStatus", "inStock", "price")


def has_product_fields(value: Any) -> bool:
    """
    Accept a JSON object as "the product" only if it has an identifier-like
    field and a stock-or-price-like field.
    """
    if not isinstance(value, dict):
        return False
    has_identifier = any(field in value for field in IDENTIFIER_FIELDS)
    has_stock_info = any(field in value for field in STOCK_OR_PRICE_FIELDS)
    return has_identifier and has_stock_info


# =============================================================================
# CHEMIST WAREHOUSE (Next.js)
# =============================================================================

CHEMIST_WAREHOUSE_DEFAULT_CURRENCY = "AUD"

_CHEMIST_WAREHOUSE_STATUS: Dict[str, AvailabilityStatus] = {
    "in-stock": AvailabilityStatus.IN_STOCK,
    "instock": AvailabilityStatus.IN_STOCK,
    "in stock": AvailabilityStatus.IN_STOCK,
    "available": AvailabilityStatus.IN_STOCK,
    "out-of-stock": AvailabilityStatus.OUT_OF_STOCK,
    "outofstock": AvailabilityStatus.OUT_OF_STOCK,
    "out of stock": AvailabilityStatus.OUT_OF_STOCK,
    "unavailable": AvailabilityStatus.OUT_OF_STOCK,
    "sold out": AvailabilityStatus.OUT_OF_STOCK,
    "soldout": AvailabilityStatus.OUT_OF_STOCK,
    "backorder": AvailabilityStatus.BACK_ORDER,
    "back-order": AvailabilityStatus.BACK_ORDER,
    "back order": AvailabilityStatus.BACK_ORDER,
    "preorder": AvailabilityStatus.BACK_ORDER,
    "pre-order": AvailabilityStatus.BACK_ORDER,
    "pre order": AvailabilityStatus.BACK_ORDER,
}


def is_chemist_warehouse_url(url: str) -> bool:
    return "chemistwarehouse.com.au" in url


def map_chemist_warehouse_status(availability: str) -> AvailabilityStatus:
    """Exact-match table; unlisted values are UNKNOWN."""
    return _CHEMIST_WAREHOUSE_STATUS.get(availability.strip().lower(), AvailabilityStatus.UNKNOWN)


def find_product_data(page_props: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Look in product, productDetail, data.product, then pageProps itself."""
    data = page_props.get("data")
    candidates = [
        page_props.get("product"),
        page_props.get("productDetail"),
        data.get("product") if isinstance(data, dict) else None,
        page_props,
    ]
    for candidate in candidates:
        if has_product_fields(candidate):
            return candidate
    return None


def _extract_availability(product: Dict[str, Any]) -> Optional[str]:
    for key in ("availability", "stockStatus", "stock"):
        value = product.get(key)
        if isinstance(value, str):
            return value

    in_stock = product.get("inStock")
    if isinstance(in_stock, bool):
        return "in-stock" if in_stock else "out-of-stock"
    return None


def _extract_price_value(product: Dict[str, Any]) -> Optional[str]:
    for key in ("price", "currentPrice", "salePrice"):
        raw = raw_price_text(product.get(key))
        if raw is not None:
            return raw

    pricing = product.get("pricing")
    if isinstance(pricing, dict):
        return raw_price_text(pricing.get("price"))
    return None


def _extract_price_info(product: Dict[str, Any], url: str) -> PriceInfo:
    raw_price = _extract_price_value(product)
    if raw_price is None:
        return PriceInfo.none()

    page_currency = product.get("currency") or product.get("priceCurrency")
    if not isinstance(page_currency, str):
        page_currency = CHEMIST_WAREHOUSE_DEFAULT_CURRENCY
    return build_price_info(raw_price, page_currency, url)


def parse_chemist_warehouse(html: str, url: str) -> ScrapingResult:
    """
    Extract availability and price from a Chemist Warehouse product page.

    Raises:
        ScrapingError: No __NEXT_DATA__, no product object, or no availability
    """
    page_props = get_page_props(extract_next_data(html))
    if page_props is None:
        raise ScrapingError("No pageProps found in __NEXT_DATA__")

    product = find_product_data(page_props)
    if product is None:
        raise ScrapingError("No product data found in Chemist Warehouse page props")

    availability = _extract_availability(product)
    if availability is None:
        raise ScrapingError("No availability found in Chemist Warehouse product data")

    status = map_chemist_warehouse_status(availability)
    price = _extract_price_info(product, url)

    logger.log_extraction(
        source="chemist_warehouse",
        status=status.value,
        price_minor_units=price.price_minor_units,
        price_currency=price.price_currency,
        url=url,
    )
    return ScrapingResult(status=status, raw_availability=availability, price=price)


def default_registry() -> SiteAdapterRegistry:
    """Registry with every built-in site adapter."""
    registry = SiteAdapterRegistry()
    registry.register("chemist_warehouse", is_chemist_warehouse_url, parse_chemist_warehouse)
    return registry
