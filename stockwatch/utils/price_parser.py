"""
Price parsing for the Stock Watch availability checker.
Converts raw page prices to integer minor units with exact decimal math and
resolves which currency an observed price is in.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Any, Optional

from stockwatch.models.availability import PriceInfo
from stockwatch.utils.currency import (
    currency_from_domain,
    currency_from_path_locale,
    currency_multiplier,
)

_NON_PRICE_CHARS = re.compile(r"[^0-9.]")

# Minor units must fit a signed 64-bit integer
_MIN_MINOR_UNITS = -(2 ** 63)
_MAX_MINOR_UNITS = 2 ** 63 - 1


def parse_price(raw_price: Optional[str], currency: Optional[str] = None) -> Optional[int]:
    """
    Convert a raw price string to minor units.

    Everything except digits and '.' is stripped first, so "$1,234.56"
    parses like "1234.56".

    Args:
        raw_price: Price text as found on the page
        currency: ISO code used to pick the minor-unit multiplier (100 if None/unknown)

    Returns:
        Integer minor units, or None for empty/unparsable input or a value
        outside the signed 64-bit range
    """
    if raw_price is None:
        return None

    cleaned = _NON_PRICE_CHARS.sub("", str(raw_price))
    if not cleaned:
        return None

    try:
        amount = Decimal(cleaned)
        minor_units = amount * currency_multiplier(currency)
        minor_units = int(minor_units.quantize(Decimal("1"), rounding=ROUND_HALF_EVEN))
    except InvalidOperation:
        # Too many digits for the decimal context
        return None

    if not _MIN_MINOR_UNITS <= minor_units <= _MAX_MINOR_UNITS:
        return None
    return minor_units


def resolve_currency(url: Optional[str], page_currency: Optional[str] = None) -> Optional[str]:
    """
    Decide which currency an observed price is in.

    Precedence:
    1. Locale segment in the URL path (/en-au/ -> AUD)
    2. Country TLD of the store domain (.com.au before .au)
    3. Currency declared by the page data itself
    4. Unresolved (None)
    """
    if url:
        from_locale = currency_from_path_locale(url)
        if from_locale:
            return from_locale

        from_domain = currency_from_domain(url)
        if from_domain:
            return from_domain

    if page_currency and str(page_currency).strip():
        return str(page_currency).strip().upper()

    return None


def raw_price_text(value: Any) -> Optional[str]:
    """
    Render a JSON price value (string or number) as text.

    Booleans, objects and null are not prices. Numbers decoded with
    parse_float=Decimal keep their original digits ("25.00").
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return None


def build_price_info(
    raw_price: Any,
    page_currency: Optional[str],
    url: Optional[str],
) -> PriceInfo:
    """
    Build a PriceInfo from a raw price value, the page's currency and the page URL.

    The multiplier follows the resolved currency, not the page currency, so a
    JPY price on a .co.jp store is never scaled by 100.

    Generic TLDs such as ".com" resolve no currency, so a Shopify ".com"
    store whose product.json carries no currency reports price_currency=None.
    """
    raw = raw_price_text(raw_price)
    currency = resolve_currency(url, page_currency)
    minor_units = parse_price(raw, currency) if raw is not None else None
    return PriceInfo(
        price_minor_units=minor_units,
        price_currency=currency,
        raw_price=raw,
    )
