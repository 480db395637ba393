"""
GTM dataLayer Extractor for the Stock Watch availability checker.
Parses dataLayer.push({...}) calls injected by Google Tag Manager, supporting
GA4 ecommerce events, Enhanced Ecommerce and legacy ecomm_* fields.
"""
import json
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from stockwatch.errors import ScrapingError
from stockwatch.models.availability import AvailabilityStatus, PriceInfo, ScrapingResult
from stockwatch.utils.logger import LayerLogger
from stockwatch.utils.price_parser import parse_price, raw_price_text, resolve_currency

PUSH_CALL = "dataLayer.push("

# GA4 event names in priority order for price extraction
GA4_EVENT_PRIORITY = ["view_item", "add_to_cart", "purchase", "begin_checkout"]

# Button text suggesting the product can be bought (matched case-insensitively)
ADD_TO_CART_INDICATORS = [
    "add to cart",
    "add to bag",
    "add to basket",
    "buy now",
    "purchase",
    "in den warenkorb",
    "au panier",
    "カートに入れる",
    "カートに追加",
]


class StringContext(Enum):
    """
    Where the tokenizer currently is relative to JS string literals.
    A single value, so "inside both kinds of quote" cannot be represented.
    """
    NONE = "none"
    SINGLE_QUOTED = "single_quoted"
    DOUBLE_QUOTED = "double_quoted"


def _advance_string_context(context: StringContext, ch: str) -> StringContext:
    """Transition for one unescaped character."""
    if context is StringContext.SINGLE_QUOTED:
        return StringContext.NONE if ch == "'" else context
    if context is StringContext.DOUBLE_QUOTED:
        return StringContext.NONE if ch == '"' else context
    if ch == "'":
        return StringContext.SINGLE_QUOTED
    if ch == '"':
        return StringContext.DOUBLE_QUOTED
    return context


def extract_balanced_braces(text: str) -> Optional[str]:
    """
    Return the balanced ``{...}`` prefix of ``text``.

    Braces and quote characters inside string literals are ignored and
    backslash escapes are honoured. None if the object never closes.
    """
    depth = 0
    context = StringContext.NONE
    escaped = False

    for index, ch in enumerate(text):
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue

        if context is not StringContext.NONE:
            context = _advance_string_context(context, ch)
            continue

        if ch in ("'", '"'):
            context = _advance_string_context(context, ch)
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[:index + 1]

    return None


def _next_significant_char(text: str, start: int) -> str:
    for ch in text[start:]:
        if not ch.isspace():
            return ch
    return ""


def _last_significant_char(chars: List[str]) -> str:
    for ch in reversed(chars):
        if not ch.isspace():
            return ch
    return ""


def _is_identifier_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def normalize_js_to_json(js: str) -> str:
    """
    Convert a loose JS object literal into strict JSON.

    - single-quoted strings become double-quoted (inner double quotes escaped)
    - bare identifier keys are quoted
    - trailing commas before ``}`` / ``]`` are dropped
    """
    out: List[str] = []
    context = StringContext.NONE
    escaped = False
    index = 0
    length = len(js)

    while index < length:
        ch = js[index]

        if escaped:
            escaped = False
            if context is not StringContext.NONE and ch == "'":
                # \' is valid JS but not valid JSON
                out[-1] = "'"
            else:
                out.append(ch)
            index += 1
            continue

        if ch == "\\":
            escaped = True
            out.append(ch)
            index += 1
            continue

        if context is StringContext.DOUBLE_QUOTED:
            context = _advance_string_context(context, ch)
            out.append(ch)
        elif context is StringContext.SINGLE_QUOTED:
            if ch == "'":
                context = StringContext.NONE
                out.append('"')
            elif ch == '"':
                out.append('\\"')
            else:
                out.append(ch)
        elif ch == "'":
            context = StringContext.SINGLE_QUOTED
            out.append('"')
        elif ch == '"':
            context = StringContext.DOUBLE_QUOTED
            out.append(ch)
        elif ch == ",":
            if _next_significant_char(js, index + 1) not in ("}", "]"):
                out.append(ch)
        elif _is_identifier_start(ch) and _last_significant_char(out) in ("{", ","):
            end = index
            while end < length and _is_identifier_char(js[end]):
                end += 1
            identifier = js[index:end]
            if _next_significant_char(js, end) == ":":
                out.append(f'"{identifier}"')
            else:
                out.append(identifier)
            index = end
            continue
        else:
            out.append(ch)

        index += 1

    return "".join(out)


class GtmDataLayerExtractor:
    """
    Google Tag Manager dataLayer extractor.

    Price sources, in priority order:
    1. GA4 events (view_item > add_to_cart > purchase > begin_checkout):
       items[0].price, then the top-level value
    2. Pushes with items but no event name
    3. Enhanced Ecommerce ecommerce.detail.products[0].price
    4. Legacy ecomm_totalvalue

    Availability is inferred from add-to-cart button text in the raw HTML.
    """

    name = "gtm_datalayer"

    def __init__(self):
        self.logger = LayerLogger("gtm_datalayer_extractor")

    async def extract(self, html: str, url: str) -> ScrapingResult:
        return self.parse(html, url)

    def parse(self, html: str, url: Optional[str] = None) -> ScrapingResult:
        """
        Extract price and inferred availability from dataLayer pushes.

        Raises:
            ScrapingError: No pushes, none parseable, or none carrying ecommerce data
        """
        push_strings = self.extract_push_strings(html)
        if not push_strings:
            raise ScrapingError("No dataLayer.push() calls found")

        pushes = self._parse_pushes(push_strings)
        if not pushes:
            raise ScrapingError("No parseable dataLayer.push() objects found")

        price = (
            self._try_ga4(pushes, url)
            or self._try_enhanced_ecommerce(pushes, url)
            or self._try_legacy(pushes, url)
        )
        if price is None:
            raise ScrapingError("No ecommerce data found in dataLayer pushes")

        status = self.infer_availability(html)
        self.logger.log_extraction(
            source=self.name,
            status=status.value,
            price_minor_units=price.price_minor_units,
            price_currency=price.price_currency,
            url=url,
            pushes_parsed=len(pushes),
        )
        return ScrapingResult(
            status=status,
            raw_availability=f"gtm_datalayer:{status.value}",
            price=price,
        )

    def extract_push_strings(self, html: str) -> List[str]:
        """Raw object literals passed to dataLayer.push() in inline scripts."""
        soup = BeautifulSoup(html, "lxml")
        results = []

        for script in soup.select("script:not([src])"):
            text = script.string or script.get_text()
            if not text:
                continue

            search_from = 0
            while True:
                push_pos = text.find(PUSH_CALL, search_from)
                if push_pos == -1:
                    break
                brace_pos = text.find("{", push_pos + len(PUSH_CALL))
                if brace_pos == -1:
                    break

                obj = extract_balanced_braces(text[brace_pos:])
                if obj:
                    results.append(obj)
                search_from = brace_pos + 1

        return results

    def _parse_pushes(self, push_strings: List[str]) -> List[Dict[str, Any]]:
        pushes = []
        for raw in push_strings:
            try:
                parsed = json.loads(normalize_js_to_json(raw), parse_float=Decimal)
            except json.JSONDecodeError:
                self.logger.log_debug("datalayer_push_unparseable", snippet=raw[:80])
                continue
            if isinstance(parsed, dict):
                pushes.append(parsed)
        return pushes

    # =========================================================================
    # PRICE STRATEGIES
    # =========================================================================

    def _try_ga4(self, pushes: List[Dict[str, Any]], url: Optional[str]) -> Optional[PriceInfo]:
        for event_name in GA4_EVENT_PRIORITY:
            for push in pushes:
                if push.get("event") != event_name:
                    continue
                currency = push.get("currency")
                price = self._price_from_value(_first_item_price(push), currency, url)
                if price:
                    return price
                price = self._price_from_value(push.get("value"), currency, url)
                if price:
                    return price

        for push in pushes:
            if push.get("event") is not None:
                continue
            price = self._price_from_value(_first_item_price(push), push.get("currency"), url)
            if price:
                return price

        return None

    def _try_enhanced_ecommerce(
        self, pushes: List[Dict[str, Any]], url: Optional[str]
    ) -> Optional[PriceInfo]:
        for push in pushes:
            ecommerce = push.get("ecommerce")
            if not isinstance(ecommerce, dict):
                continue

            detail = ecommerce.get("detail")
            products = detail.get("products") if isinstance(detail, dict) else None
            if not isinstance(products, list) or not products:
                continue
            product = products[0]
            if not isinstance(product, dict):
                continue

            currency = ecommerce.get("currencyCode") or push.get("currency")
            price = self._price_from_value(product.get("price"), currency, url)
            if price:
                return price

        return None

    def _try_legacy(self, pushes: List[Dict[str, Any]], url: Optional[str]) -> Optional[PriceInfo]:
        for push in pushes:
            price = self._price_from_value(push.get("ecomm_totalvalue"), push.get("currency"), url)
            if price:
                return price
        return None

    def _price_from_value(
        self, value: Any, currency: Any, url: Optional[str]
    ) -> Optional[PriceInfo]:
        """A price counts only when it is a non-empty string or a number that parses."""
        raw = raw_price_text(value)
        if not raw:
            return None

        page_currency = currency if isinstance(currency, str) else None
        resolved = resolve_currency(url, page_currency)
        minor_units = parse_price(raw, resolved)
        if minor_units is None:
            return None

        return PriceInfo(
            price_minor_units=minor_units,
            price_currency=resolved,
            raw_price=raw,
        )

    def infer_availability(self, html: str) -> AvailabilityStatus:
        """InStock when add-to-cart text is present, otherwise Unknown."""
        lower = html.lower()
        for indicator in ADD_TO_CART_INDICATORS:
            if indicator in lower:
                return AvailabilityStatus.IN_STOCK
        return AvailabilityStatus.UNKNOWN


def _first_item_price(push: Dict[str, Any]) -> Any:
    items = push.get("items")
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0].get("price")
    return None
