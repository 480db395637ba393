"""
Schema.org JSON-LD Extractor for the Stock Watch availability checker.
Reads availability and price from <script type="application/ld+json"> blocks.
"""
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup

from stockwatch.errors import ScrapingError
from stockwatch.models.availability import ScrapingResult
from stockwatch.utils.availability import normalize_availability
from stockwatch.utils.logger import LayerLogger
from stockwatch.utils.price_parser import build_price_info

# Relative variant @id values are resolved against a throwaway base
_RELATIVE_ID_BASE = "http://localhost"


def extract_variant_id(url: str) -> Optional[str]:
    """Value of the ``variant`` query parameter, if any."""
    try:
        values = parse_qs(urlparse(url).query).get("variant")
    except ValueError:
        return None
    return values[0] if values else None


def _has_schema_type(node: Any, expected_type: str) -> bool:
    """@type may be a string or a list of strings."""
    if not isinstance(node, dict):
        return False
    schema_type = node.get("@type")
    if isinstance(schema_type, str):
        return schema_type == expected_type
    if isinstance(schema_type, list):
        return expected_type in schema_type
    return False


class SchemaOrgExtractor:
    """
    JSON-LD extractor.

    For each parsed block, tries in order:
    1. Direct Product with offers
    2. ProductGroup with hasVariant (variant matched by the URL's ``variant`` param)
    3. Items of a @graph array
    4. Items of a top-level array
    """

    name = "schema_org"

    def __init__(self):
        self.logger = LayerLogger("schema_org_extractor")

    async def extract(self, html: str, url: str) -> ScrapingResult:
        return self.parse(html, url)

    def parse(self, html: str, url: str) -> ScrapingResult:
        """
        Extract availability and price from the page's JSON-LD.

        Raises:
            ScrapingError: No block exposes availability
        """
        blocks = self.extract_json_ld_blocks(html)
        if not blocks:
            raise ScrapingError("No JSON-LD structured data found")

        variant_id = extract_variant_id(url)

        for block in blocks:
            found = self.find_offer(block, variant_id)
            if found is None:
                continue

            raw_availability, price_fields = found
            price = build_price_info(price_fields[0], price_fields[1], url)
            status = normalize_availability(raw_availability)

            self.logger.log_extraction(
                source=self.name,
                status=status.value,
                price_minor_units=price.price_minor_units,
                price_currency=price.price_currency,
                url=url,
                variant_id=variant_id,
            )
            return ScrapingResult(
                status=status,
                raw_availability=raw_availability,
                price=price,
            )

        raise ScrapingError("No availability information found in JSON-LD")

    def extract_json_ld_blocks(self, html: str) -> List[Any]:
        """Parse every JSON-LD script. Invalid JSON is skipped, not fatal."""
        soup = BeautifulSoup(html, "lxml")
        blocks = []
        skipped = 0

        for script in soup.find_all("script", type="application/ld+json"):
            text = script.string or script.get_text()
            if not text or not text.strip():
                continue
            try:
                blocks.append(json.loads(text, parse_float=Decimal))
            except json.JSONDecodeError:
                skipped += 1

        self.logger.log_action(
            "jsonld_parse",
            "completed",
            blocks_found=len(blocks),
            blocks_skipped=skipped,
        )
        return blocks

    # =========================================================================
    # STRUCTURE WALKING
    # Each helper returns (raw_availability, (raw_price, price_currency))
    # =========================================================================

    def find_offer(self, block: Any, variant_id: Optional[str]) -> Optional[Tuple[str, Tuple[Any, Any]]]:
        if _has_schema_type(block, "Product"):
            found = self._offer_from_product(block)
            if found:
                return found

        if _has_schema_type(block, "ProductGroup"):
            found = self._offer_from_product_group(block, variant_id)
            if found:
                return found

        if isinstance(block, dict) and isinstance(block.get("@graph"), list):
            found = self._offer_from_items(block["@graph"], variant_id)
            if found:
                return found

        if isinstance(block, list):
            return self._offer_from_items(block, variant_id)

        return None

    def _offer_from_items(self, items: List[Any], variant_id: Optional[str]):
        for item in items:
            if _has_schema_type(item, "Product"):
                found = self._offer_from_product(item)
                if found:
                    return found
            if _has_schema_type(item, "ProductGroup"):
                found = self._offer_from_product_group(item, variant_id)
                if found:
                    return found
        return None

    def _offer_from_product_group(self, group: Dict[str, Any], variant_id: Optional[str]):
        variants = group.get("hasVariant")
        if not isinstance(variants, list):
            return None

        if variant_id:
            matched = self._find_variant_by_id(variants, variant_id)
            if matched:
                return matched
            self.logger.log_fallback(
                from_source="variant_match",
                to_source="first_available_variant",
                reason="No hasVariant entry matches the URL variant",
                variant_id=variant_id,
            )

        for variant in variants:
            found = self._offer_from_product(variant)
            if found:
                return found
        return None

    def _find_variant_by_id(self, variants: List[Any], variant_id: str):
        for variant in variants:
            if not isinstance(variant, dict):
                continue
            variant_ref = variant.get("@id")
            if not isinstance(variant_ref, str):
                continue

            resolved = urljoin(_RELATIVE_ID_BASE, variant_ref)
            if extract_variant_id(resolved) != variant_id:
                continue

            found = self._offer_from_product(variant)
            if found:
                return found
        return None

    def _offer_from_product(self, product: Any):
        """Single offers dict with availability, else first array offer with it."""
        if not isinstance(product, dict):
            return None
        offers = product.get("offers")

        if isinstance(offers, dict):
            availability = offers.get("availability")
            if isinstance(availability, str):
                return availability, (offers.get("price"), offers.get("priceCurrency"))

        if isinstance(offers, list):
            for offer in offers:
                if not isinstance(offer, dict):
                    continue
                availability = offer.get("availability")
                if isinstance(availability, str):
                    return availability, (offer.get("price"), offer.get("priceCurrency"))

        return None
