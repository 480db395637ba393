"""
Tests for the Schema.org JSON-LD extractor (stockwatch/adapters/schema_org.py).

Covers:
- Product with single and array offers
- ProductGroup variant selection via ?variant=
- @graph and top-level arrays
- Invalid blocks skipped, missing data errors
"""
import pytest

from stockwatch.adapters.schema_org import SchemaOrgExtractor, extract_variant_id
from stockwatch.errors import ScrapingError
from stockwatch.models.availability import AvailabilityStatus
from tests.helpers import json_ld_page


URL = "https://shop.com/products/item"


class TestProduct:
    """Direct Product blocks."""

    def setup_method(self):
        self.extractor = SchemaOrgExtractor()

    def test_single_offer(self, in_stock_product_page):
        result = self.extractor.parse(in_stock_product_page, URL)

        assert result.status is AvailabilityStatus.IN_STOCK
        assert result.raw_availability == "https://schema.org/InStock"
        assert result.price.price_minor_units == 78900
        assert result.price.price_currency == "USD"
        assert result.price.raw_price == "789.00"

    def test_first_offer_with_availability_in_array(self):
        html = json_ld_page({
            "@type": "Product",
            "offers": [
                {"price": "5.00"},
                {"price": "7.50", "priceCurrency": "EUR", "availability": "OutOfStock"},
            ],
        })

        result = self.extractor.parse(html, URL)

        assert result.status is AvailabilityStatus.OUT_OF_STOCK
        assert result.price.price_minor_units == 750
        assert result.price.price_currency == "EUR"

    def test_numeric_price(self):
        html = json_ld_page({
            "@type": "Product",
            "offers": {"price": 12.5, "priceCurrency": "USD", "availability": "InStock"},
        })

        result = self.extractor.parse(html, URL)

        assert result.price.raw_price == "12.5"
        assert result.price.price_minor_units == 1250

    def test_type_list(self):
        html = json_ld_page({
            "@type": ["Product", "Thing"],
            "offers": {"availability": "https://schema.org/PreOrder"},
        })

        result = self.extractor.parse(html, URL)

        assert result.status is AvailabilityStatus.BACK_ORDER
        assert result.price.raw_price is None


class TestProductGroup:
    """Variant selection."""

    def setup_method(self):
        self.extractor = SchemaOrgExtractor()

    def test_matches_variant_from_url(self, product_group_page):
        result = self.extractor.parse(product_group_page, URL + "?variant=222")

        assert result.status is AvailabilityStatus.OUT_OF_STOCK
        assert result.price.raw_price == "22.00"

    def test_unmatched_variant_falls_back_to_first(self, product_group_page):
        result = self.extractor.parse(product_group_page, URL + "?variant=999")

        assert result.status is AvailabilityStatus.IN_STOCK
        assert result.price.raw_price == "20.00"

    def test_no_variant_uses_first(self, product_group_page):
        result = self.extractor.parse(product_group_page, URL)

        assert result.status is AvailabilityStatus.IN_STOCK

    def test_extract_variant_id(self):
        assert extract_variant_id("https://x.com/p?variant=42&size=m") == "42"
        assert extract_variant_id("https://x.com/p") is None


class TestContainers:
    """@graph and top-level arrays, multiple blocks."""

    def setup_method(self):
        self.extractor = SchemaOrgExtractor()

    def test_graph(self):
        html = json_ld_page({
            "@context": "https://schema.org",
            "@graph": [
                {"@type": "WebPage", "name": "Page"},
                {"@type": "Product", "offers": {"availability": "InStock", "price": "3.00"}},
            ],
        })

        assert self.extractor.parse(html, URL).status is AvailabilityStatus.IN_STOCK

    def test_top_level_array(self):
        html = json_ld_page([
            {"@type": "BreadcrumbList"},
            {"@type": "Product", "offers": {"availability": "SoldOut"}},
        ])

        assert self.extractor.parse(html, URL).status is AvailabilityStatus.OUT_OF_STOCK

    def test_later_block_used_when_first_lacks_availability(self):
        html = json_ld_page(
            {"@type": "Organization", "name": "Shop"},
            {"@type": "Product", "offers": {"availability": "InStock"}},
        )

        assert self.extractor.parse(html, URL).status is AvailabilityStatus.IN_STOCK

    def test_invalid_block_skipped(self):
        valid = json_ld_page({"@type": "Product", "offers": {"availability": "InStock"}})
        html = valid.replace(
            "<head>", '<head><script type="application/ld+json">{not json</script>'
        )

        assert self.extractor.parse(html, URL).status is AvailabilityStatus.IN_STOCK


class TestErrors:
    """Pages without usable JSON-LD."""

    def setup_method(self):
        self.extractor = SchemaOrgExtractor()

    def test_no_json_ld(self):
        with pytest.raises(ScrapingError, match="No JSON-LD structured data found"):
            self.extractor.parse("<html><body>Hi</body></html>", URL)

    def test_no_availability(self):
        html = json_ld_page({"@type": "Product", "offers": {"price": "1.00"}})

        with pytest.raises(ScrapingError, match="No availability information found in JSON-LD"):
            self.extractor.parse(html, URL)

    @pytest.mark.asyncio
    async def test_async_extract(self, in_stock_product_page):
        result = await self.extractor.extract(in_stock_product_page, URL)

        assert result.status is AvailabilityStatus.IN_STOCK
