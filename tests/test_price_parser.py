"""
Tests for price parsing and currency resolution
(stockwatch/utils/price_parser.py, stockwatch/utils/currency.py).

Covers:
- Minor-unit conversion per currency exponent
- Separator stripping and unparsable input
- Currency precedence: path locale > domain TLD > page currency
"""
from decimal import Decimal

import pytest

from stockwatch.utils.currency import (
    currency_exponent,
    currency_from_domain,
    currency_from_path_locale,
    currency_multiplier,
    has_path_locale,
)
from stockwatch.utils.price_parser import (
    build_price_info,
    parse_price,
    raw_price_text,
    resolve_currency,
)


# ---------------------------------------------------------------------------
# Currency metadata
# ---------------------------------------------------------------------------


class TestCurrencyMetadata:
    """Minor-unit exponents and multipliers."""

    @pytest.mark.parametrize(
        "code, exponent",
        [("USD", 2), ("AUD", 2), ("JPY", 0), ("krw", 0), ("KWD", 3), ("BHD", 3), ("XYZ", 2)],
    )
    def test_exponent(self, code, exponent):
        assert currency_exponent(code) == exponent

    def test_multiplier_defaults_to_hundred_without_currency(self):
        assert currency_multiplier(None) == 100
        assert currency_multiplier("") == 100

    def test_multiplier_follows_exponent(self):
        assert currency_multiplier("JPY") == 1
        assert currency_multiplier("KWD") == 1000


# ---------------------------------------------------------------------------
# parse_price
# ---------------------------------------------------------------------------


class TestParsePrice:
    """Raw price text to minor units."""

    def test_usd_two_decimals(self):
        assert parse_price("789.00", "USD") == 78900

    def test_jpy_has_no_minor_units(self):
        assert parse_price("1500", "JPY") == 1500

    def test_kwd_three_decimals(self):
        assert parse_price("29.990", "KWD") == 29990

    def test_thousands_separator_and_symbol_stripped(self):
        assert parse_price("$1,234.56", "USD") == 123456

    def test_unknown_currency_uses_hundred(self):
        assert parse_price("19.99", None) == 1999

    def test_exact_decimal_math(self):
        # 0.29 * 100 is 28.999999999999996 in binary floating point
        assert parse_price("0.29", "USD") == 29

    @pytest.mark.parametrize("raw", [None, "", "free", "N/A"])
    def test_empty_or_non_numeric_is_none(self, raw):
        assert parse_price(raw, "USD") is None

    def test_multiple_dots_is_none(self):
        assert parse_price("1.2.3", "USD") is None

    def test_too_many_digits_is_none(self):
        assert parse_price("1" * 30, "USD") is None

    def test_beyond_64_bit_range_is_none(self):
        assert parse_price("99999999999999999999", "USD") is None

    def test_largest_64_bit_value_fits(self):
        assert parse_price(str(2 ** 63 - 1), "JPY") == 2 ** 63 - 1


# ---------------------------------------------------------------------------
# Currency resolution
# ---------------------------------------------------------------------------


class TestResolveCurrency:
    """Precedence: path locale, then domain TLD, then page currency."""

    def test_path_locale_beats_page_currency(self):
        url = "https://store.example.com/en-au/products/kettle"
        assert resolve_currency(url, "GBP") == "AUD"

    def test_domain_beats_page_currency(self):
        assert resolve_currency("https://www.shop.com.au/p/1", "USD") == "AUD"

    def test_longest_domain_suffix_wins(self):
        assert currency_from_domain("https://shop.co.uk/p") == "GBP"
        assert currency_from_domain("https://shop.co.jp/p") == "JPY"

    def test_generic_com_has_no_currency(self):
        assert currency_from_domain("https://shop.com/p") is None

    def test_page_currency_used_for_generic_domain(self):
        assert resolve_currency("https://shop.com/p", "usd") == "USD"

    def test_unresolved(self):
        assert resolve_currency("https://shop.com/p", None) is None
        assert resolve_currency(None, "  ") is None

    def test_path_locale_detection(self):
        assert currency_from_path_locale("https://x.com/EN-GB/products/a") == "GBP"
        assert has_path_locale("https://x.com/ja-jp/item")
        assert not has_path_locale("https://x.com/products/a")


# ---------------------------------------------------------------------------
# build_price_info
# ---------------------------------------------------------------------------


class TestBuildPriceInfo:
    """Full PriceInfo assembly."""

    def test_multiplier_uses_resolved_currency(self):
        # Page says USD, but the store is Japanese: JPY has no minor units
        price = build_price_info("1500", "USD", "https://shop.co.jp/item/1")

        assert price.price_currency == "JPY"
        assert price.price_minor_units == 1500
        assert price.raw_price == "1500"

    def test_decimal_value_keeps_original_digits(self):
        price = build_price_info(Decimal("25.00"), "USD", "https://shop.com/p")

        assert price.raw_price == "25.00"
        assert price.price_minor_units == 2500

    def test_unparsable_price_keeps_raw_text(self):
        price = build_price_info("Call us", "USD", "https://shop.com/p")

        assert price.raw_price == "Call us"
        assert price.price_minor_units is None
        assert price.price_currency == "USD"

    def test_missing_price(self):
        price = build_price_info(None, "USD", "https://shop.com/p")

        assert price.raw_price is None
        assert price.price_minor_units is None

    @pytest.mark.parametrize("value", [True, None, {"amount": 1}, ["1"]])
    def test_raw_price_text_rejects_non_prices(self, value):
        assert raw_price_text(value) is None
