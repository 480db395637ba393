"""
Stock Watch - Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- Sample Schema.org product pages
- Async test support via pytest-asyncio
"""
import pytest

from tests.helpers import json_ld_page


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def in_stock_product_page() -> str:
    """Simple Product page, in stock at $789.00 USD."""
    return json_ld_page({
        "@context": "https://schema.org",
        "@type": "Product",
        "name": "Espresso Machine",
        "offers": {
            "@type": "Offer",
            "price": "789.00",
            "priceCurrency": "USD",
            "availability": "https://schema.org/InStock",
        },
    })


@pytest.fixture
def product_group_page() -> str:
    """ProductGroup with two variants addressed by ?variant= in @id."""
    return json_ld_page({
        "@context": "https://schema.org",
        "@type": "ProductGroup",
        "name": "T-Shirt",
        "hasVariant": [
            {
                "@type": "Product",
                "@id": "/products/tee?variant=111#variant",
                "offers": {
                    "price": "20.00",
                    "priceCurrency": "USD",
                    "availability": "https://schema.org/InStock",
                },
            },
            {
                "@type": "Product",
                "@id": "/products/tee?variant=222#variant",
                "offers": {
                    "price": "22.00",
                    "priceCurrency": "USD",
                    "availability": "https://schema.org/OutOfStock",
                },
            },
        ],
    })
