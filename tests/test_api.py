"""
Tests for the HTTP surface (stockwatch/main.py).

Covers:
- Health endpoint
- Single and bulk checks with the checker stubbed out
- Extraction from supplied HTML
- Error kind to HTTP status mapping
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from stockwatch import main
from stockwatch.errors import (
    BotProtectionError,
    HttpStatusError,
    InternalError,
    NetworkError,
    ScrapingError,
    ValidationError,
)
from stockwatch.models.availability import (
    AvailabilityStatus,
    BulkCheckSummary,
    CheckResult,
    PriceInfo,
    ScrapingResult,
)


URL = "https://shop.com/products/kettle"


@pytest.fixture
def checker(monkeypatch) -> MagicMock:
    """Replace the module-level checker with a stub."""
    stub = MagicMock()
    stub.check = AsyncMock()
    stub.check_all = AsyncMock()
    monkeypatch.setattr(main, "checker", stub)
    return stub


@pytest.fixture
def client() -> TestClient:
    return TestClient(main.app)


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCheckEndpoint:
    """POST /api/check."""

    def test_success(self, client, checker):
        checker.check.return_value = ScrapingResult(
            status=AvailabilityStatus.IN_STOCK,
            raw_availability="https://schema.org/InStock",
            price=PriceInfo(price_minor_units=78900, price_currency="USD", raw_price="789.00"),
        )

        response = client.post(
            "/api/check", json={"url": URL, "enable_headless": False}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "in_stock"
        assert body["price"] == {
            "price_minor_units": 78900,
            "price_currency": "USD",
            "raw_price": "789.00",
        }
        assert body["trace_id"]
        checker.check.assert_awaited_once_with(
            URL, enable_headless=False, allow_manual_verification=None
        )

    @pytest.mark.parametrize(
        "error, status_code, code",
        [
            (ValidationError("Invalid URL: empty host"), 400, "VALIDATION_ERROR"),
            (ScrapingError("No availability information found."), 422, "SCRAPING_ERROR"),
            (BotProtectionError("This site has bot protection."), 422, "BOT_PROTECTION"),
            (HttpStatusError(404, URL), 502, "HTTP_STATUS_ERROR"),
            (NetworkError("timed out"), 502, "HTTP_ERROR"),
            (InternalError("Headless task failed"), 500, "INTERNAL_ERROR"),
        ],
    )
    def test_error_mapping(self, client, checker, error, status_code, code):
        checker.check.side_effect = error

        response = client.post("/api/check", json={"url": URL})

        assert response.status_code == status_code
        body = response.json()
        assert body["error"]["code"] == code
        assert body["error"]["message"] == str(error)
        assert body["trace_id"]

    def test_http_status_error_details(self, client, checker):
        checker.check.side_effect = HttpStatusError(500, URL)

        body = client.post("/api/check", json={"url": URL}).json()

        assert body["error"]["status"] == 500
        assert body["error"]["url"] == URL


class TestBulkEndpoint:
    """POST /api/check/bulk."""

    def test_summary(self, client, checker):
        checker.check_all.return_value = BulkCheckSummary(
            total=2,
            successful=1,
            failed=1,
            results=[
                CheckResult(url=URL, status=AvailabilityStatus.OUT_OF_STOCK),
                CheckResult(url=URL + "-2", error="HTTP 404", error_code="HTTP_STATUS_ERROR"),
            ],
        )

        response = client.post("/api/check/bulk", json={"urls": [URL, URL + "-2"]})

        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["failed"] == 1
        assert summary["results"][0]["status"] == "out_of_stock"
        assert summary["results"][1]["error_code"] == "HTTP_STATUS_ERROR"

    def test_requires_urls(self, client, checker):
        response = client.post("/api/check/bulk", json={"urls": []})

        assert response.status_code == 422
        checker.check_all.assert_not_awaited()


class TestExtractEndpoint:
    """POST /api/extract runs the real pipeline on supplied HTML."""

    def test_extract_json_ld(self, client, in_stock_product_page):
        response = client.post(
            "/api/extract", json={"url": "https://shop.com/p/1", "html": in_stock_product_page}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "in_stock"
        assert body["price"]["price_minor_units"] == 78900

    def test_extract_without_data(self, client):
        response = client.post(
            "/api/extract", json={"url": "https://shop.com/p/1", "html": "<html></html>"}
        )

        assert response.status_code == 422
        assert response.json()["error"]["kind"] == "scraping"
