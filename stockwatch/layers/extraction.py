"""
Extraction Layer for the Stock Watch availability checker.
Runs the extractors over fetched HTML in a fixed priority order; the first
success wins.
"""
from typing import List, Optional, Tuple

from stockwatch.adapters.gtm_datalayer import GtmDataLayerExtractor
from stockwatch.adapters.schema_org import SchemaOrgExtractor
from stockwatch.adapters.shopify import ShopifyAdapter
from stockwatch.adapters.site_specific import SiteAdapterRegistry, default_registry
from stockwatch.errors import ScraperError, ScrapingError
from stockwatch.models.availability import ScrapingResult
from stockwatch.utils.logger import LayerLogger

NO_DATA_MESSAGE = (
    "No availability information found. "
    "Site does not use Schema.org or a supported data format."
)


class ExtractionPipeline:
    """
    Extraction pipeline.

    Order:
    1. Schema.org JSON-LD
    2. GTM dataLayer
    3. Shopify storefront APIs (Shopify-looking product URLs only)
    4. Registered site adapters whose URL predicate matches
    """

    def __init__(
        self,
        schema_org: Optional[SchemaOrgExtractor] = None,
        gtm_datalayer: Optional[GtmDataLayerExtractor] = None,
        shopify: Optional[ShopifyAdapter] = None,
        site_adapters: Optional[SiteAdapterRegistry] = None,
    ):
        self.schema_org = schema_org or SchemaOrgExtractor()
        self.gtm_datalayer = gtm_datalayer or GtmDataLayerExtractor()
        self.shopify = shopify or ShopifyAdapter()
        self.site_adapters = site_adapters if site_adapters is not None else default_registry()
        self.logger = LayerLogger("extraction")

    async def extract(self, html: str, url: str) -> ScrapingResult:
        """
        Extract availability and price from a fetched page.

        Args:
            html: Page HTML
            url: Page URL (drives variant selection, currency and adapter choice)

        Returns:
            ScrapingResult from the first extractor that succeeds

        Raises:
            ScrapingError: Every applicable extractor failed
        """
        self.logger.log_action("extraction", "started", url=url, content_length=len(html))
        failures: List[Tuple[str, str]] = []

        result = await self._attempt(self.schema_org.name, self.schema_org.extract, html, url, failures)
        if result:
            return result

        result = await self._attempt(
            self.gtm_datalayer.name, self.gtm_datalayer.extract, html, url, failures
        )
        if result:
            return result

        if self.shopify.matches_url(url):
            result = await self._attempt(self.shopify.name, self.shopify.extract, html, url, failures)
            if result:
                return result
        else:
            self.logger.log_decision(
                decision="skip_shopify",
                reason="URL is not a Shopify product URL",
                url=url,
            )

        for adapter in self.site_adapters.matching(url):
            result = await self._attempt(adapter.name, _as_async(adapter.parse), html, url, failures)
            if result:
                return result

        self.logger.log_error(
            NO_DATA_MESSAGE,
            error_type="extraction_exhausted",
            url=url,
            attempts=[f"{name}: {reason}" for name, reason in failures],
        )
        raise ScrapingError(NO_DATA_MESSAGE)

    async def _attempt(self, name, extract, html, url, failures) -> Optional[ScrapingResult]:
        try:
            result = await extract(html, url)
        except ScraperError as e:
            failures.append((name, e.message))
            self.logger.log_fallback(
                from_source=name,
                to_source="next_extractor",
                reason=e.message,
                url=url,
                error_kind=e.kind.value,
            )
            return None

        self.logger.log_decision(
            decision="extractor_succeeded",
            reason=f"{name} returned availability",
            url=url,
            source=name,
            status=result.status.value,
        )
        return result


def _as_async(parse):
    async def run(html: str, url: str) -> ScrapingResult:
        return parse(html, url)
    return run
