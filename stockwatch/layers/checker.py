"""
Check Layer for the Stock Watch availability checker.
Ties fetching and extraction together for one product URL, and sweeps many
URLs with pacing so a single failure never aborts the batch.
"""
import asyncio
from typing import Callable, List, Optional

from stockwatch.config import config
from stockwatch.errors import InternalError, ScraperError
from stockwatch.layers.extraction import ExtractionPipeline
from stockwatch.layers.fetch import FetchOrchestrator
from stockwatch.models.availability import BulkCheckSummary, CheckResult, ScrapingResult
from stockwatch.utils.logger import LayerLogger, set_trace_id

ProgressCallback = Callable[[int, int, CheckResult], None]


class AvailabilityChecker:
    """
    Runs availability checks.

    A single check is stateless: fetch HTML through the tier chain, then
    hand it to the extraction pipeline.
    """

    def __init__(
        self,
        fetcher: Optional[FetchOrchestrator] = None,
        pipeline: Optional[ExtractionPipeline] = None,
        delay_between_checks_ms: Optional[int] = None,
    ):
        self.fetcher = fetcher or FetchOrchestrator()
        self.pipeline = pipeline or ExtractionPipeline()
        self.delay_between_checks_ms = (
            delay_between_checks_ms
            if delay_between_checks_ms is not None
            else config.RATE_LIMIT_BETWEEN_CHECKS_MS
        )
        self.logger = LayerLogger("checker")

    async def check(
        self,
        url: str,
        enable_headless: Optional[bool] = None,
        allow_manual_verification: Optional[bool] = None,
    ) -> ScrapingResult:
        """
        Check one URL, raising on failure.

        Args:
            url: Product page URL
            enable_headless: Override for the configured headless default
            allow_manual_verification: Override for the configured manual default

        Returns:
            ScrapingResult

        Raises:
            ScraperError: Fetch or extraction failed
        """
        result, _ = await self._check(url, enable_headless, allow_manual_verification)
        return result

    async def check_product(
        self,
        url: str,
        enable_headless: Optional[bool] = None,
        allow_manual_verification: Optional[bool] = None,
    ) -> CheckResult:
        """Check one URL, recording a failure in the result instead of raising."""
        try:
            result, tier = await self._check(url, enable_headless, allow_manual_verification)
        except ScraperError as e:
            return CheckResult(url=url, error=str(e), error_code=e.code)

        return CheckResult(
            url=url,
            status=result.status,
            raw_availability=result.raw_availability,
            price=result.price,
            tier=tier,
        )

    async def _check(self, url, enable_headless, allow_manual_verification):
        if enable_headless is None:
            enable_headless = config.ENABLE_HEADLESS_BROWSER
        if allow_manual_verification is None:
            allow_manual_verification = config.ALLOW_MANUAL_VERIFICATION

        self.logger.log_action(
            "availability_check",
            "started",
            url=url,
            enable_headless=enable_headless,
            allow_manual_verification=allow_manual_verification,
        )

        outcome = await self.fetcher.fetch_with_outcome(
            url, enable_headless, allow_manual_verification
        )
        result = await self.pipeline.extract(outcome.html, url)

        self.logger.log_action(
            "availability_check",
            "completed",
            url=url,
            tier=outcome.tier.value,
            status=result.status.value,
            price_minor_units=result.price.price_minor_units,
            price_currency=result.price.price_currency,
        )
        return result, outcome.tier

    async def check_all(
        self,
        urls: List[str],
        enable_headless: Optional[bool] = None,
        allow_manual_verification: Optional[bool] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BulkCheckSummary:
        """
        Check many URLs one after another with a pause between requests.

        Every URL gets a result; failures are recorded, never propagated.
        """
        trace_id = set_trace_id()
        total = len(urls)
        self.logger.log_action("bulk_check", "started", total=total, trace_id=trace_id)

        results: List[CheckResult] = []
        for index, url in enumerate(urls):
            if index > 0 and self.delay_between_checks_ms > 0:
                await asyncio.sleep(self.delay_between_checks_ms / 1000)

            try:
                result = await self.check_product(url, enable_headless, allow_manual_verification)
            except Exception as e:
                error = InternalError(f"Unexpected failure: {e}")
                self.logger.log_error(str(e), error_type="unexpected", url=url)
                result = CheckResult(url=url, error=str(error), error_code=error.code)

            results.append(result)
            if on_progress is not None:
                on_progress(index + 1, total, result)

        successful = sum(1 for r in results if r.succeeded)
        summary = BulkCheckSummary(
            total=total,
            successful=successful,
            failed=total - successful,
            results=results,
        )
        self.logger.log_action(
            "bulk_check",
            "completed",
            total=summary.total,
            successful=summary.successful,
            failed=summary.failed,
        )
        return summary
