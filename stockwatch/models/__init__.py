"""Models package initialization."""
from stockwatch.models.availability import (
    AvailabilityStatus,
    PriceInfo,
    ScrapingResult,
    FetchTier,
    FetchOutcome,
    CheckResult,
    BulkCheckSummary,
)
from stockwatch.models.session import VerifiedSession

__all__ = [
    "AvailabilityStatus",
    "PriceInfo",
    "ScrapingResult",
    "FetchTier",
    "FetchOutcome",
    "CheckResult",
    "BulkCheckSummary",
    "VerifiedSession",
]
