"""
Availability data models for the Stock Watch availability checker.
These models represent the result of a single check, regardless of which
extractor or fetch tier produced it.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class AvailabilityStatus(str, Enum):
    """Canonical stock status. Every normalization path yields one of these."""
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    BACK_ORDER = "back_order"
    UNKNOWN = "unknown"

    @classmethod
    def from_str(cls, value: str) -> "AvailabilityStatus":
        """Parse a stored status value; anything unrecognised is UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class PriceInfo(BaseModel):
    """
    Price observed on a page.

    price_minor_units is only set when raw_price parsed successfully.
    price_currency may be None even when a price exists.
    """
    model_config = ConfigDict(frozen=True)

    price_minor_units: Optional[int] = None
    price_currency: Optional[str] = None
    raw_price: Optional[str] = None

    @classmethod
    def none(cls) -> "PriceInfo":
        return cls()


class ScrapingResult(BaseModel):
    """Outcome of one successful extraction attempt."""
    model_config = ConfigDict(frozen=True)

    status: AvailabilityStatus
    raw_availability: Optional[str] = None
    price: PriceInfo = PriceInfo()


class FetchTier(str, Enum):
    """Position in the fetch fallback chain. Strictly increasing per check."""
    HTTP = "http"
    HEADLESS = "headless"
    MANUAL_VERIFICATION = "manual_verification"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    def next_tier(self) -> Optional["FetchTier"]:
        """The tier after this one, or None at the end of the chain."""
        position = self.rank + 1
        if position < len(_TIER_ORDER):
            return _TIER_ORDER[position]
        return None


_TIER_ORDER = [FetchTier.HTTP, FetchTier.HEADLESS, FetchTier.MANUAL_VERIFICATION]


@dataclass
class FetchOutcome:
    """HTML acquired by the orchestrator and the tier that produced it."""
    html: str
    tier: FetchTier
    tiers_attempted: List[FetchTier] = field(default_factory=list)


class CheckResult(BaseModel):
    """Result of checking one product URL. Failures are recorded, not raised."""
    url: str
    status: AvailabilityStatus = AvailabilityStatus.UNKNOWN
    raw_availability: Optional[str] = None
    price: PriceInfo = PriceInfo()
    tier: Optional[FetchTier] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class BulkCheckSummary(BaseModel):
    """Totals and per-product results of a bulk sweep."""
    total: int
    successful: int
    failed: int
    results: List[CheckResult]
