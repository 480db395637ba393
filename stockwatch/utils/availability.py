"""
Availability normalization for the Stock Watch availability checker.
Maps raw, site-specific availability tokens to the canonical status.
"""
import re
from typing import Optional

from stockwatch.models.availability import AvailabilityStatus
from stockwatch.utils.logger import LayerLogger

logger = LayerLogger("availability_normalizer")

# Negated forms win over everything else. The rest are checked in this
# order; lists are disjoint. Covers every Schema.org
# ItemAvailability value (https://schema.org/InStock etc.).
NEGATED_IN_STOCK_INDICATORS = ["notinstock"]
IN_STOCK_INDICATORS = ["instock", "instoreonly", "onlineonly", "limitedavailability"]
OUT_OF_STOCK_INDICATORS = ["outofstock", "soldout", "discontinued"]
BACK_ORDER_INDICATORS = ["backorder", "preorder", "presale", "madetoorder"]

# "In Stock" / "in_stock" / "out-of-stock" compare like their Schema.org forms
_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_availability(raw: Optional[str]) -> AvailabilityStatus:
    """
    Normalize a raw availability value. Never fails.

    Accepts bare tokens ("InStock"), Schema.org URLs with either scheme
    ("http://schema.org/OutOfStock"), and trailing fragments. Anything
    unrecognised is UNKNOWN and logged.
    """
    if raw is None:
        return AvailabilityStatus.UNKNOWN

    compact = _SEPARATORS.sub("", str(raw).lower())

    # "not in stock" compacts to a string containing "instock"
    if any(indicator in compact for indicator in NEGATED_IN_STOCK_INDICATORS):
        return AvailabilityStatus.OUT_OF_STOCK
    if any(indicator in compact for indicator in IN_STOCK_INDICATORS):
        return AvailabilityStatus.IN_STOCK
    if any(indicator in compact for indicator in OUT_OF_STOCK_INDICATORS):
        return AvailabilityStatus.OUT_OF_STOCK
    if any(indicator in compact for indicator in BACK_ORDER_INDICATORS):
        return AvailabilityStatus.BACK_ORDER

    logger.log_warning("unknown_availability", raw_availability=raw)
    return AvailabilityStatus.UNKNOWN
