"""
Currency metadata for the Stock Watch availability checker.
Maps ISO 4217 codes to their minor-unit exponent and infers currencies
from storefront URLs (path locale, then domain TLD).
"""
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

DEFAULT_EXPONENT = 2

# Currencies whose minor unit is not 1/100 of the major unit
_CURRENCY_EXPONENTS: Dict[str, int] = {
    "JPY": 0,
    "KRW": 0,
    "VND": 0,
    "KWD": 3,
    "BHD": 3,
    "OMR": 3,
}

# Path locale segment -> currency. Multi-locale storefronts serve one domain
# in many currencies, so this outranks the domain TLD.
PATH_LOCALE_CURRENCIES: Dict[str, str] = {
    "en-au": "AUD",
    "en-nz": "NZD",
    "en-gb": "GBP",
    "en-uk": "GBP",
    "en-ca": "CAD",
    "fr-ca": "CAD",
    "en-us": "USD",
    "es-us": "USD",
    "en-ie": "EUR",
    "de-de": "EUR",
    "de-at": "EUR",
    "fr-fr": "EUR",
    "es-es": "EUR",
    "it-it": "EUR",
    "nl-nl": "EUR",
    "ja-jp": "JPY",
    "ko-kr": "KRW",
    "en-sg": "SGD",
    "en-hk": "HKD",
    "en-in": "INR",
    "de-ch": "CHF",
    "fr-ch": "CHF",
    "sv-se": "SEK",
    "da-dk": "DKK",
    "nb-no": "NOK",
}

# Domain suffix -> currency, most specific suffix first. Generic TLDs such as
# ".com" carry no currency signal and are deliberately absent.
DOMAIN_CURRENCIES: List[Tuple[str, str]] = [
    (".com.au", "AUD"),
    (".co.uk", "GBP"),
    (".co.nz", "NZD"),
    (".co.jp", "JPY"),
    (".au", "AUD"),
    (".uk", "GBP"),
    (".nz", "NZD"),
    (".ca", "CAD"),
    (".eu", "EUR"),
    (".de", "EUR"),
    (".fr", "EUR"),
    (".jp", "JPY"),
    (".us", "USD"),
]


def currency_exponent(currency_code: str) -> int:
    """Number of minor-unit digits for a currency (case-insensitive)."""
    return _CURRENCY_EXPONENTS.get(currency_code.strip().upper(), DEFAULT_EXPONENT)


def currency_multiplier(currency_code: Optional[str]) -> int:
    """Minor units per major unit, e.g. USD=100, JPY=1, KWD=1000."""
    if not currency_code:
        return 10 ** DEFAULT_EXPONENT
    return 10 ** currency_exponent(currency_code)


def _path_segments(url: str) -> List[str]:
    try:
        path = urlparse(url).path
    except ValueError:
        return []
    return [segment.lower() for segment in path.split("/") if segment]


def currency_from_path_locale(url: str) -> Optional[str]:
    """Currency implied by a locale segment such as /en-au/ in the URL path."""
    for segment in _path_segments(url):
        currency = PATH_LOCALE_CURRENCIES.get(segment)
        if currency:
            return currency
    return None


def has_path_locale(url: str) -> bool:
    """Whether the URL path contains a recognised locale segment."""
    return currency_from_path_locale(url) is not None


def currency_from_domain(url: str) -> Optional[str]:
    """Currency implied by the host's country TLD, longest suffix first."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return None
    if not host:
        return None

    for suffix, currency in DOMAIN_CURRENCIES:
        if host.endswith(suffix):
            return currency
    return None
