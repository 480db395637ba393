"""
Next.js data-blob helpers for the Stock Watch availability checker.
Server-rendered Next.js pages embed their props in <script id="__NEXT_DATA__">.
"""
import json
from decimal import Decimal
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from stockwatch.errors import ScrapingError


def extract_next_data(html: str) -> Dict[str, Any]:
    """
    Parse the __NEXT_DATA__ JSON of a page.

    Raises:
        ScrapingError: Script missing or not valid JSON
    """
    soup = BeautifulSoup(html, "lxml")
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None:
        raise ScrapingError("No __NEXT_DATA__ script found")

    try:
        data = json.loads(script.get_text(), parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise ScrapingError(f"Failed to parse __NEXT_DATA__ JSON: {e}") from e

    if not isinstance(data, dict):
        raise ScrapingError("__NEXT_DATA__ is not a JSON object")
    return data


def get_page_props(next_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """props.pageProps, or None when absent."""
    props = next_data.get("props")
    if not isinstance(props, dict):
        return None
    page_props = props.get("pageProps")
    return page_props if isinstance(page_props, dict) else None
