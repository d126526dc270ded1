# mrktr/filters/listing_extractor.py

"""Heuristic extraction of typed listings from search-result snippets."""

import logging
import re
from collections.abc import Iterable
from urllib.parse import urlparse

from mrktr.models.listing import (
    Condition,
    Listing,
    Platform,
    RawSearchResult,
    Status,
)

logger = logging.getLogger("mrktr.filters")

# Whole part allows thousands separators; fraction is 1-2 digits.
_AMOUNT = r"(\d{1,3}(?:,\d{3})+|\d+)(?:\.(\d{1,2}))?"

PRICE_SYMBOL_PREFIX = re.compile(
    r"(?:\busd\b|us\s*\$|us\$|\$)\s*" + _AMOUNT,
    re.IGNORECASE | re.ASCII,
)
PRICE_USD_SUFFIX = re.compile(
    _AMOUNT + r"\s*\busd\b",
    re.IGNORECASE | re.ASCII,
)
# Keyword context needs at least two digits so "for 2" is not a price.
PRICE_CONTEXT = re.compile(
    r"\b(?:price|asking|ask|obo|offer|now|for)\s*[:\-]?\s*"
    r"(\d{1,3}(?:,\d{3})+|\d{2,})(?:\.(\d{1,2}))?\b",
    re.IGNORECASE | re.ASCII,
)
PRICE_PATTERNS: tuple[re.Pattern[str], ...] = (
    PRICE_SYMBOL_PREFIX,
    PRICE_USD_SUFFIX,
    PRICE_CONTEXT,
)

CONDITION_NEW = re.compile(r"\b(?:new|sealed)\b", re.ASCII)
CONDITION_GOOD = re.compile(r"\bgood\b", re.ASCII)
CONDITION_FAIR = re.compile(r"\bfair\b", re.ASCII)

STATUS_UNSOLD = re.compile(
    r"\b(?:not\s+sold|unsold|never\s+sold)\b", re.ASCII
)
STATUS_SOLD = re.compile(r"\bsold\b", re.ASCII)

# Checked in order; the first platform with a matching host label wins.
_PLATFORM_LABELS: tuple[tuple[Platform, tuple[str, ...]], ...] = (
    (Platform.EBAY, ("ebay",)),
    (Platform.MERCARI, ("mercari",)),
    (Platform.AMAZON, ("amazon",)),
    (Platform.FACEBOOK, ("facebook", "fb")),
)


class ListingExtractor:
    """Turn raw ``{url, title, description}`` results into listings.

    Every method is pure; the compiled patterns above are shared,
    read-only module constants.
    """

    @staticmethod
    def parse(items: Iterable[RawSearchResult]) -> list[Listing]:
        """Extract listings, dropping any item without a usable price."""
        listings: list[Listing] = []
        dropped = 0
        for item in items:
            text = f"{item.title} {item.description}"
            price = ListingExtractor.extract_price(text)
            if price is None:
                dropped += 1
                continue

            listings.append(
                Listing(
                    platform=ListingExtractor.detect_platform(item.url),
                    price=price,
                    condition=ListingExtractor.detect_condition(text),
                    status=ListingExtractor.detect_status(text),
                    url=item.url,
                    title=item.title,
                )
            )

        if dropped:
            logger.debug(
                "Dropped %d of %d results without a price",
                dropped,
                dropped + len(listings),
            )
        return listings

    @staticmethod
    def extract_price(text: str) -> float | None:
        """Return the lowest positive amount matched in *text*.

        Snippets like "was $150, now $99" carry the old price first, so
        the smallest match is taken as the asking price.
        """
        best: float | None = None
        for pattern in PRICE_PATTERNS:
            for match in pattern.finditer(text):
                price = _parse_amount(match.group(1), match.group(2))
                if price is None:
                    continue
                if best is None or price < best:
                    best = price
        return best

    @staticmethod
    def detect_platform(raw_url: str) -> Platform:
        """Map a result URL to its marketplace by hostname label."""
        host = ""
        try:
            host = (urlparse(raw_url.strip()).hostname or "").lower()
        except ValueError:
            host = ""

        if host:
            labels = host.strip(".").split(".")
            for platform, names in _PLATFORM_LABELS:
                if any(name in labels for name in names):
                    return platform
            return Platform.OTHER

        lowered = raw_url.lower()
        for platform, names in _PLATFORM_LABELS:
            if any(name in lowered for name in names):
                return platform
        return Platform.OTHER

    @staticmethod
    def detect_condition(text: str) -> Condition:
        lowered = text.lower()
        if CONDITION_NEW.search(lowered):
            return Condition.NEW
        if CONDITION_GOOD.search(lowered):
            return Condition.GOOD
        if CONDITION_FAIR.search(lowered):
            return Condition.FAIR
        return Condition.USED

    @staticmethod
    def detect_status(text: str) -> Status:
        lowered = text.lower()
        if STATUS_UNSOLD.search(lowered):
            return Status.ACTIVE
        if STATUS_SOLD.search(lowered):
            return Status.SOLD
        return Status.ACTIVE


def _parse_amount(whole: str | None, fraction: str | None) -> float | None:
    """Convert matched amount groups to a positive float."""
    digits = (whole or "").replace(",", "")
    if not digits:
        return None
    if fraction:
        if len(fraction) == 1:
            fraction += "0"
        digits = f"{digits}.{fraction}"
    try:
        price = float(digits)
    except ValueError:
        return None
    if price <= 0:
        return None
    return price
