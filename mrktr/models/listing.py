# mrktr/models/listing.py

"""Listing data model shared by providers, extractor and orchestrator."""

from dataclasses import dataclass
from enum import Enum


class Platform(str, Enum):
    """Marketplace a listing was found on."""

    EBAY = "eBay"
    MERCARI = "Mercari"
    AMAZON = "Amazon"
    FACEBOOK = "Facebook"
    OTHER = "Other"


class Condition(str, Enum):
    """Item condition as advertised in the listing text."""

    NEW = "New"
    GOOD = "Good"
    FAIR = "Fair"
    USED = "Used"


class Status(str, Enum):
    """Whether the listing is still for sale."""

    ACTIVE = "Active"
    SOLD = "Sold"


@dataclass(frozen=True)
class RawSearchResult:
    """Provider-agnostic result every adapter produces before extraction."""

    url: str = ""
    title: str = ""
    description: str = ""


@dataclass(frozen=True)
class Listing:
    """A single priced marketplace listing (price in USD)."""

    platform: Platform
    price: float
    condition: Condition
    status: Status
    url: str = ""
    title: str = ""

    def __post_init__(self) -> None:
        if not self.price > 0:
            msg = f"listing price must be positive, got {self.price!r}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, object]:
        """Serialise to plain values for JSON output."""
        return {
            "platform": self.platform.value,
            "price": self.price,
            "condition": self.condition.value,
            "status": self.status.value,
            "url": self.url,
            "title": self.title,
        }
