# mrktr/models/product.py

"""Catalog product model used to build the query index."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProductEntry:
    """One catalog product and the alias terms people search it by."""

    name: str
    category: str = ""
    synonyms: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, raw: dict[str, object]) -> "ProductEntry":
        """Build an entry from a JSON catalog object."""
        synonyms = raw.get("synonyms") or []
        if not isinstance(synonyms, list):
            synonyms = []
        return cls(
            name=str(raw.get("name") or ""),
            category=str(raw.get("category") or ""),
            synonyms=tuple(str(s) for s in synonyms),
        )

    def sanitized(self) -> "ProductEntry":
        """Trim fields and drop blank or case-insensitive duplicate synonyms."""
        seen: set[str] = set()
        synonyms: list[str] = []
        for raw in self.synonyms:
            trimmed = raw.strip()
            if not trimmed:
                continue
            key = trimmed.lower()
            if key in seen:
                continue
            seen.add(key)
            synonyms.append(trimmed)
        return ProductEntry(
            name=self.name.strip(),
            category=self.category.strip(),
            synonyms=tuple(synonyms),
        )
