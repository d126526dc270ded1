# mrktr/filters/query_expander.py

"""Local query understanding: expansion and autocomplete over a catalog.

A small TF-IDF model is built once from the product catalog. Short,
vague queries ("ps5") are rewritten to the catalog product they clearly
refer to; queries that plausibly match two products equally well are
left alone. The same index ranks autocomplete suggestions.
"""

import json
import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from mrktr.config.settings import Settings
from mrktr.models.product import ProductEntry

logger = logging.getLogger("mrktr.filters")

TOKEN_PATTERN = re.compile(r"[a-z0-9]+")
STOP_WORDS = frozenset(
    {"and", "the", "for", "with", "new", "used", "edition"}
)

NAME_WEIGHT = 2.0
SYNONYM_WEIGHT = 1.5
CATEGORY_WEIGHT = 0.5

EXACT_MATCH_BONUS = 0.50
SYNONYM_PREFIX_BONUS = 0.10
MIN_PREFIX_BONUS_LENGTH = 3

# Suggestion base scores: synonyms outrank names, whole-string
# prefixes outrank inner-token prefixes.
NAME_PREFIX_SCORE = 3.0
NAME_TOKEN_PREFIX_SCORE = 2.4
SYNONYM_PREFIX_SCORE = 4.0
SYNONYM_TOKEN_PREFIX_SCORE = 3.4
EXACT_SUGGESTION_BONUS = 1.0

_EMPTY_VECTOR: Mapping[str, float] = MappingProxyType({})

DEFAULT_CATALOG: tuple[ProductEntry, ...] = (
    ProductEntry(
        name="Nintendo Switch OLED",
        category="Gaming",
        synonyms=("switch", "nintendo switch"),
    ),
    ProductEntry(
        name="PlayStation 5 Console",
        category="Gaming",
        synonyms=("ps5", "playstation 5"),
    ),
    ProductEntry(
        name="AirPods Pro 2",
        category="Audio",
        synonyms=("airpods pro", "airpods"),
    ),
)


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric tokens of *text* without stopwords."""
    return [
        token
        for token in TOKEN_PATTERN.findall(text.lower())
        if token not in STOP_WORDS
    ]


def term_counts(tokens: Iterable[str]) -> dict[str, float]:
    counts: dict[str, float] = {}
    for token in tokens:
        counts[token] = counts.get(token, 0.0) + 1.0
    return counts


def weighted_vector(
    counts: Mapping[str, float],
    idf: Mapping[str, float],
) -> dict[str, float]:
    """Sublinear TF times IDF; terms unknown to the catalog are dropped."""
    vector: dict[str, float] = {}
    for term, tf in counts.items():
        term_idf = idf.get(term)
        if term_idf is None:
            continue
        vector[term] = (1.0 + math.log(tf)) * term_idf
    return vector


def normalize_vector(vector: Mapping[str, float]) -> Mapping[str, float]:
    """Scale to unit length; empty or zero-norm vectors become empty."""
    norm = math.sqrt(sum(weight * weight for weight in vector.values()))
    if norm == 0:
        return _EMPTY_VECTOR
    return MappingProxyType(
        {term: weight / norm for term, weight in vector.items()}
    )


def cosine_similarity(
    a: Mapping[str, float],
    b: Mapping[str, float],
) -> float:
    """Dot product of two unit vectors."""
    if not a or not b:
        return 0.0
    if len(b) < len(a):
        a, b = b, a
    return sum(weight * b.get(term, 0.0) for term, weight in a.items())


def token_has_prefix(text: str, prefix: str) -> bool:
    """True if any alphanumeric token inside *text* starts with *prefix*."""
    if not prefix:
        return False
    return any(
        token.startswith(prefix)
        for token in TOKEN_PATTERN.findall(text.lower())
    )


@dataclass(frozen=True)
class ProductDocument:
    """A catalog entry with its precomputed lowercase forms and vector."""

    entry: ProductEntry
    name_lower: str
    synonyms_lower: tuple[str, ...]
    vector: Mapping[str, float]


@dataclass(frozen=True)
class QueryIndex:
    """Immutable TF-IDF index over the product catalog."""

    documents: tuple[ProductDocument, ...]
    idf: Mapping[str, float]

    @classmethod
    def build(cls, catalog: Iterable[ProductEntry]) -> "QueryIndex":
        """Sanitize entries, weight their terms and compute IDF."""
        entries: list[ProductEntry] = []
        document_terms: list[dict[str, float]] = []
        df: dict[str, int] = {}

        for raw in catalog:
            entry = raw.sanitized()
            if not entry.name:
                continue

            name_tokens = tokenize(entry.name)
            synonym_tokens = tokenize(" ".join(entry.synonyms))
            category_tokens = tokenize(entry.category)
            if not name_tokens and not synonym_tokens:
                continue

            terms: dict[str, float] = {}
            for tokens, weight in (
                (name_tokens, NAME_WEIGHT),
                (synonym_tokens, SYNONYM_WEIGHT),
                (category_tokens, CATEGORY_WEIGHT),
            ):
                for token in tokens:
                    terms[token] = terms.get(token, 0.0) + weight

            for token in terms:
                df[token] = df.get(token, 0) + 1

            entries.append(entry)
            document_terms.append(terms)

        n = float(len(document_terms))
        idf = {
            token: math.log((1.0 + n) / (1.0 + count)) + 1.0
            for token, count in df.items()
        }

        documents = tuple(
            ProductDocument(
                entry=entry,
                name_lower=entry.name.lower(),
                synonyms_lower=tuple(s.lower() for s in entry.synonyms),
                vector=normalize_vector(weighted_vector(terms, idf)),
            )
            for entry, terms in zip(entries, document_terms)
        )
        logger.debug(
            "Built query index: %d documents, %d terms",
            len(documents),
            len(idf),
        )
        return cls(documents=documents, idf=MappingProxyType(idf))

    def query_vector(self, text: str) -> Mapping[str, float]:
        """TF-IDF unit vector for *text* using the catalog's IDF table."""
        return normalize_vector(
            weighted_vector(term_counts(tokenize(text)), self.idf)
        )


def default_catalog() -> list[ProductEntry]:
    return list(DEFAULT_CATALOG)


def load_catalog(path: Path | None = None) -> list[ProductEntry]:
    """Read the JSON product catalog, falling back to a built-in one."""
    catalog_path = path or Settings.CATALOG_PATH
    try:
        with open(catalog_path, encoding="utf-8") as f:
            raw: object = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning(
            "Could not read product catalog %s: %s", catalog_path, exc
        )
        return default_catalog()

    if not isinstance(raw, list) or not raw:
        logger.warning(
            "Product catalog %s is empty or not a list", catalog_path
        )
        return default_catalog()

    entries = [
        ProductEntry.from_dict(item)
        for item in raw
        if isinstance(item, dict)
    ]
    if not entries:
        return default_catalog()
    return entries


class QueryExpander:
    """Query rewriting and autocomplete backed by a :class:`QueryIndex`."""

    def __init__(self, index: QueryIndex) -> None:
        self.index = index

    @classmethod
    def build(cls, catalog: Iterable[ProductEntry]) -> "QueryExpander":
        return cls(QueryIndex.build(catalog))

    @classmethod
    def from_catalog_file(cls, path: Path | None = None) -> "QueryExpander":
        """Build from the bundled catalog file (or *path*)."""
        return cls.build(load_catalog(path))

    def expand(self, query: str) -> str:
        """Rewrite a short query to the product it unambiguously names.

        Returns the trimmed input unchanged when the query is empty,
        longer than ``Settings.MAX_EXPAND_TOKENS`` tokens, matches nothing
        with enough confidence, or matches two products too closely.
        """
        trimmed = query.strip()
        if not trimmed or not self.index.documents:
            return trimmed

        tokens = tokenize(trimmed)
        if not tokens or len(tokens) > Settings.MAX_EXPAND_TOKENS:
            return trimmed

        query_vector = self.index.query_vector(trimmed)
        if not query_vector:
            return trimmed

        query_lower = trimmed.lower()
        top_name = ""
        top_score = 0.0
        second_score = 0.0

        for doc in self.index.documents:
            score = cosine_similarity(query_vector, doc.vector)
            if query_lower == doc.name_lower:
                score += EXACT_MATCH_BONUS
            score += _synonym_bonus(query_lower, doc.synonyms_lower)

            if score > top_score:
                second_score = top_score
                top_score = score
                top_name = doc.entry.name
            elif score > second_score:
                second_score = score

        if not top_name:
            return trimmed
        if top_score < Settings.MIN_EXPAND_SCORE:
            return trimmed
        if top_score - second_score < Settings.MIN_EXPAND_SEPARATION:
            logger.debug(
                "Not expanding %r: best %.3f vs runner-up %.3f",
                trimmed,
                top_score,
                second_score,
            )
            return trimmed
        if top_name.lower() == query_lower:
            return trimmed

        logger.info("Expanded query %r -> %r", trimmed, top_name)
        return top_name

    def suggest(self, prefix: str) -> list[str]:
        """Up to ``Settings.MAX_SUGGESTIONS`` completions for *prefix*."""
        p = prefix.lower().strip()
        if len(p) < Settings.MIN_SUGGEST_PREFIX or not self.index.documents:
            return []

        query_vector = self.index.query_vector(p)
        candidates: list[tuple[float, str]] = []

        for doc in self.index.documents:
            base = cosine_similarity(query_vector, doc.vector)

            name_score = _prefix_score(
                doc.name_lower,
                p,
                NAME_PREFIX_SCORE,
                NAME_TOKEN_PREFIX_SCORE,
            )
            if name_score is not None:
                candidates.append((name_score + base, doc.entry.name))

            for synonym, synonym_lower in zip(
                doc.entry.synonyms, doc.synonyms_lower
            ):
                syn_score = _prefix_score(
                    synonym_lower,
                    p,
                    SYNONYM_PREFIX_SCORE,
                    SYNONYM_TOKEN_PREFIX_SCORE,
                )
                if syn_score is not None:
                    candidates.append((syn_score + base, synonym))

        candidates.sort(key=lambda c: (-c[0], c[1]))

        suggestions: list[str] = []
        seen: set[str] = set()
        for _, value in candidates:
            key = value.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            suggestions.append(value)
            if len(suggestions) == Settings.MAX_SUGGESTIONS:
                break
        return suggestions


def _synonym_bonus(query_lower: str, synonyms_lower: Iterable[str]) -> float:
    """Bonus for the first synonym the query equals or prefixes."""
    for synonym in synonyms_lower:
        if query_lower == synonym:
            return EXACT_MATCH_BONUS
        if (
            len(query_lower) >= MIN_PREFIX_BONUS_LENGTH
            and synonym.startswith(query_lower)
        ):
            return SYNONYM_PREFIX_BONUS
    return 0.0


def _prefix_score(
    text_lower: str,
    prefix: str,
    whole_score: float,
    token_score: float,
) -> float | None:
    """Score a candidate string against the typed prefix, or ``None``."""
    if text_lower.startswith(prefix):
        score = whole_score
    elif token_has_prefix(text_lower, prefix):
        score = token_score
    else:
        return None
    if text_lower == prefix:
        score += EXACT_SUGGESTION_BONUS
    return score
