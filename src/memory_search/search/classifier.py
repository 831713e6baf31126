"""
Query classification.

Decides which search path a query takes:
- WILDCARD: "*", "" or "all" (trimmed, case-insensitive); no ranking
- TECHNICAL_IDENTIFIER: identifier-like shapes; exact channel only
- SEMANTIC_SEARCH: everything else; exact and vector channels

Pure functions, no I/O.
"""

from __future__ import annotations

import re

from memory_search.search.exceptions import InvalidQueryError
from memory_search.search.models import QueryIntent, QueryPreprocessing, QueryType

# =============================================================================
# Constants
# =============================================================================

WILDCARD_QUERIES = frozenset({"*", "", "all"})

_UUID_PATTERN = re.compile(r"^[0-9a-f-]{36}$", re.IGNORECASE)
_VERSION_PATTERN = re.compile(r"^v?\d+\.\d+\.\d+")
_COMPACT_ID_PATTERN = re.compile(r"^(?=.*[A-Za-z])(?=.*[^A-Za-z])\S{17}$")
_BASE64_PATTERN = re.compile(r"^(?=.*[0-9+/=])[A-Za-z0-9+/]+={0,2}$")
_SNAKE_CASE_PATTERN = re.compile(r"^[A-Za-z0-9]+(?:_[A-Za-z0-9]+)+$")
_CAMEL_CASE_PATTERN = re.compile(r"^[a-z]+[A-Z][A-Za-z0-9]*$")
_DOTTED_NAME_PATTERN = re.compile(r"^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)+$")
_MIXED_ALNUM_PATTERN = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z0-9-]+$")
_HAS_LETTER_PATTERN = re.compile(r"[A-Za-z]")

_BASE64_MIN_LENGTH = 9

# (pattern, confidence) checked in order; first match wins
_IDENTIFIER_RULES: list[tuple[re.Pattern[str], float]] = [
    (_UUID_PATTERN, 0.95),
    (_VERSION_PATTERN, 0.9),
    (_COMPACT_ID_PATTERN, 0.9),
    (_SNAKE_CASE_PATTERN, 0.85),
    (_CAMEL_CASE_PATTERN, 0.85),
    (_DOTTED_NAME_PATTERN, 0.85),
    (_MIXED_ALNUM_PATTERN, 0.85),
]

_SYMBOLS_ONLY_CONFIDENCE = 0.9


def normalize_query(query: str) -> str:
    """Lower-case and collapse whitespace."""
    return " ".join(query.split()).lower()


def is_wildcard_query(query: str) -> bool:
    """True for "*", "" and "all", ignoring case and surrounding whitespace."""
    return query.strip().lower() in WILDCARD_QUERIES


def _identifier_confidence(query: str) -> float | None:
    if any(ch.isspace() for ch in query):
        # Multi-token queries only count when they carry no letters at all
        if not _HAS_LETTER_PATTERN.search(query):
            return _SYMBOLS_ONLY_CONFIDENCE
        return None

    for pattern, confidence in _IDENTIFIER_RULES:
        if pattern.match(query):
            return confidence

    if len(query) >= _BASE64_MIN_LENGTH and _BASE64_PATTERN.match(query):
        return 0.85

    if not _HAS_LETTER_PATTERN.search(query):
        return _SYMBOLS_ONLY_CONFIDENCE

    return None


def _semantic_confidence(normalized: str) -> float:
    # Natural-language queries with several words are the clearest semantic signal
    token_count = len(normalized.split())
    if token_count >= 2:
        return 0.8
    if len(normalized) >= 4:
        return 0.7
    return 0.6


class QueryClassifier:
    """Classifies raw query text into a QueryIntent.

    Usage:
        intent = QueryClassifier().classify("machine learning")
        intent.type            # QueryType.SEMANTIC_SEARCH
        intent.normalized      # "machine learning"
    """

    def classify(self, query: str) -> QueryIntent:
        """Classify a query.

        Empty and whitespace-only strings are not rejected: "" is one of the
        wildcard forms, so they list every memory like "*" does.

        Args:
            query: Raw query text

        Returns:
            Frozen QueryIntent

        Raises:
            InvalidQueryError: If query is not a string
        """
        if not isinstance(query, str):
            raise InvalidQueryError("Query must be a string", field="query")

        trimmed = query.strip()
        normalized = normalize_query(trimmed)

        if is_wildcard_query(trimmed):
            return QueryIntent(
                type=QueryType.WILDCARD,
                confidence=1.0,
                preprocessing=QueryPreprocessing(normalized=normalized, original=trimmed),
            )

        confidence = _identifier_confidence(trimmed)
        if confidence is not None:
            return QueryIntent(
                type=QueryType.TECHNICAL_IDENTIFIER,
                confidence=confidence,
                preprocessing=QueryPreprocessing(
                    normalized=normalized,
                    is_special_pattern=True,
                    requires_exact_match=True,
                    original=trimmed,
                ),
            )

        return QueryIntent(
            type=QueryType.SEMANTIC_SEARCH,
            confidence=_semantic_confidence(normalized),
            preprocessing=QueryPreprocessing(normalized=normalized, original=trimmed),
        )
