"""
Truth-hierarchy scoring.

Exact evidence always outranks statistical similarity:

    perfect match      -> 1.0  (unconditionally)
    exact metadata     -> 0.9
    exact name         -> 0.85
    exact content      -> 0.8
    semantic only      -> 0.55*vector + 0.25*content_bonus + 0.20*name_bonus,
                          clamped to [0, 0.75]

Pure functions, no I/O.
"""

from __future__ import annotations

import json
from typing import Any

from memory_search.search.models import (
    MatchEvidence,
    MatchReason,
    SearchCandidate,
    TruthLevel,
)

# =============================================================================
# Constants
# =============================================================================

_VECTOR_WEIGHT = 0.55
_CONTENT_BONUS_WEIGHT = 0.25
_NAME_BONUS_WEIGHT = 0.20

_NAME_EXACT_BONUS = 0.2
_NAME_CONTAINS_BONUS = 0.1
_NAME_WORD_BONUS = 0.05

# Metadata matches only count as perfect for queries longer than this
PERFECT_METADATA_MIN_LENGTH = 10


def serialize_metadata(metadata: dict[str, Any]) -> str:
    """Compact JSON rendering used for substring evidence checks."""
    return json.dumps(metadata, separators=(",", ":"), ensure_ascii=False, default=str)


class TruthScorer:
    """Scores candidates by the kind of evidence behind them.

    Usage:
        scorer = TruthScorer()
        evidence = scorer.analyze_match_evidence(name, metadata, "machine learning")
        score = scorer.calculate_truth_score(
            SearchCandidate(id="m1", name=name, metadata=metadata, evidence=evidence),
            "machine learning",
        )
    """

    def calculate_truth_score(
        self,
        candidate: SearchCandidate,
        normalized_query: str,
        vector_score: float | None = None,
    ) -> float:
        """Calculate a candidate's truth score.

        Args:
            candidate: Candidate with evidence already analyzed
            normalized_query: Normalized query text
            vector_score: Raw cosine similarity, if the vector channel saw it

        Returns:
            Score in [0, 1]
        """
        evidence = candidate.evidence

        if evidence.has_perfect_match:
            return TruthLevel.PERFECT_TRUTH
        if evidence.has_exact_metadata:
            return TruthLevel.HIGH_CONFIDENCE
        if evidence.has_exact_name:
            return TruthLevel.EXACT_NAME
        if evidence.has_exact_content:
            return TruthLevel.EXACT_CONTENT

        semantic = (
            (vector_score or 0.0) * _VECTOR_WEIGHT
            + evidence.content_match_bonus * _CONTENT_BONUS_WEIGHT
            + evidence.name_partial_bonus * _NAME_BONUS_WEIGHT
        )
        return max(0.0, min(semantic, TruthLevel.SEMANTIC_CAP))

    def analyze_match_evidence(
        self,
        name: str,
        metadata: dict[str, Any],
        normalized_query: str,
        original_query: str | None = None,
    ) -> MatchEvidence:
        """Derive evidence from a candidate's name and metadata.

        Substring checks are case-insensitive. Content evidence is not
        derived here; the exact channel reports it.

        Args:
            name: Candidate name
            metadata: Parsed candidate metadata
            normalized_query: Lower-cased, whitespace-collapsed query
            original_query: Query as typed (length gates metadata perfection)
        """
        original = original_query if original_query is not None else normalized_query
        candidate_name = (name or "").lower()
        metadata_text = serialize_metadata(metadata or {}).lower()

        has_exact_metadata = bool(normalized_query) and normalized_query in metadata_text
        has_exact_name = bool(normalized_query) and normalized_query in candidate_name
        has_perfect_match = (
            has_exact_metadata and len(original) > PERFECT_METADATA_MIN_LENGTH
        ) or (bool(candidate_name) and candidate_name == normalized_query)

        return MatchEvidence(
            has_exact_metadata=has_exact_metadata,
            has_exact_name=has_exact_name,
            has_exact_content=False,
            has_perfect_match=has_perfect_match,
            content_match_bonus=0.0,
            name_partial_bonus=self.calculate_name_match_bonus(candidate_name, normalized_query),
        )

    @staticmethod
    def calculate_name_match_bonus(name: str, query: str) -> float:
        """Partial-name bonus used by semantic scoring.

        0.2 for an exact name, 0.1 when the name contains the query, else
        the fraction of query words found inside some name word x 0.05.
        """
        name = name.lower()
        query = query.lower()
        if not query:
            return 0.0
        if name == query:
            return _NAME_EXACT_BONUS
        if query in name:
            return _NAME_CONTAINS_BONUS

        query_words = query.split()
        name_words = name.split()
        matches = sum(
            1 for word in query_words if any(word in name_word for name_word in name_words)
        )
        if not matches:
            return 0.0
        return (matches / len(query_words)) * _NAME_WORD_BONUS

    @staticmethod
    def get_match_reason(evidence: MatchEvidence) -> MatchReason:
        """Map evidence to the reason reported with a score."""
        if evidence.has_perfect_match:
            return MatchReason.PERFECT_TRUTH
        if evidence.has_exact_metadata:
            return MatchReason.EXACT_METADATA
        if evidence.has_exact_name:
            return MatchReason.EXACT_NAME
        if evidence.has_exact_content:
            return MatchReason.EXACT_CONTENT
        return MatchReason.SEMANTIC

    @staticmethod
    def validate_truth_level(score: float, evidence: MatchEvidence) -> bool:
        """Check a score against the hierarchy.

        Returns False when a perfect match is not exactly 1.0 or when a
        candidate without exact evidence exceeds the semantic cap.
        """
        if evidence.has_perfect_match and score != TruthLevel.PERFECT_TRUTH:
            return False
        if (
            not evidence.has_exact_metadata
            and not evidence.has_exact_name
            and not evidence.has_exact_content
            and not evidence.has_perfect_match
            and score > TruthLevel.SEMANTIC_CAP
        ):
            return False
        return True
