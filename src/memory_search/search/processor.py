"""
Candidate merge and ranking.

Exact and vector candidates are merged by id and scored through the
TruthScorer. Visible scores:
- exact evidence: the band constant of its truth level (1.0, 0.9, 0.85, 0.8)
- vector only: the raw cosine similarity

Ordering uses the truth level first, then the visible score, then id, so
exact evidence always ranks above similarity-only matches.
"""

from __future__ import annotations

import logging

from memory_search.search.models import (
    ExactMatchCandidate,
    MatchEvidence,
    QueryIntent,
    RankedResult,
    SearchCandidate,
    TruthLevel,
    VectorCandidate,
)
from memory_search.search.truth_scorer import PERFECT_METADATA_MIN_LENGTH, TruthScorer

logger = logging.getLogger(__name__)

_BANDS = (
    TruthLevel.PERFECT_TRUTH,
    TruthLevel.HIGH_CONFIDENCE,
    TruthLevel.EXACT_NAME,
    TruthLevel.EXACT_CONTENT,
)


def truth_band(score: float) -> float:
    """Map a truth score onto its band."""
    for band in _BANDS:
        if score >= band:
            return band
    return TruthLevel.SEMANTIC_CAP


class SearchResultProcessor:
    """Merges channel output into ranked results.

    Usage:
        processor = SearchResultProcessor(TruthScorer())
        ranked = processor.combine_and_score(exact, vector, intent, threshold=0.1)
    """

    def __init__(self, truth_scorer: TruthScorer | None = None) -> None:
        self._scorer = truth_scorer or TruthScorer()

    def combine_and_score(
        self,
        exact_candidates: list[ExactMatchCandidate],
        vector_candidates: list[VectorCandidate],
        query_intent: QueryIntent,
        threshold: float,
    ) -> list[RankedResult]:
        """Merge, score, threshold-filter and sort candidates.

        Args:
            exact_candidates: Output of the exact channel
            vector_candidates: Output of the vector channel
            query_intent: Classified query
            threshold: Minimum visible score

        Returns:
            Ranked results (not yet enriched or truncated)
        """
        normalized = query_intent.normalized
        candidates: dict[str, SearchCandidate] = {}
        vector_scores: dict[str, float] = {}

        for exact in exact_candidates:
            if exact.id in candidates:
                continue
            candidates[exact.id] = SearchCandidate(
                id=exact.id,
                name=exact.name,
                metadata=exact.metadata,
                evidence=self.create_match_evidence(exact, normalized, query_intent.original),
            )

        for vector in vector_candidates:
            vector_scores[vector.id] = max(vector.score, vector_scores.get(vector.id, 0.0))
            if vector.id not in candidates:
                candidates[vector.id] = SearchCandidate(id=vector.id, name="")

        results: list[RankedResult] = []
        for candidate in candidates.values():
            result = self._score(candidate, normalized, vector_scores.get(candidate.id))
            if result.score >= threshold:
                results.append(result)

        results.sort(key=lambda r: (-(r.truth_level or 0.0), -r.score, r.id))
        return results

    def create_match_evidence(
        self,
        exact: ExactMatchCandidate,
        normalized: str,
        original: str | None = None,
    ) -> MatchEvidence:
        """Evidence for an exact candidate, taken from the channel's match flags.

        The metadata perfection gate measures the trimmed query as typed.
        """
        original = original if original is not None else normalized
        base = self._scorer.analyze_match_evidence(exact.name, exact.metadata, normalized, original)
        match_types = exact.match_types
        has_perfect_match = (
            match_types.exact_metadata and len(original) > PERFECT_METADATA_MIN_LENGTH
        ) or (match_types.exact_name and exact.name.lower() == normalized)

        return MatchEvidence(
            has_exact_metadata=match_types.exact_metadata,
            has_exact_name=match_types.exact_name,
            has_exact_content=match_types.exact_content,
            has_perfect_match=has_perfect_match,
            content_match_bonus=base.content_match_bonus,
            name_partial_bonus=base.name_partial_bonus,
        )

    def _score(
        self,
        candidate: SearchCandidate,
        normalized: str,
        vector_score: float | None,
    ) -> RankedResult:
        evidence = candidate.evidence
        truth_score = self._scorer.calculate_truth_score(candidate, normalized, vector_score)
        if not self._scorer.validate_truth_level(truth_score, evidence):
            logger.warning(
                "Truth score outside its band",
                extra={"memory_id": candidate.id, "score": truth_score},
            )

        band = truth_band(truth_score)
        has_textual_evidence = evidence.has_textual_evidence

        if has_textual_evidence:
            score = band
            match_type = "exact"
        else:
            score = vector_score if vector_score is not None else truth_score
            match_type = "semantic"

        return RankedResult(
            id=candidate.id,
            name=candidate.name,
            metadata=dict(candidate.metadata),
            score=score,
            match_type=match_type,
            truth_level=band,
            match_reason=self._scorer.get_match_reason(evidence),
        )
