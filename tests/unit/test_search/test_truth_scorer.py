"""
Unit tests for truth-hierarchy scoring.

Perfect matches always score exactly 1.0, exact evidence follows the
fixed bands, and similarity-only candidates never exceed 0.75.
"""

from __future__ import annotations

import pytest

from memory_search.search.models import MatchEvidence, MatchReason, SearchCandidate, TruthLevel
from memory_search.search.truth_scorer import TruthScorer, serialize_metadata


@pytest.fixture
def scorer() -> TruthScorer:
    return TruthScorer()


def _candidate(**evidence: object) -> SearchCandidate:
    return SearchCandidate(id="m1", name="n", evidence=MatchEvidence(**evidence))  # type: ignore[arg-type]


class TestCalculateTruthScore:
    """Band selection and the semantic formula."""

    def test_perfect_match_scores_one_regardless_of_vector(self, scorer: TruthScorer) -> None:
        candidate = _candidate(has_perfect_match=True, has_exact_content=True)

        assert scorer.calculate_truth_score(candidate, "q", vector_score=0.0) == 1.0
        assert scorer.calculate_truth_score(candidate, "q", vector_score=0.2) == 1.0
        assert scorer.calculate_truth_score(candidate, "q") == 1.0

    @pytest.mark.parametrize(
        ("evidence", "expected"),
        [
            ({"has_exact_metadata": True, "has_exact_name": True}, TruthLevel.HIGH_CONFIDENCE),
            ({"has_exact_name": True, "has_exact_content": True}, TruthLevel.EXACT_NAME),
            ({"has_exact_content": True}, TruthLevel.EXACT_CONTENT),
        ],
    )
    def test_exact_bands(
        self,
        scorer: TruthScorer,
        evidence: dict[str, bool],
        expected: float,
    ) -> None:
        assert scorer.calculate_truth_score(_candidate(**evidence), "q", 0.99) == expected

    def test_semantic_formula(self, scorer: TruthScorer) -> None:
        candidate = _candidate(content_match_bonus=0.4, name_partial_bonus=0.1)

        score = scorer.calculate_truth_score(candidate, "q", vector_score=0.5)

        assert score == pytest.approx(0.5 * 0.55 + 0.4 * 0.25 + 0.1 * 0.20)

    def test_semantic_is_capped(self, scorer: TruthScorer) -> None:
        candidate = _candidate(content_match_bonus=1.0, name_partial_bonus=1.0)

        score = scorer.calculate_truth_score(candidate, "q", vector_score=1.0)

        assert score == TruthLevel.SEMANTIC_CAP

    def test_missing_vector_score_counts_as_zero(self, scorer: TruthScorer) -> None:
        assert scorer.calculate_truth_score(_candidate(), "q") == 0.0

    @pytest.mark.parametrize("vector_score", [0.0, 0.3, 0.75, 0.99, 1.0])
    def test_strict_ordering_for_fixed_vector_score(
        self, scorer: TruthScorer, vector_score: float
    ) -> None:
        scores = [
            scorer.calculate_truth_score(_candidate(has_perfect_match=True), "q", vector_score),
            scorer.calculate_truth_score(_candidate(has_exact_metadata=True), "q", vector_score),
            scorer.calculate_truth_score(_candidate(has_exact_name=True), "q", vector_score),
            scorer.calculate_truth_score(_candidate(has_exact_content=True), "q", vector_score),
            scorer.calculate_truth_score(
                _candidate(content_match_bonus=1.0, name_partial_bonus=1.0), "q", vector_score
            ),
        ]

        assert scores == sorted(scores, reverse=True)
        assert len(set(scores)) == len(scores)


class TestAnalyzeMatchEvidence:
    """Evidence derived from name and metadata."""

    def test_exact_name_is_perfect(self, scorer: TruthScorer) -> None:
        evidence = scorer.analyze_match_evidence("Machine Learning", {}, "machine learning")

        assert evidence.has_exact_name is True
        assert evidence.has_perfect_match is True
        assert evidence.name_partial_bonus == 0.2

    def test_short_metadata_match_is_not_perfect(self, scorer: TruthScorer) -> None:
        evidence = scorer.analyze_match_evidence("Other", {"lang": "python"}, "python")

        assert evidence.has_exact_metadata is True
        assert evidence.has_perfect_match is False

    def test_long_metadata_match_is_perfect(self, scorer: TruthScorer) -> None:
        evidence = scorer.analyze_match_evidence(
            "Other", {"topic": "distributed tracing setup"}, "distributed tracing"
        )

        assert evidence.has_exact_metadata is True
        assert evidence.has_perfect_match is True

    def test_content_evidence_never_derived(self, scorer: TruthScorer) -> None:
        evidence = scorer.analyze_match_evidence("x", {}, "x")

        assert evidence.has_exact_content is False
        assert evidence.content_match_bonus == 0.0

    def test_metadata_serialization_is_compact(self) -> None:
        assert serialize_metadata({"a": 1, "b": "c"}) == '{"a":1,"b":"c"}'


class TestNameMatchBonus:
    """Partial-name bonus tiers."""

    @pytest.mark.parametrize(
        ("name", "query", "expected"),
        [
            ("graph search", "graph search", 0.2),
            ("graph search engine", "graph search", 0.1),
            ("search over graphs", "graph index", 0.025),
            ("unrelated", "graph search", 0.0),
        ],
    )
    def test_bonus(self, name: str, query: str, expected: float) -> None:
        assert TruthScorer.calculate_name_match_bonus(name, query) == pytest.approx(expected)


class TestMatchReason:
    """Reasons follow the same precedence as the bands."""

    @pytest.mark.parametrize(
        ("evidence", "reason"),
        [
            ({"has_perfect_match": True, "has_exact_metadata": True}, MatchReason.PERFECT_TRUTH),
            ({"has_exact_metadata": True, "has_exact_name": True}, MatchReason.EXACT_METADATA),
            ({"has_exact_name": True}, MatchReason.EXACT_NAME),
            ({"has_exact_content": True}, MatchReason.EXACT_CONTENT),
            ({}, MatchReason.SEMANTIC),
        ],
    )
    def test_reason(self, evidence: dict[str, bool], reason: MatchReason) -> None:
        assert TruthScorer.get_match_reason(MatchEvidence(**evidence)) is reason


class TestValidateTruthLevel:
    """Consistency checks on computed scores."""

    def test_perfect_must_be_one(self) -> None:
        evidence = MatchEvidence(has_perfect_match=True)

        assert TruthScorer.validate_truth_level(1.0, evidence) is True
        assert TruthScorer.validate_truth_level(0.95, evidence) is False

    def test_semantic_must_not_exceed_cap(self) -> None:
        evidence = MatchEvidence()

        assert TruthScorer.validate_truth_level(0.75, evidence) is True
        assert TruthScorer.validate_truth_level(0.76, evidence) is False

    def test_exact_may_exceed_cap(self) -> None:
        assert TruthScorer.validate_truth_level(0.9, MatchEvidence(has_exact_metadata=True)) is True
