"""
Domain models for memory search.

Every object here lives for a single search call. Intents are frozen;
candidates and results are plain dataclasses the pipeline fills in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from memory_search.graph.traversal import GraphContext

# =============================================================================
# Query Intent
# =============================================================================


class QueryType(str, Enum):
    """Closed set of query classifications."""

    WILDCARD = "WILDCARD"
    TECHNICAL_IDENTIFIER = "TECHNICAL_IDENTIFIER"
    SEMANTIC_SEARCH = "SEMANTIC_SEARCH"


@dataclass(frozen=True)
class QueryPreprocessing:
    """Normalized query text plus routing hints.

    Attributes:
        normalized: Lower-cased, whitespace-collapsed query
        is_special_pattern: Query matched an identifier-like shape
        requires_exact_match: Downstream must skip the vector channel
        original: Trimmed query as typed (empty when not recorded)
    """

    normalized: str
    is_special_pattern: bool = False
    requires_exact_match: bool = False
    original: str = ""


@dataclass(frozen=True)
class QueryIntent:
    """Classification result, created once per call."""

    type: QueryType
    confidence: float
    preprocessing: QueryPreprocessing

    @property
    def normalized(self) -> str:
        """Shortcut to the normalized query text."""
        return self.preprocessing.normalized

    @property
    def original(self) -> str:
        """Trimmed query as typed, falling back to the normalized text."""
        return self.preprocessing.original or self.preprocessing.normalized

    @property
    def requires_semantic(self) -> bool:
        """True when the vector channel should run."""
        return (
            self.type is QueryType.SEMANTIC_SEARCH
            and not self.preprocessing.requires_exact_match
        )


# =============================================================================
# Truth Levels
# =============================================================================


class TruthLevel:
    """Ordered confidence bands.

    PERFECT_TRUTH > HIGH_CONFIDENCE > EXACT_NAME > EXACT_CONTENT > SEMANTIC_CAP.
    No semantic-only score may exceed SEMANTIC_CAP; a perfect match always
    scores exactly PERFECT_TRUTH.
    """

    PERFECT_TRUTH = 1.0
    HIGH_CONFIDENCE = 0.9
    EXACT_NAME = 0.85
    EXACT_CONTENT = 0.8
    SEMANTIC_CAP = 0.75


class MatchReason(str, Enum):
    """Kind of evidence behind a score."""

    PERFECT_TRUTH = "perfect_truth"
    EXACT_METADATA = "exact_metadata"
    EXACT_NAME = "exact_name"
    EXACT_CONTENT = "exact_content"
    SEMANTIC = "semantic"


# =============================================================================
# Candidates
# =============================================================================


@dataclass
class MatchEvidence:
    """Evidence gathered for one candidate."""

    has_exact_metadata: bool = False
    has_exact_name: bool = False
    has_exact_content: bool = False
    has_perfect_match: bool = False
    content_match_bonus: float = 0.0
    name_partial_bonus: float = 0.0

    @property
    def has_textual_evidence(self) -> bool:
        """True when any exact (non-statistical) evidence exists."""
        return (
            self.has_exact_metadata
            or self.has_exact_name
            or self.has_exact_content
            or self.has_perfect_match
        )


@dataclass
class SearchCandidate:
    """A candidate ready for truth scoring."""

    id: str
    name: str
    metadata: dict[str, Any] = field(default_factory=dict)
    evidence: MatchEvidence = field(default_factory=MatchEvidence)


@dataclass
class ExactMatchTypes:
    """Which exact sub-queries matched a memory."""

    exact_metadata: bool = False
    exact_name: bool = False
    exact_content: bool = False

    @property
    def weight(self) -> int:
        """Ordering weight: 3 x name + 2 x metadata + 1 x content."""
        return 3 * int(self.exact_name) + 2 * int(self.exact_metadata) + int(self.exact_content)


@dataclass
class ExactMatchCandidate:
    """Candidate proposed by the exact channel."""

    id: str
    name: str
    metadata: dict[str, Any] = field(default_factory=dict)
    match_types: ExactMatchTypes = field(default_factory=ExactMatchTypes)


@dataclass(frozen=True)
class VectorCandidate:
    """Candidate proposed by the vector channel (raw cosine similarity)."""

    id: str
    score: float


# =============================================================================
# Results
# =============================================================================


@dataclass
class RankedResult:
    """A scored search result, enriched after ranking.

    ``truth_level`` and ``match_reason`` are internal diagnostics and are
    left out of the public dict unless requested.
    """

    id: str
    name: str
    type: str = ""
    observations: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float = 0.0
    match_type: str | None = None
    truth_level: float | None = None
    match_reason: MatchReason | None = None
    created_at: str | None = None
    modified_at: str | None = None
    last_accessed: str | None = None
    tags: list[str] = field(default_factory=list)
    related: GraphContext | None = None

    def to_dict(self, include_internal: bool = False) -> dict[str, Any]:
        """Serialize to the public result shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "observations": list(self.observations),
            "metadata": dict(self.metadata),
            "score": self.score,
        }
        if self.match_type is not None:
            data["matchType"] = self.match_type
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        if self.modified_at is not None:
            data["modifiedAt"] = self.modified_at
        if self.last_accessed is not None:
            data["lastAccessed"] = self.last_accessed
        if self.tags:
            data["tags"] = list(self.tags)
        if self.related is not None:
            related = self.related.to_dict()
            if related:
                data["related"] = related
        if include_internal:
            data["internal"] = {
                "truthLevel": self.truth_level,
                "matchReason": self.match_reason.value if self.match_reason else None,
            }
        return data


@dataclass
class ChannelResult:
    """Outcome of one channel call: candidates or an error, never both."""

    channel: str
    candidates: list[Any] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        """True when the channel completed without error."""
        return self.error is None
