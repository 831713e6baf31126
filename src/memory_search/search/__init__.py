"""
Search module for memory-search.

Truth-first ranking over three independent channels:
- exact_channel.py: fulltext and name matching
- vector_channel.py: embedding similarity computed in the graph backend
- wildcard.py: unranked retrieval for "*", "" and "all"

classifier.py routes queries, truth_scorer.py and processor.py rank
candidates, and orchestrator.py runs one search end to end.
"""

from __future__ import annotations

from memory_search.search.classifier import QueryClassifier
from memory_search.search.embeddings import (
    EmbeddingServiceProtocol,
    SentenceTransformerEmbedder,
)
from memory_search.search.exact_channel import ExactSearchChannel
from memory_search.search.exceptions import (
    CapabilityMissingError,
    ChannelCancelledError,
    FulltextIndexMissingError,
    InvalidQueryError,
    SearchChannelError,
    SearchError,
)
from memory_search.search.models import (
    ChannelResult,
    ExactMatchCandidate,
    MatchEvidence,
    QueryIntent,
    QueryType,
    RankedResult,
    TruthLevel,
    VectorCandidate,
)
from memory_search.search.orchestrator import SearchOrchestrator
from memory_search.search.processor import SearchResultProcessor
from memory_search.search.sanitizer import sanitize_fulltext_query
from memory_search.search.truth_scorer import TruthScorer
from memory_search.search.vector_channel import VectorSearchChannel
from memory_search.search.wildcard import WildcardSearchService

__all__ = [
    "QueryClassifier",
    "TruthScorer",
    "SearchResultProcessor",
    "SearchOrchestrator",
    "ExactSearchChannel",
    "VectorSearchChannel",
    "WildcardSearchService",
    "EmbeddingServiceProtocol",
    "SentenceTransformerEmbedder",
    "sanitize_fulltext_query",
    # Models
    "ChannelResult",
    "ExactMatchCandidate",
    "MatchEvidence",
    "QueryIntent",
    "QueryType",
    "RankedResult",
    "TruthLevel",
    "VectorCandidate",
    # Exceptions
    "SearchError",
    "InvalidQueryError",
    "CapabilityMissingError",
    "SearchChannelError",
    "FulltextIndexMissingError",
    "ChannelCancelledError",
]
