"""
Search orchestration for one call.

    Validate -> Classify -> (Wildcard | Channel dispatch) -> Combine
             -> Enrich -> Truncate -> Return

Channel policy:
- The exact channel always runs; its errors propagate.
- The vector channel runs only for semantic queries when enabled; any
  error from it (capability missing, query failure, cancellation) is
  logged and treated as zero candidates.
- Both channels are dispatched concurrently and joined before combining.

Truncation to ``limit`` is the last step, after enrichment.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any

from memory_search.core.config import Settings, get_settings
from memory_search.graph.context import GraphContextEnricher
from memory_search.graph.exceptions import Neo4jError
from memory_search.graph.traversal import TraversalQueryBuilder
from memory_search.search.classifier import QueryClassifier
from memory_search.search.exact_channel import ExactSearchChannel
from memory_search.search.exceptions import InvalidQueryError, SearchChannelError
from memory_search.search.models import ChannelResult, QueryIntent, QueryType, RankedResult
from memory_search.search.processor import SearchResultProcessor
from memory_search.search.records import apply_memory_record, build_records_query
from memory_search.search.truth_scorer import TruthScorer
from memory_search.search.vector_channel import VectorSearchChannel
from memory_search.search.wildcard import WildcardSearchService

logger = logging.getLogger(__name__)

# Channels over-fetch so threshold filtering still leaves enough results
_CHANNEL_FETCH_MULTIPLIER = 2


class SearchOrchestrator:
    """Composition root for memory search.

    Components are built once per orchestrator from the client, the
    embedder and settings; nothing is looked up from global state.

    Usage:
        orchestrator = SearchOrchestrator(client, embedder, settings)
        results = await orchestrator.search("machine learning", limit=5)
    """

    def __init__(
        self,
        client: Any,
        embedder: Any | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize orchestrator and its components.

        Args:
            client: Neo4jClient or FakeNeo4jClient
            embedder: EmbeddingServiceProtocol implementation; None disables
                the vector channel
            settings: Settings (defaults to get_settings())
        """
        self._settings = settings or get_settings()
        self._client = client

        builder = TraversalQueryBuilder(
            max_depth_ceiling=self._settings.max_traversal_depth,
            default_depth=self._settings.default_traversal_depth,
            result_limit=self._settings.traversal_result_limit,
        )

        self.classifier = QueryClassifier()
        self.processor = SearchResultProcessor(TruthScorer())
        self.exact_channel = ExactSearchChannel(
            client,
            metadata_index=self._settings.metadata_index_name,
            observation_index=self._settings.observation_index_name,
        )
        self.vector_channel: VectorSearchChannel | None = None
        if embedder is not None and self._settings.enable_vector_search:
            self.vector_channel = VectorSearchChannel(client, embedder)
        self.wildcard = WildcardSearchService(
            client,
            max_graph_depth=self._settings.max_graph_depth,
            max_related_items=self._settings.max_related_items,
            builder=builder,
        )
        self.enricher = GraphContextEnricher(
            client,
            max_graph_depth=self._settings.max_graph_depth,
            max_related_items=self._settings.max_related_items,
            builder=builder,
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate(
        self,
        query: Any,
        limit: Any,
        threshold: Any,
        memory_types: Any,
    ) -> tuple[int, float, list[str] | None]:
        if not isinstance(query, str):
            raise InvalidQueryError("Query must be a string", field="query")

        if limit is None:
            limit = self._settings.search_default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidQueryError(
                f"limit must be a positive integer, got {limit!r}", field="limit"
            )

        if threshold is None:
            threshold = self._settings.search_default_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise InvalidQueryError(
                f"threshold must be a number, got {threshold!r}", field="threshold"
            )
        if not 0.0 <= threshold <= 1.0:
            raise InvalidQueryError(
                f"threshold must be between 0 and 1, got {threshold}", field="threshold"
            )

        if memory_types is not None:
            if not isinstance(memory_types, list) or any(
                not isinstance(t, str) or not t for t in memory_types
            ):
                raise InvalidQueryError(
                    "memoryTypes must be a list of non-empty strings", field="memory_types"
                )
            memory_types = memory_types or None

        return limit, float(threshold), memory_types

    # =========================================================================
    # Search
    # =========================================================================

    async def search(
        self,
        query: str,
        limit: int | None = None,
        include_graph_context: bool = True,
        memory_types: list[str] | None = None,
        threshold: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[RankedResult]:
        """Search memories.

        Args:
            query: Free text, an identifier, or "*" / "" / "all"
            limit: Maximum results (default from settings)
            include_graph_context: Attach ancestors/descendants
            memory_types: Optional memoryType allow-list
            threshold: Minimum visible score (default from settings)
            cancel_event: Optional cancellation signal for channel calls

        Returns:
            At most ``limit`` results, best first

        Raises:
            InvalidQueryError: On invalid input, before any query runs
            SearchChannelError: If the exact channel or record retrieval fails
        """
        limit, threshold, memory_types = self._validate(query, limit, threshold, memory_types)
        intent = self.classifier.classify(query)

        if intent.type is QueryType.WILDCARD:
            results = await self.wildcard.search(limit, include_graph_context, memory_types)
            return results[:limit]

        exact_result, vector_result = await self._dispatch(
            intent, limit, threshold, memory_types, cancel_event
        )
        if not exact_result.ok:
            assert exact_result.error is not None  # For type checker
            raise exact_result.error
        if not vector_result.ok:
            logger.warning(
                "Vector channel failed, continuing with exact results",
                extra={
                    "error": str(vector_result.error),
                    "error_type": type(vector_result.error).__name__,
                },
            )

        ranked = self.processor.combine_and_score(
            exact_result.candidates,
            vector_result.candidates,
            intent,
            threshold,
        )

        if ranked:
            ranked = await self._enrich(ranked, include_graph_context, memory_types)

        logger.debug(
            "Search completed",
            extra={
                "query_type": intent.type.value,
                "exact_candidates": len(exact_result.candidates),
                "vector_candidates": len(vector_result.candidates),
                "ranked": len(ranked),
                "limit": limit,
            },
        )
        return ranked[:limit]

    async def _dispatch(
        self,
        intent: QueryIntent,
        limit: int,
        threshold: float,
        memory_types: list[str] | None,
        cancel_event: asyncio.Event | None,
    ) -> tuple[ChannelResult, ChannelResult]:
        fetch_limit = limit * _CHANNEL_FETCH_MULTIPLIER
        exact = self._run_channel(
            "exact",
            self.exact_channel.search(intent.normalized, fetch_limit, memory_types, cancel_event),
        )

        if self.vector_channel is None or not intent.requires_semantic:
            return await exact, ChannelResult(channel="vector")

        vector = self._run_channel(
            "vector",
            self.vector_channel.search(
                intent.normalized, fetch_limit, threshold, memory_types, cancel_event
            ),
        )
        exact_result, vector_result = await asyncio.gather(exact, vector)
        return exact_result, vector_result

    @staticmethod
    async def _run_channel(channel: str, call: Awaitable[list[Any]]) -> ChannelResult:
        try:
            candidates = await call
        except Exception as e:
            return ChannelResult(channel=channel, error=e)
        return ChannelResult(channel=channel, candidates=list(candidates))

    async def _enrich(
        self,
        ranked: list[RankedResult],
        include_graph_context: bool,
        memory_types: list[str] | None,
    ) -> list[RankedResult]:
        ids = [result.id for result in ranked]
        parameters: dict[str, Any] = {"ids": ids}
        if memory_types:
            parameters["memoryTypes"] = list(memory_types)

        try:
            rows = await self._client.query(build_records_query(memory_types), parameters)
        except Neo4jError as e:
            raise SearchChannelError(
                f"Failed to load memory records: {e}",
                channel="enrichment",
                cause=e,
            ) from e

        records = {str(row["id"]): row for row in rows if row.get("id") is not None}
        for result in ranked:
            record = records.get(result.id)
            if record is not None:
                apply_memory_record(result, record)

        if include_graph_context:
            contexts = await self.enricher.get_graph_context(ids)
            for result in ranked:
                result.related = contexts.get(result.id)

        return ranked
