"""
Wildcard search: every memory (optionally type-filtered), newest first.

No scoring: every result gets score 1.0. With graph context requested,
ancestors and descendants are attached in the same query using staged
aggregation (observations, then tags, then each relation direction), so
no dimension cross-joins with another before it is capped.
"""

from __future__ import annotations

import logging
from typing import Any

from memory_search.graph.context import decode_related_list
from memory_search.graph.exceptions import Neo4jError
from memory_search.graph.traversal import (
    GraphContext,
    TraversalDirection,
    TraversalQueryBuilder,
)
from memory_search.search.exceptions import InvalidQueryError, SearchChannelError
from memory_search.search.models import RankedResult
from memory_search.search.records import (
    DETAIL_STAGES,
    RECORD_PROJECTION,
    decode_memory_record,
    type_filter_clause,
)

logger = logging.getLogger(__name__)

CHANNEL_NAME = "wildcard"
WILDCARD_SCORE = 1.0


class WildcardSearchService:
    """Direct retrieval for "*", "" and "all" queries.

    Usage:
        service = WildcardSearchService(client, max_graph_depth=2, max_related_items=3)
        results = await service.search(limit=10, include_graph_context=True)
    """

    def __init__(
        self,
        client: Any,
        max_graph_depth: int = 2,
        max_related_items: int = 3,
        builder: TraversalQueryBuilder | None = None,
    ) -> None:
        """Initialize service.

        Args:
            client: Neo4jClient or FakeNeo4jClient
            max_graph_depth: Hop depth for attached context
            max_related_items: Cap per ancestors/descendants list
            builder: Traversal builder providing the relation stages
        """
        self._client = client
        self._builder = builder or TraversalQueryBuilder()
        self._depth = self._builder.resolve_depth(max_graph_depth)
        self._max_related_items = max_related_items

    def build_query(self, include_graph_context: bool, memory_types: list[str] | None) -> str:
        """Build the wildcard query, with or without relation stages."""
        parts = [
            "MATCH (m:Memory)",
            type_filter_clause(memory_types),
            "WITH m",
            "ORDER BY m.createdAt DESC",
            "LIMIT $limit",
            DETAIL_STAGES,
        ]
        projection = RECORD_PROJECTION

        if include_graph_context:
            parts.append(
                self._builder.build_related_stage(
                    anchor="m",
                    output="ancestors",
                    direction=TraversalDirection.INBOUND,
                    depth=self._depth,
                    carried=["observations", "tags"],
                )
            )
            parts.append(
                self._builder.build_related_stage(
                    anchor="m",
                    output="descendants",
                    direction=TraversalDirection.OUTBOUND,
                    depth=self._depth,
                    carried=["observations", "tags", "ancestors"],
                )
            )
            projection += ",\nancestors,\ndescendants"

        parts.append(f"RETURN {projection}")
        parts.append("ORDER BY createdAt DESC, id ASC")
        return "\n".join(part for part in parts if part)

    async def search(
        self,
        limit: int,
        include_graph_context: bool = True,
        memory_types: list[str] | None = None,
    ) -> list[RankedResult]:
        """Return the newest memories.

        Args:
            limit: Maximum memories to return
            include_graph_context: Attach ancestors/descendants
            memory_types: Optional memoryType allow-list

        Returns:
            Results ordered by createdAt descending, each scored 1.0

        Raises:
            InvalidQueryError: If limit is not positive
            SearchChannelError: If the query fails
        """
        if limit < 1:
            raise InvalidQueryError("limit must be a positive integer", field="limit")

        parameters: dict[str, Any] = {"limit": limit}
        if memory_types:
            parameters["memoryTypes"] = list(memory_types)
        if include_graph_context:
            parameters["maxRelatedItems"] = self._max_related_items

        try:
            rows = await self._client.query(
                self.build_query(include_graph_context, memory_types),
                parameters,
            )
        except Neo4jError as e:
            raise SearchChannelError(
                f"Wildcard search failed: {e}",
                channel=CHANNEL_NAME,
                cause=e,
            ) from e

        results: list[RankedResult] = []
        for row in rows:
            if row.get("id") is None:
                continue
            result = decode_memory_record(row, score=WILDCARD_SCORE)
            if include_graph_context:
                result.related = GraphContext.from_lists(
                    decode_related_list(row.get("ancestors"), self._max_related_items),
                    decode_related_list(row.get("descendants"), self._max_related_items),
                )
            results.append(result)

        return results[:limit]
