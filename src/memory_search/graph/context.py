"""
Graph-context enrichment for search results.

Computes ancestors and descendants for a batch of memory IDs in a single
round trip. Each direction is collected in its own staged WITH step and
capped before the next one starts, so neither list multiplies the other.

Context is supplementary: a failed batch query degrades to an empty map
and the search still returns its results.
"""

from __future__ import annotations

import logging
from typing import Any

from memory_search.graph.exceptions import Neo4jError
from memory_search.graph.traversal import (
    GraphContext,
    RelatedMemory,
    TraversalDirection,
    TraversalQueryBuilder,
    decode_related_memory,
)

logger = logging.getLogger(__name__)


def decode_related_list(raw: Any, limit: int) -> list[RelatedMemory]:
    """Decode a collected list of related-memory maps, capped at limit."""
    if not isinstance(raw, list):
        return []

    related: list[RelatedMemory] = []
    seen: set[str] = set()
    for entry in raw:
        item = decode_related_memory(entry) if isinstance(entry, dict) else None
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        related.append(item)
        if len(related) >= limit:
            break
    return related


class GraphContextEnricher:
    """Batch ancestors/descendants lookup for search enrichment.

    Usage:
        enricher = GraphContextEnricher(client, max_graph_depth=2, max_related_items=3)
        contexts = await enricher.get_graph_context(["m1", "m2"])
        contexts.get("m1")  # GraphContext or absent
    """

    def __init__(
        self,
        client: Any,
        max_graph_depth: int = 2,
        max_related_items: int = 3,
        builder: TraversalQueryBuilder | None = None,
    ) -> None:
        """Initialize enricher.

        Args:
            client: Neo4jClient or FakeNeo4jClient
            max_graph_depth: Hop depth for both directions
            max_related_items: Cap per direction list
            builder: Traversal builder providing the ceiling and Cypher stages
        """
        if max_related_items < 1:
            raise ValueError("max_related_items must be >= 1")

        self._client = client
        self._builder = builder or TraversalQueryBuilder()
        self._depth = self._builder.resolve_depth(max_graph_depth)
        self._max_related_items = max_related_items

    @property
    def max_related_items(self) -> int:
        """Get the per-direction cap."""
        return self._max_related_items

    def build_batch_query(self) -> str:
        """Build the batch ancestors/descendants query."""
        ancestors = self._builder.build_related_stage(
            anchor="m",
            output="ancestors",
            direction=TraversalDirection.INBOUND,
            depth=self._depth,
            carried=[],
        )
        descendants = self._builder.build_related_stage(
            anchor="m",
            output="descendants",
            direction=TraversalDirection.OUTBOUND,
            depth=self._depth,
            carried=["ancestors"],
        )
        return "\n".join(
            [
                "UNWIND $memoryIds AS memoryId",
                "MATCH (m:Memory {id: memoryId})",
                ancestors,
                descendants,
                "RETURN m.id AS id, ancestors, descendants",
            ]
        )

    async def get_graph_context(self, memory_ids: list[str]) -> dict[str, GraphContext]:
        """Fetch graph context for many memories in one query.

        Args:
            memory_ids: IDs of the surviving search results

        Returns:
            Map of memory ID to GraphContext. Memories without any
            relationship are absent. Empty on query failure.
        """
        ids = list(dict.fromkeys(i for i in memory_ids if i))
        if not ids:
            return {}

        try:
            rows = await self._client.query(
                self.build_batch_query(),
                {"memoryIds": ids, "maxRelatedItems": self._max_related_items},
            )
        except Neo4jError as e:
            logger.warning(
                "Graph context query failed, continuing without context",
                extra={"memory_count": len(ids), "error": str(e)},
            )
            return {}

        contexts: dict[str, GraphContext] = {}
        for row in rows:
            memory_id = row.get("id")
            if memory_id is None:
                continue
            context = GraphContext.from_lists(
                decode_related_list(row.get("ancestors"), self._max_related_items),
                decode_related_list(row.get("descendants"), self._max_related_items),
            )
            if context is not None:
                contexts[str(memory_id)] = context
        return contexts
