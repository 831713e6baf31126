"""
Vector similarity search channel.

Similarity is computed inside the graph backend with the Graph Data
Science function gds.similarity.cosine. Each channel instance verifies
that capability once with a fixed probe and caches the outcome; if it is
unavailable the channel fails fast with remediation instead of
approximating similarity in-process.

Per memory the score is max(name similarity, best observation similarity),
filtered by threshold, ordered descending, capped at limit.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from memory_search.graph.exceptions import Neo4jError
from memory_search.search.cancellation import run_cancellable
from memory_search.search.exceptions import (
    CapabilityMissingError,
    InvalidQueryError,
    SearchChannelError,
)
from memory_search.search.models import VectorCandidate

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

CHANNEL_NAME = "vector"
CAPABILITY_NAME = "gds.similarity.cosine"
VERIFICATION_QUERY = "RETURN gds.similarity.cosine([1,2,3], [2,3,4]) AS similarity"

_CAPABILITY_ERROR_MARKERS = ("gds.similarity", "Unknown function")

_REMEDIATION = (
    "Install the Neo4j Graph Data Science plugin (or a distribution bundling it, "
    "such as DozerDB) and verify with: " + VERIFICATION_QUERY
)

VECTOR_QUERY_TEMPLATE = """
MATCH (m:Memory)
{type_filter}
WITH m,
     CASE WHEN m.nameEmbedding IS NOT NULL
          THEN gds.similarity.cosine(m.nameEmbedding, $queryVector)
          ELSE 0.0 END AS nameScore
OPTIONAL MATCH (m)-[:HAS_OBSERVATION]->(o:Observation)
WITH m, nameScore,
     CASE WHEN o.embedding IS NOT NULL
          THEN gds.similarity.cosine(o.embedding, $queryVector)
          ELSE 0.0 END AS obsScore
WITH m, nameScore, coalesce(max(obsScore), 0.0) AS maxObsScore
WITH m, CASE WHEN nameScore >= maxObsScore THEN nameScore ELSE maxObsScore END AS bestScore
WHERE bestScore >= $threshold
RETURN m.id AS id, bestScore AS score
ORDER BY score DESC, id ASC
LIMIT $limit
"""


class VectorSearchChannel:
    """Embedding similarity search with one-time capability verification.

    The verification flag is the only state that outlives a call. Two
    concurrent first calls may both run the probe; both write the same
    result.

    Usage:
        channel = VectorSearchChannel(client, embedder)
        candidates = await channel.search("machine learning", limit=20, threshold=0.1)
    """

    def __init__(self, client: Any, embedder: Any) -> None:
        """Initialize channel.

        Args:
            client: Neo4jClient or FakeNeo4jClient
            embedder: Object implementing EmbeddingServiceProtocol
        """
        self._client = client
        self._embedder = embedder
        self._capability_verified: bool | None = None

    def is_capability_verified(self) -> bool | None:
        """Cached probe outcome: None until probed, then True or False."""
        return self._capability_verified

    async def ensure_capability(self) -> None:
        """Verify the similarity function once per instance.

        A successful probe is cached; a failed one is retried on the next
        call so a repaired backend is picked up.

        Raises:
            CapabilityMissingError: If the probe fails
        """
        if self._capability_verified is True:
            return

        try:
            rows = await self._client.query(VERIFICATION_QUERY)
        except Neo4jError as e:
            self._capability_verified = False
            raise self._capability_error(str(e), cause=e) from e

        similarity = rows[0].get("similarity") if rows else None
        if isinstance(similarity, bool) or not isinstance(similarity, (int, float)):
            self._capability_verified = False
            raise self._capability_error("similarity function returned an invalid result")

        self._capability_verified = True
        logger.debug("Vector similarity capability verified")

    async def search(
        self,
        normalized_query: str,
        limit: int,
        threshold: float,
        memory_types: list[str] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[VectorCandidate]:
        """Run the vector channel.

        Args:
            normalized_query: Lower-cased, whitespace-collapsed query
            limit: Maximum candidates to return
            threshold: Minimum similarity
            memory_types: Optional memoryType allow-list
            cancel_event: Optional cancellation signal

        Returns:
            Candidates with raw cosine similarity, best first

        Raises:
            InvalidQueryError: If limit or threshold is out of range
            CapabilityMissingError: If the similarity function is unavailable
            SearchChannelError: If embedding or the query fails, or on cancellation
        """
        if limit < 1:
            raise InvalidQueryError("limit must be a positive integer", field="limit")
        if not 0.0 <= threshold <= 1.0:
            raise InvalidQueryError("threshold must be between 0 and 1", field="threshold")

        return await run_cancellable(
            self._search(normalized_query, limit, threshold, memory_types),
            cancel_event,
            CHANNEL_NAME,
        )

    async def _search(
        self,
        normalized_query: str,
        limit: int,
        threshold: float,
        memory_types: list[str] | None,
    ) -> list[VectorCandidate]:
        await self.ensure_capability()

        try:
            query_vector = await self._embedder.embed(normalized_query)
        except Exception as e:
            raise SearchChannelError(
                f"Query embedding failed: {e}",
                channel=CHANNEL_NAME,
                cause=e,
            ) from e

        type_filter = "WHERE m.memoryType IN $memoryTypes" if memory_types else ""
        cypher = VECTOR_QUERY_TEMPLATE.format(type_filter=type_filter).strip()
        parameters: dict[str, Any] = {
            "queryVector": list(query_vector),
            "threshold": float(threshold),
            "limit": limit,
        }
        if memory_types:
            parameters["memoryTypes"] = list(memory_types)

        try:
            rows = await self._client.query(cypher, parameters)
        except Neo4jError as e:
            message = str(e)
            if any(marker in message for marker in _CAPABILITY_ERROR_MARKERS):
                self._capability_verified = False
                raise self._capability_error(
                    f"similarity function failed mid-query, the plugin may have been removed: {message}",
                    cause=e,
                ) from e
            raise SearchChannelError(
                f"Vector search query failed: {message}",
                channel=CHANNEL_NAME,
                cause=e,
            ) from e

        candidates = [
            VectorCandidate(id=str(row["id"]), score=float(row["score"]))
            for row in rows
            if row.get("id") is not None and row.get("score") is not None
        ]
        return candidates[:limit]

    @staticmethod
    def _capability_error(detail: str, cause: Exception | None = None) -> CapabilityMissingError:
        return CapabilityMissingError(
            f"Vector similarity requires {CAPABILITY_NAME}, which is not available "
            f"({detail}). {_REMEDIATION}",
            capability=CAPABILITY_NAME,
            verification=VERIFICATION_QUERY,
            cause=cause,
        )
