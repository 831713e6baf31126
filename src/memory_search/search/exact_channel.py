"""
Exact-match search channel.

Runs three queries against the graph:
- fulltext over Memory metadata (and name)
- fulltext over Observation content, joined to the owning Memory
- case-insensitive substring match on Memory.name

Candidates are merged by id (name matches seed the map), ordered by
3 x name + 2 x metadata + 1 x content, and capped at ``limit``.
Type filters are applied inside each query, never afterwards.

The fulltext indexes are a hard requirement: a missing index is an error
with remediation, never a silent fallback.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from memory_search.graph.decoding import parse_metadata
from memory_search.graph.exceptions import Neo4jError
from memory_search.search.cancellation import run_cancellable
from memory_search.search.exceptions import (
    FulltextIndexMissingError,
    InvalidQueryError,
    SearchChannelError,
)
from memory_search.search.models import ExactMatchCandidate, ExactMatchTypes
from memory_search.search.sanitizer import sanitize_fulltext_query

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

CHANNEL_NAME = "exact"

_DEFAULT_METADATA_INDEX = "memory_metadata_idx"
_DEFAULT_OBSERVATION_INDEX = "observation_content_idx"
_INDEX_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_MISSING_INDEX_MARKERS = ("No such index", "IndexNotFound", "There is no such fulltext schema index")


def _type_filter(variable: str, memory_types: list[str] | None, prefix: str = "WHERE") -> str:
    """Return a placeholder-based type filter clause, or an empty string."""
    if not memory_types:
        return ""
    return f"{prefix} {variable}.memoryType IN $memoryTypes"


class ExactSearchChannel:
    """Fulltext and name matching against the memory graph.

    Usage:
        channel = ExactSearchChannel(client)
        candidates = await channel.search("machine learning", limit=20)
    """

    def __init__(
        self,
        client: Any,
        metadata_index: str = _DEFAULT_METADATA_INDEX,
        observation_index: str = _DEFAULT_OBSERVATION_INDEX,
    ) -> None:
        """Initialize channel.

        Args:
            client: Neo4jClient or FakeNeo4jClient
            metadata_index: Fulltext index over Memory metadata/name
            observation_index: Fulltext index over Observation content

        Raises:
            ValueError: If an index name is not a plain identifier
        """
        for index_name in (metadata_index, observation_index):
            if not _INDEX_NAME_PATTERN.match(index_name):
                raise ValueError(f"Invalid fulltext index name: {index_name!r}")

        self._client = client
        self._metadata_index = metadata_index
        self._observation_index = observation_index

    # =========================================================================
    # Query Construction
    # =========================================================================

    def build_metadata_query(self, memory_types: list[str] | None) -> str:
        """Fulltext query over Memory metadata."""
        return f"""
CALL db.index.fulltext.queryNodes('{self._metadata_index}', $query)
YIELD node, score
{_type_filter("node", memory_types)}
RETURN node.id AS id, node.name AS name, node.metadata AS metadata, score
ORDER BY score DESC
LIMIT $limit
""".strip()

    def build_content_query(self, memory_types: list[str] | None) -> str:
        """Fulltext query over Observation content, joined to its Memory."""
        return f"""
CALL db.index.fulltext.queryNodes('{self._observation_index}', $query)
YIELD node, score
MATCH (m:Memory)-[:HAS_OBSERVATION]->(node)
{_type_filter("m", memory_types)}
WITH m, max(score) AS score
RETURN m.id AS id, m.name AS name, m.metadata AS metadata, score
ORDER BY score DESC
LIMIT $limit
""".strip()

    @staticmethod
    def build_name_query(memory_types: list[str] | None) -> str:
        """Case-insensitive substring query on Memory.name."""
        return f"""
MATCH (m:Memory)
WHERE toLower(m.name) CONTAINS $query
{_type_filter("m", memory_types, prefix="AND")}
RETURN m.id AS id, m.name AS name, m.metadata AS metadata,
       toLower(m.name) = $query AS exactNameMatch
ORDER BY exactNameMatch DESC, m.name ASC
LIMIT $limit
""".strip()

    # =========================================================================
    # Search
    # =========================================================================

    async def search(
        self,
        normalized_query: str,
        limit: int,
        memory_types: list[str] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[ExactMatchCandidate]:
        """Run the exact channel.

        Args:
            normalized_query: Lower-cased, whitespace-collapsed query
            limit: Maximum candidates to return
            memory_types: Optional memoryType allow-list
            cancel_event: Optional cancellation signal

        Returns:
            Candidates ordered by match weight

        Raises:
            InvalidQueryError: If limit is not positive
            FulltextIndexMissingError: If a fulltext index is missing
            SearchChannelError: If any query fails or the call is cancelled
        """
        if limit < 1:
            raise InvalidQueryError("limit must be a positive integer", field="limit")

        return await run_cancellable(
            self._search(normalized_query, limit, memory_types),
            cancel_event,
            CHANNEL_NAME,
        )

    async def _search(
        self,
        normalized_query: str,
        limit: int,
        memory_types: list[str] | None,
    ) -> list[ExactMatchCandidate]:
        name_matches = await self._search_name(normalized_query, limit, memory_types)
        fulltext_matches = await self._search_fulltext(normalized_query, limit, memory_types)

        candidates: dict[str, ExactMatchCandidate] = {}
        for candidate in name_matches:
            candidates.setdefault(candidate.id, candidate)

        for candidate in fulltext_matches:
            existing = candidates.get(candidate.id)
            if existing is None:
                candidates[candidate.id] = candidate
                continue
            existing.match_types.exact_metadata |= candidate.match_types.exact_metadata
            existing.match_types.exact_content |= candidate.match_types.exact_content

        # Stable sort keeps name-first insertion order within equal weights
        ordered = sorted(candidates.values(), key=lambda c: c.match_types.weight, reverse=True)
        return ordered[:limit]

    async def _search_fulltext(
        self,
        normalized_query: str,
        limit: int,
        memory_types: list[str] | None,
    ) -> list[ExactMatchCandidate]:
        sanitized = sanitize_fulltext_query(normalized_query)
        if not sanitized.strip():
            return []

        parameters: dict[str, Any] = {"query": sanitized, "limit": limit}
        if memory_types:
            parameters["memoryTypes"] = list(memory_types)

        try:
            metadata_rows = await self._client.query(
                self.build_metadata_query(memory_types), parameters
            )
            content_rows = await self._client.query(
                self.build_content_query(memory_types), parameters
            )
        except Neo4jError as e:
            raise self._fulltext_error(e) from e

        candidates: dict[str, ExactMatchCandidate] = {}
        for row in metadata_rows:
            if row.get("id") is None:
                continue
            candidates.setdefault(
                row["id"],
                self._candidate(row, ExactMatchTypes(exact_metadata=True)),
            )

        for row in content_rows:
            memory_id = row.get("id")
            if memory_id is None:
                continue
            existing = candidates.get(memory_id)
            if existing is not None:
                existing.match_types.exact_content = True
            else:
                candidates[memory_id] = self._candidate(row, ExactMatchTypes(exact_content=True))

        return list(candidates.values())

    async def _search_name(
        self,
        normalized_query: str,
        limit: int,
        memory_types: list[str] | None,
    ) -> list[ExactMatchCandidate]:
        parameters: dict[str, Any] = {"query": normalized_query, "limit": limit}
        if memory_types:
            parameters["memoryTypes"] = list(memory_types)

        try:
            rows = await self._client.query(self.build_name_query(memory_types), parameters)
        except Neo4jError as e:
            raise SearchChannelError(
                f"Exact name search failed: {e}",
                channel=CHANNEL_NAME,
                cause=e,
            ) from e

        return [
            self._candidate(row, ExactMatchTypes(exact_name=True))
            for row in rows
            if row.get("id") is not None
        ]

    def _fulltext_error(self, error: Neo4jError) -> SearchChannelError:
        message = str(error)
        if any(marker in message for marker in _MISSING_INDEX_MARKERS):
            missing = [self._metadata_index, self._observation_index]
            return FulltextIndexMissingError(
                "Fulltext indexes are missing. Check that "
                f"{' and '.join(missing)} exist (SHOW FULLTEXT INDEXES) "
                "and create them with CREATE FULLTEXT INDEX ... IF NOT EXISTS",
                missing_indexes=missing,
                cause=error,
            )
        return SearchChannelError(
            f"Fulltext search failed: {message}",
            channel=CHANNEL_NAME,
            cause=error,
        )

    @staticmethod
    def _candidate(row: dict[str, Any], match_types: ExactMatchTypes) -> ExactMatchCandidate:
        return ExactMatchCandidate(
            id=str(row["id"]),
            name=row.get("name") or "",
            metadata=parse_metadata(row.get("metadata")),
            match_types=match_types,
        )
