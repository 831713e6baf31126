"""
Fake implementations and row builders for testing.

These test doubles implement the service protocols without requiring real
infrastructure (Neo4j, embedding models). The scripted Neo4j fake lives in
memory_search.graph.neo4j_client.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from typing import Any

# Cypher fragments identifying each query the search layer issues
METADATA_FRAGMENT = "queryNodes('memory_metadata_idx'"
CONTENT_FRAGMENT = "queryNodes('observation_content_idx'"
NAME_FRAGMENT = "toLower(m.name) CONTAINS $query"
PROBE_FRAGMENT = "gds.similarity.cosine([1,2,3], [2,3,4])"
VECTOR_FRAGMENT = "gds.similarity.cosine(m.nameEmbedding, $queryVector)"
RECORDS_FRAGMENT = "WHERE m.id IN $ids"
CONTEXT_FRAGMENT = "UNWIND $memoryIds AS memoryId"
WILDCARD_FRAGMENT = "ORDER BY m.createdAt DESC"


class FakeEmbeddingService:
    """Fake embedding service for testing."""

    def __init__(self, dimension: int = 768, model_name: str = "fake-model") -> None:
        """Initialize with embedding dimension."""
        self._dimension = dimension
        self._model_name = model_name
        self.calls: list[str] = []
        self._error: Exception | None = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._model_name

    def set_error(self, error: Exception | None) -> None:
        """Make embed() raise the given error."""
        self._error = error

    async def embed(self, text: str) -> list[float]:
        """Return fake embedding."""
        await asyncio.sleep(0)  # Yield to event loop
        self.calls.append(text)
        if self._error is not None:
            raise self._error
        # SECURITY: MD5 used only for test double determinism, not for security.
        hash_value = int(hashlib.md5(text.encode()).hexdigest(), 16)  # noqa: S324
        return [(hash_value >> i) % 256 / 255.0 for i in range(self._dimension)]


def memory_row(
    memory_id: str,
    name: str,
    memory_type: str = "project",
    metadata: dict[str, Any] | str | None = None,
    observations: list[dict[str, Any]] | None = None,
    created_at: str = "2026-01-01T00:00:00Z",
    tags: list[str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a full-record row as returned by record and wildcard queries."""
    if isinstance(metadata, dict):
        metadata = json.dumps(metadata)
    row = {
        "id": memory_id,
        "name": name,
        "type": memory_type,
        "metadata": metadata,
        "createdAt": created_at,
        "modifiedAt": created_at,
        "lastAccessed": created_at,
        "observations": observations or [],
        "tags": tags or [],
    }
    row.update(extra)
    return row


def related_row(
    memory_id: str,
    name: str,
    relation: str,
    distance: Any = 1,
    memory_type: str = "project",
    **extra: Any,
) -> dict[str, Any]:
    """Build a related-memory row or map."""
    row = {
        "id": memory_id,
        "name": name,
        "type": memory_type,
        "relation": relation,
        "distance": distance,
    }
    row.update(extra)
    return row


class DriverInteger:
    """Stand-in for a driver-native integer wrapper exposing toNumber()."""

    def __init__(self, value: int) -> None:
        self.low = value
        self.high = 0

    def toNumber(self) -> int:  # noqa: N802
        return self.low
