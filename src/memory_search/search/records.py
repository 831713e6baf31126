"""
Full memory record retrieval shared by wildcard search and enrichment.

Observations and tags are each aggregated in their own WITH step, so a
memory with many observations and many tags still yields one row.
"""

from __future__ import annotations

from typing import Any

from memory_search.graph.decoding import (
    decode_observations,
    decode_tags,
    parse_metadata,
    to_text,
)
from memory_search.search.models import RankedResult

DETAIL_STAGES = """
OPTIONAL MATCH (m)-[:HAS_OBSERVATION]->(o:Observation)
WITH m, o
ORDER BY o.createdAt ASC
WITH m, collect(CASE WHEN o IS NULL THEN null ELSE {
    id: o.id,
    content: o.content,
    createdAt: o.createdAt
} END) AS observations
OPTIONAL MATCH (m)-[:HAS_TAG]->(t:Tag)
WITH m, observations, collect(DISTINCT t.name) AS tags
""".strip()

RECORD_PROJECTION = """
m.id AS id,
m.name AS name,
m.memoryType AS type,
m.metadata AS metadata,
m.createdAt AS createdAt,
m.modifiedAt AS modifiedAt,
m.lastAccessed AS lastAccessed,
observations,
tags
""".strip()


def type_filter_clause(memory_types: list[str] | None, prefix: str = "WHERE") -> str:
    """Placeholder-based memoryType filter, or an empty string."""
    if not memory_types:
        return ""
    return f"{prefix} m.memoryType IN $memoryTypes"


def build_records_query(memory_types: list[str] | None = None) -> str:
    """Fetch full records for ``$ids``, honouring the type filter."""
    return "\n".join(
        [
            "MATCH (m:Memory)",
            "WHERE m.id IN $ids",
            type_filter_clause(memory_types, prefix="AND"),
            DETAIL_STAGES,
            f"RETURN {RECORD_PROJECTION}",
        ]
    )


def decode_memory_record(row: dict[str, Any], score: float = 0.0) -> RankedResult:
    """Decode one full-record row into a result."""
    return RankedResult(
        id=str(row["id"]),
        name=row.get("name") or "",
        type=row.get("type") or "",
        observations=decode_observations(row.get("observations")),
        metadata=parse_metadata(row.get("metadata")),
        score=score,
        created_at=to_text(row.get("createdAt")),
        modified_at=to_text(row.get("modifiedAt")),
        last_accessed=to_text(row.get("lastAccessed")),
        tags=decode_tags(row.get("tags")),
    )


def apply_memory_record(result: RankedResult, row: dict[str, Any]) -> RankedResult:
    """Fill a scored result's display fields from its full record.

    Score, match type and internal diagnostics are left untouched.
    """
    record = decode_memory_record(row)
    result.name = record.name or result.name
    result.type = record.type
    result.observations = record.observations
    result.metadata = record.metadata or result.metadata
    result.created_at = record.created_at
    result.modified_at = record.modified_at
    result.last_accessed = record.last_accessed
    result.tags = record.tags
    return result
