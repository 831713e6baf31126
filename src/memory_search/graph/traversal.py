"""
Relationship traversal over the memory graph.

Memories are linked by directed RELATES_TO edges carrying a relationType,
a strength in [0, 1], a source (agent, user, system) and createdAt:
- OUTBOUND: what a memory influences (origin)-[:RELATES_TO*]->(related)
- INBOUND: what influences a memory (origin)<-[:RELATES_TO*]-(related)
- BOTH: every connected memory regardless of edge direction

Every path is written starting at the origin, so relationships(path)[0]
is always the hop adjacent to the origin. That hop is the "relation"
reported for a related memory, taken from its shortest path.

Design follows:
- Repository pattern, duck-typed client (Neo4jClient or FakeNeo4jClient)
- Bounded variable-length paths (1..depth) so traversal never runs away
- All values travel as query parameters; the only literal spliced into
  the Cypher text is the validated integer depth bound, which Cypher
  does not accept as a parameter
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from memory_search.graph.decoding import to_plain_float, to_plain_int, to_text
from memory_search.graph.exceptions import InvalidTraversalOptionsError

# =============================================================================
# Constants
# =============================================================================

_DEFAULT_MAX_DEPTH_CEILING = 5
_DEFAULT_DEPTH = 2
_DEFAULT_RESULT_LIMIT = 50

_RELATIONSHIP = "RELATES_TO"


# =============================================================================
# Enums and Data Classes
# =============================================================================


class TraversalDirection(Enum):
    """Direction of traversal along RELATES_TO edges."""

    OUTBOUND = "outbound"
    INBOUND = "inbound"
    BOTH = "both"


# (left, right) halves of the relationship pattern, written from the origin
_ARROWS: dict[TraversalDirection, tuple[str, str]] = {
    TraversalDirection.OUTBOUND: ("-", "->"),
    TraversalDirection.INBOUND: ("<-", "-"),
    TraversalDirection.BOTH: ("-", "-"),
}

_DIRECTION_DESCRIPTIONS: dict[TraversalDirection, str] = {
    TraversalDirection.OUTBOUND: "outbound: What this memory influences",
    TraversalDirection.INBOUND: "inbound: What influences this memory",
    TraversalDirection.BOTH: "both: All connected memories (default)",
}


@dataclass(frozen=True)
class TraversalOptions:
    """Caller-supplied traversal request.

    Attributes:
        traverse_from: ID of the origin memory
        traverse_relations: Optional allow-list of relationType values;
            every hop on a path must use one of them
        max_depth: Hop bound (None uses the configured default)
        traverse_direction: outbound, inbound or both
    """

    traverse_from: str
    traverse_relations: list[str] | None = None
    max_depth: int | None = None
    traverse_direction: TraversalDirection | str = TraversalDirection.BOTH


@dataclass(frozen=True)
class TraversalQuery:
    """A built traversal query ready for execution."""

    query_text: str
    parameters: dict[str, Any]


@dataclass
class RelatedMemory:
    """A memory reached from another memory through RELATES_TO edges.

    Attributes:
        id: Related memory ID
        name: Related memory name
        type: Related memory's memoryType
        relation: relationType of the hop adjacent to the origin
        distance: Hop count of the shortest path (plain int >= 1)
        strength: Strength of that hop, if recorded
        source: Who created that hop (agent, user, system), if recorded
        created_at: When that hop was created, if recorded
    """

    id: str
    name: str
    type: str
    relation: str
    distance: int
    strength: float | None = None
    source: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting optional fields that are absent."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "relation": self.relation,
            "distance": self.distance,
        }
        if self.strength is not None:
            data["strength"] = self.strength
        if self.source is not None:
            data["source"] = self.source
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        return data


@dataclass
class GraphContext:
    """Ancestors and descendants of one memory.

    A list is None (omitted) rather than empty when there are no
    relationships in that direction.
    """

    ancestors: list[RelatedMemory] | None = None
    descendants: list[RelatedMemory] | None = None

    @classmethod
    def from_lists(
        cls,
        ancestors: list[RelatedMemory],
        descendants: list[RelatedMemory],
    ) -> GraphContext | None:
        """Build a context, or None when both directions are empty."""
        if not ancestors and not descendants:
            return None
        return cls(
            ancestors=ancestors or None,
            descendants=descendants or None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting absent directions."""
        data: dict[str, Any] = {}
        if self.ancestors:
            data["ancestors"] = [item.to_dict() for item in self.ancestors]
        if self.descendants:
            data["descendants"] = [item.to_dict() for item in self.descendants]
        return data


# =============================================================================
# Row Decoding
# =============================================================================


def decode_related_memory(row: dict[str, Any]) -> RelatedMemory | None:
    """Decode one related-memory row or map.

    Returns None for rows without an id or with a hop distance below 1.
    """
    if not row or row.get("id") is None:
        return None

    distance = to_plain_int(row.get("distance"))
    if distance < 1:
        return None

    return RelatedMemory(
        id=str(row["id"]),
        name=row.get("name") or "",
        type=row.get("type") or "",
        relation=row.get("relation") or "",
        distance=distance,
        strength=to_plain_float(row.get("strength")),
        source=row.get("source"),
        created_at=to_text(row.get("createdAt")),
    )


def process_traversal_results(
    rows: list[dict[str, Any]],
    limit: int | None = None,
) -> list[RelatedMemory]:
    """Convert traversal rows into RelatedMemory objects.

    Hop distances come back from the driver as native integers and leave
    here as plain ints. Duplicate ids keep their first (closest) row.

    Args:
        rows: Raw result rows
        limit: Optional cap on the number of related memories

    Returns:
        Decoded related memories in row order
    """
    related: list[RelatedMemory] = []
    seen: set[str] = set()
    for row in rows:
        item = decode_related_memory(row)
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        related.append(item)
        if limit is not None and len(related) >= limit:
            break
    return related


# =============================================================================
# Query Builder
# =============================================================================


class TraversalQueryBuilder:
    """Builds bounded relationship queries.

    Used directly for explicit traversal requests and, through
    build_related_stage(), by the graph-context enricher and the wildcard
    service to collect ancestors/descendants inside larger queries.

    Usage:
        builder = TraversalQueryBuilder(max_depth_ceiling=5)
        query = builder.build(TraversalOptions(
            traverse_from="mem-1",
            traverse_relations=["DEPENDS_ON"],
            max_depth=2,
            traverse_direction="outbound",
        ))
        rows = await client.query(query.query_text, query.parameters)
        related = process_traversal_results(rows)
    """

    def __init__(
        self,
        max_depth_ceiling: int = _DEFAULT_MAX_DEPTH_CEILING,
        default_depth: int = _DEFAULT_DEPTH,
        result_limit: int = _DEFAULT_RESULT_LIMIT,
    ) -> None:
        """Initialize builder limits.

        Args:
            max_depth_ceiling: Global ceiling every depth is clamped to
            default_depth: Depth used when options omit one
            result_limit: Maximum rows an explicit traversal returns

        Raises:
            ValueError: If any limit is below 1
        """
        if max_depth_ceiling < 1 or default_depth < 1 or result_limit < 1:
            raise ValueError("Traversal limits must be >= 1")

        self._max_depth_ceiling = max_depth_ceiling
        self._default_depth = min(default_depth, max_depth_ceiling)
        self._result_limit = result_limit

    @property
    def max_depth_ceiling(self) -> int:
        """Get the global depth ceiling."""
        return self._max_depth_ceiling

    @property
    def result_limit(self) -> int:
        """Get the explicit traversal row cap."""
        return self._result_limit

    @staticmethod
    def supported_directions() -> list[str]:
        """Describe each supported direction for user guidance."""
        return [_DIRECTION_DESCRIPTIONS[direction] for direction in TraversalDirection]

    # =========================================================================
    # Validation
    # =========================================================================

    def resolve_direction(self, direction: TraversalDirection | str | None) -> TraversalDirection:
        """Parse a direction value.

        Raises:
            InvalidTraversalOptionsError: If direction is not outbound, inbound or both
        """
        if direction is None:
            return TraversalDirection.BOTH
        if isinstance(direction, TraversalDirection):
            return direction
        if isinstance(direction, str):
            try:
                return TraversalDirection(direction.strip().lower())
            except ValueError:
                pass
        valid = ", ".join(d.value for d in TraversalDirection)
        raise InvalidTraversalOptionsError(
            f"Invalid traversal direction: {direction!r}. Valid options: {valid}",
            field="traverse_direction",
        )

    def resolve_depth(self, max_depth: int | None) -> int:
        """Validate a depth and clamp it to the ceiling.

        Raises:
            InvalidTraversalOptionsError: If depth is not an integer >= 1
        """
        if max_depth is None:
            return self._default_depth
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise InvalidTraversalOptionsError(
                f"maxDepth must be an integer, got {max_depth!r}",
                field="max_depth",
            )
        if max_depth < 1:
            raise InvalidTraversalOptionsError(
                f"maxDepth must be >= 1, got {max_depth}",
                field="max_depth",
            )
        return min(max_depth, self._max_depth_ceiling)

    def validate(self, options: TraversalOptions) -> None:
        """Reject invalid options before any query is built.

        Raises:
            InvalidTraversalOptionsError: On a missing origin, an empty or
                malformed relation list, a bad direction or a bad depth
        """
        if not isinstance(options.traverse_from, str) or not options.traverse_from.strip():
            raise InvalidTraversalOptionsError(
                "traverseFrom memory ID is required for graph traversal",
                field="traverse_from",
            )

        relations = options.traverse_relations
        if relations is not None:
            if len(relations) == 0:
                raise InvalidTraversalOptionsError(
                    "traverseRelations cannot be empty if provided",
                    field="traverse_relations",
                )
            if any(not isinstance(r, str) or not r.strip() for r in relations):
                raise InvalidTraversalOptionsError(
                    "traverseRelations entries must be non-empty strings",
                    field="traverse_relations",
                )

        self.resolve_direction(options.traverse_direction)
        self.resolve_depth(options.max_depth)

    # =========================================================================
    # Query Construction
    # =========================================================================

    def build(self, options: TraversalOptions) -> TraversalQuery:
        """Build the traversal query for one origin memory.

        Related memories are distinct, reported with their shortest path's
        hop count and the relation adjacent to the origin, ordered by
        distance then name, and capped at the result limit.

        Raises:
            InvalidTraversalOptionsError: If options are invalid
        """
        self.validate(options)

        direction = self.resolve_direction(options.traverse_direction)
        depth = self.resolve_depth(options.max_depth)
        left, right = _ARROWS[direction]

        parameters: dict[str, Any] = {
            "startId": options.traverse_from,
            "limit": self._result_limit,
        }

        relation_filter = ""
        if options.traverse_relations:
            relation_filter = (
                "\n  AND ALL(rel IN relationships(path) WHERE rel.relationType IN $relationTypes)"
            )
            parameters["relationTypes"] = list(options.traverse_relations)

        query_text = f"""
MATCH (origin:Memory {{id: $startId}})
MATCH path = (origin){left}[:{_RELATIONSHIP}*1..{depth}]{right}(related:Memory)
WHERE related <> origin AND related.id IS NOT NULL{relation_filter}
WITH related, path
ORDER BY length(path) ASC, relationships(path)[0].relationType ASC
WITH related, head(collect(path)) AS shortest
WITH related, length(shortest) AS distance, relationships(shortest)[0] AS firstRel
RETURN related.id AS id,
       related.name AS name,
       related.memoryType AS type,
       distance,
       firstRel.relationType AS relation,
       firstRel.strength AS strength,
       firstRel.source AS source,
       firstRel.createdAt AS createdAt
ORDER BY distance ASC, name ASC
LIMIT $limit
""".strip()

        return TraversalQuery(query_text=query_text, parameters=parameters)

    def build_related_stage(
        self,
        anchor: str,
        output: str,
        direction: TraversalDirection,
        depth: int,
        carried: list[str],
        limit_parameter: str = "maxRelatedItems",
    ) -> str:
        """Build a staged WITH block that collects related memories.

        The block groups by ``anchor`` plus the ``carried`` variables, so
        earlier aggregates (observations, tags, the other direction) pass
        through untouched and never cross-join with this one. The result
        is a list variable named ``output`` holding at most
        ``$<limit_parameter>`` maps, closest first.

        Args:
            anchor: Variable bound to the memory being enriched
            output: Name of the list variable to produce
            direction: INBOUND for ancestors, OUTBOUND for descendants
            depth: Hop bound (clamped to the ceiling)
            carried: Variables already aggregated that must be preserved
            limit_parameter: Parameter name holding the per-list cap
        """
        depth = self.resolve_depth(depth)
        left, right = _ARROWS[direction]
        carry = ", ".join([anchor, *carried])
        node = f"{output}Node"
        path = f"{output}Path"
        shortest = f"{output}Shortest"

        return f"""
OPTIONAL MATCH {path} = ({anchor}){left}[:{_RELATIONSHIP}*1..{depth}]{right}({node}:Memory)
WHERE {node} <> {anchor} AND {node}.id IS NOT NULL
WITH {carry}, {node}, {path}
ORDER BY length({path}) ASC, relationships({path})[0].relationType ASC
WITH {carry}, {node}, head(collect({path})) AS {shortest}
ORDER BY length({shortest}) ASC, {node}.name ASC
WITH {carry}, collect(CASE WHEN {node} IS NULL THEN null ELSE {{
    id: {node}.id,
    name: {node}.name,
    type: {node}.memoryType,
    relation: relationships({shortest})[0].relationType,
    distance: length({shortest}),
    strength: relationships({shortest})[0].strength,
    source: relationships({shortest})[0].source,
    createdAt: relationships({shortest})[0].createdAt
}} END)[0..${limit_parameter}] AS {output}
""".strip()


# =============================================================================
# GraphTraversal
# =============================================================================


@dataclass
class GraphTraversal:
    """Executes explicit traversal requests.

    Failures propagate: traversal is the primary requested operation,
    unlike search enrichment where context is supplementary.
    """

    client: Any
    builder: TraversalQueryBuilder = field(default_factory=TraversalQueryBuilder)

    async def traverse(self, options: TraversalOptions) -> list[RelatedMemory]:
        """Run a traversal and return decoded related memories.

        Raises:
            InvalidTraversalOptionsError: If options are invalid
            Neo4jQueryError: If the query fails
        """
        query = self.builder.build(options)
        rows = await self.client.query(query.query_text, query.parameters)
        return process_traversal_results(rows, limit=self.builder.result_limit)
