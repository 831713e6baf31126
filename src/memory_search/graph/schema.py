"""
Graph schema helpers for the memory graph.

Provides:
- Node label definitions (Memory, Observation, Tag)
- Relationship type definitions (HAS_OBSERVATION, RELATES_TO, HAS_TAG)
- Constraint and index creation, limited to what search queries use
- Fulltext index validation for the exact channel

Design follows:
- Clean separation of schema from data operations
- Neo4j 5.x schema syntax (IF NOT EXISTS, SHOW FULLTEXT INDEXES)
- Fail fast: a failing schema statement propagates
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

# =============================================================================
# Node Label Definitions
# =============================================================================


class NodeLabels:
    """Node label constants for the memory graph.

    - MEMORY: A stored memory (id, name, memoryType, metadata JSON, timestamps)
    - OBSERVATION: A piece of content attached to a memory
    - TAG: A tag attached to a memory
    """

    MEMORY = "Memory"
    OBSERVATION = "Observation"
    TAG = "Tag"


# =============================================================================
# Relationship Label Definitions
# =============================================================================


class RelationshipLabels:
    """Relationship type constants for the memory graph.

    - HAS_OBSERVATION: Memory owns an observation
    - RELATES_TO: Memory-to-memory edge (relationType, strength, source, createdAt)
    - HAS_TAG: Memory is tagged
    """

    HAS_OBSERVATION = "HAS_OBSERVATION"
    RELATES_TO = "RELATES_TO"
    HAS_TAG = "HAS_TAG"


# =============================================================================
# Schema Manager Class
# =============================================================================


class SchemaManager:
    """Manages constraints and indexes for memory search.

    Usage:
        manager = SchemaManager(client=neo4j_client, settings=settings)
        await manager.init_schema()
        missing = await manager.validate_fulltext_indexes()
    """

    def __init__(self, client: Any, settings: Any) -> None:
        """Initialize schema manager.

        Args:
            client: Neo4j client (Neo4jClient or FakeNeo4jClient)
            settings: Settings with metadata_index_name and observation_index_name
        """
        self._client = client
        self._metadata_index = settings.metadata_index_name
        self._observation_index = settings.observation_index_name

    @property
    def fulltext_index_names(self) -> list[str]:
        """Fulltext indexes the exact channel requires."""
        return [self._metadata_index, self._observation_index]

    # =========================================================================
    # Constraint Creation
    # =========================================================================

    async def ensure_constraints(self) -> None:
        """Create unique constraints on Memory.id and Observation.id."""
        statements = [
            "CREATE CONSTRAINT memory_id_unique IF NOT EXISTS "
            "FOR (m:Memory) REQUIRE m.id IS UNIQUE",
            "CREATE CONSTRAINT observation_id_unique IF NOT EXISTS "
            "FOR (o:Observation) REQUIRE o.id IS UNIQUE",
        ]
        for cypher in statements:
            await self._client.execute_write(cypher)

    # =========================================================================
    # Index Creation
    # =========================================================================

    async def ensure_indexes(self) -> None:
        """Create the fulltext and range indexes search queries rely on."""
        # Index names cannot be parameters; they come from settings, not callers
        statements = [
            f"CREATE FULLTEXT INDEX {self._metadata_index} IF NOT EXISTS "
            "FOR (m:Memory) ON EACH [m.metadata, m.name]",
            f"CREATE FULLTEXT INDEX {self._observation_index} IF NOT EXISTS "
            "FOR (o:Observation) ON EACH [o.content]",
            # WHERE m.memoryType IN $memoryTypes
            "CREATE INDEX memory_type_idx IF NOT EXISTS FOR (m:Memory) ON (m.memoryType)",
            # ORDER BY m.createdAt DESC
            "CREATE INDEX memory_created_idx IF NOT EXISTS FOR (m:Memory) ON (m.createdAt)",
        ]
        for cypher in statements:
            await self._client.execute_write(cypher)

    # =========================================================================
    # Full Schema Initialization
    # =========================================================================

    async def init_schema(self) -> None:
        """Create all constraints and indexes.

        Safe to run multiple times (uses IF NOT EXISTS).
        """
        await self.ensure_constraints()
        await self.ensure_indexes()
        logger.info("Memory graph schema initialized")

    # =========================================================================
    # Schema Validation
    # =========================================================================

    async def get_fulltext_indexes(self) -> list[dict[str, Any]]:
        """List existing fulltext indexes with their state."""
        return await self._client.query("SHOW FULLTEXT INDEXES YIELD name, state")

    async def validate_fulltext_indexes(self) -> list[str]:
        """Return required fulltext indexes that are missing or not ONLINE."""
        rows = await self.get_fulltext_indexes()
        online = {
            row.get("name")
            for row in rows
            if str(row.get("state", "ONLINE")).upper() == "ONLINE"
        }
        missing = [name for name in self.fulltext_index_names if name not in online]
        if missing:
            logger.warning("Fulltext indexes unavailable", extra={"missing_indexes": missing})
        return missing
