# Graph module for Neo4j integration
"""
Graph layer for the memory store including:
- Neo4jClient: Repository pattern client, one session per query
- TraversalQueryBuilder / GraphTraversal: bounded relationship walks
- GraphContextEnricher: batch ancestors/descendants for search results
- SchemaManager: constraints and indexes used by search
"""

from memory_search.graph.context import GraphContextEnricher
from memory_search.graph.exceptions import (
    InvalidTraversalOptionsError,
    Neo4jConnectionError,
    Neo4jError,
    Neo4jQueryError,
    Neo4jTransactionError,
)
from memory_search.graph.health import check_neo4j_health
from memory_search.graph.neo4j_client import (
    FakeNeo4jClient,
    Neo4jClient,
    Neo4jClientProtocol,
)
from memory_search.graph.schema import (
    NodeLabels,
    RelationshipLabels,
    SchemaManager,
)
from memory_search.graph.traversal import (
    GraphContext,
    GraphTraversal,
    RelatedMemory,
    TraversalDirection,
    TraversalOptions,
    TraversalQuery,
    TraversalQueryBuilder,
    process_traversal_results,
)

__all__ = [
    # Exceptions
    "Neo4jError",
    "Neo4jConnectionError",
    "Neo4jQueryError",
    "Neo4jTransactionError",
    "InvalidTraversalOptionsError",
    # Client
    "Neo4jClient",
    "Neo4jClientProtocol",
    "FakeNeo4jClient",
    "check_neo4j_health",
    # Traversal
    "GraphContext",
    "GraphContextEnricher",
    "GraphTraversal",
    "RelatedMemory",
    "TraversalDirection",
    "TraversalOptions",
    "TraversalQuery",
    "TraversalQueryBuilder",
    "process_traversal_results",
    # Schema
    "NodeLabels",
    "RelationshipLabels",
    "SchemaManager",
]
