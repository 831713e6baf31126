"""
Dependency injection for API services.

The container is built once at startup from one Neo4j client and one
embedder; every request reuses the same orchestrator and traversal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from memory_search.core.config import Settings, get_settings
from memory_search.graph.traversal import GraphTraversal, TraversalQueryBuilder
from memory_search.search.orchestrator import SearchOrchestrator


@dataclass
class ServiceContainer:
    """Container for all service dependencies."""

    settings: Settings = field(default_factory=get_settings)
    graph_client: Any | None = None
    embedding_service: Any | None = None
    orchestrator: SearchOrchestrator | None = None
    traversal: GraphTraversal | None = None


def build_services(
    graph_client: Any,
    embedding_service: Any | None = None,
    settings: Settings | None = None,
) -> ServiceContainer:
    """Wire orchestrator and traversal around shared collaborators.

    Args:
        graph_client: Neo4jClient or FakeNeo4jClient
        embedding_service: EmbeddingServiceProtocol implementation, optional
        settings: Settings (defaults to get_settings())

    Returns:
        Populated ServiceContainer
    """
    settings = settings or get_settings()
    builder = TraversalQueryBuilder(
        max_depth_ceiling=settings.max_traversal_depth,
        default_depth=settings.default_traversal_depth,
        result_limit=settings.traversal_result_limit,
    )
    return ServiceContainer(
        settings=settings,
        graph_client=graph_client,
        embedding_service=embedding_service,
        orchestrator=SearchOrchestrator(graph_client, embedding_service, settings),
        traversal=GraphTraversal(client=graph_client, builder=builder),
    )
