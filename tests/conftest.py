"""
Pytest configuration and fixtures for memory-search tests.
"""

import pytest

from memory_search.core.config import Settings
from memory_search.graph.neo4j_client import FakeNeo4jClient
from tests.fakes import FakeEmbeddingService


@pytest.fixture
def settings() -> Settings:
    """Provide test settings with the vector channel enabled."""
    return Settings(
        neo4j_uri="bolt://localhost:7687",
        neo4j_user="neo4j",
        neo4j_password="testpassword",
        max_graph_depth=2,
        max_related_items=3,
        max_traversal_depth=5,
        enable_vector_search=True,
    )


@pytest.fixture
def fake_client() -> FakeNeo4jClient:
    """Connected scripted Neo4j fake."""
    return FakeNeo4jClient(connected=True)


@pytest.fixture
def fake_embedder() -> FakeEmbeddingService:
    """Deterministic embedding service."""
    return FakeEmbeddingService(dimension=8)
