"""
Unit tests for wildcard retrieval.
"""

from __future__ import annotations

import pytest

from memory_search.graph.exceptions import Neo4jQueryError
from memory_search.graph.neo4j_client import FakeNeo4jClient
from memory_search.search.exceptions import InvalidQueryError, SearchChannelError
from memory_search.search.wildcard import WildcardSearchService
from tests.fakes import WILDCARD_FRAGMENT, DriverInteger, memory_row, related_row


@pytest.fixture
def service(fake_client: FakeNeo4jClient) -> WildcardSearchService:
    return WildcardSearchService(fake_client, max_graph_depth=2, max_related_items=3)


class TestWildcardQuery:
    """Query construction."""

    def test_query_with_context(self, service: WildcardSearchService) -> None:
        cypher = service.build_query(include_graph_context=True, memory_types=["project"])

        assert "WHERE m.memoryType IN $memoryTypes" in cypher
        assert "LIMIT $limit" in cypher
        assert "AS ancestors" in cypher
        assert "AS descendants" in cypher
        assert "[0..$maxRelatedItems]" in cypher
        assert "*1..2" in cypher
        assert cypher.rstrip().endswith("ORDER BY createdAt DESC, id ASC")

    def test_query_without_context(self, service: WildcardSearchService) -> None:
        cypher = service.build_query(include_graph_context=False, memory_types=None)

        assert "ancestors" not in cypher
        assert "$memoryTypes" not in cypher


class TestWildcardSearch:
    """Decoding and parameters."""

    @pytest.mark.asyncio
    async def test_results_scored_one_with_context(
        self, fake_client: FakeNeo4jClient, service: WildcardSearchService
    ) -> None:
        fake_client.add_response(
            WILDCARD_FRAGMENT,
            [
                memory_row(
                    "m2",
                    "Newer",
                    created_at="2026-02-01T00:00:00Z",
                    observations=[{"id": "o1", "content": "first", "createdAt": "t1"}],
                    tags=["ml"],
                    ancestors=[related_row("p1", "Parent", "CONTAINS", DriverInteger(1))],
                    descendants=[],
                ),
                memory_row("m1", "Older", ancestors=[], descendants=[]),
            ],
        )

        results = await service.search(limit=10, include_graph_context=True)

        assert [r.id for r in results] == ["m2", "m1"]
        assert all(r.score == 1.0 for r in results)
        assert results[0].observations[0]["content"] == "first"
        assert results[0].tags == ["ml"]
        assert results[0].related is not None
        assert results[0].related.ancestors[0].distance == 1
        assert results[0].related.descendants is None
        assert results[1].related is None
        assert "related" not in results[1].to_dict()

        _, params = fake_client.calls_matching(WILDCARD_FRAGMENT)[0]
        assert params == {"limit": 10, "maxRelatedItems": 3}

    @pytest.mark.asyncio
    async def test_related_lists_capped(
        self, fake_client: FakeNeo4jClient, service: WildcardSearchService
    ) -> None:
        ancestors = [related_row(f"p{i}", f"Parent {i}", "CONTAINS") for i in range(5)]
        fake_client.add_response(
            WILDCARD_FRAGMENT, [memory_row("m1", "One", ancestors=ancestors, descendants=[])]
        )

        results = await service.search(limit=10)

        assert results[0].related is not None
        assert len(results[0].related.ancestors) == 3

    @pytest.mark.asyncio
    async def test_no_context_requested(
        self, fake_client: FakeNeo4jClient, service: WildcardSearchService
    ) -> None:
        fake_client.add_response(WILDCARD_FRAGMENT, [memory_row("m1", "One")])

        results = await service.search(limit=5, include_graph_context=False, memory_types=["note"])

        assert results[0].related is None
        _, params = fake_client.calls_matching(WILDCARD_FRAGMENT)[0]
        assert params == {"limit": 5, "memoryTypes": ["note"]}

    @pytest.mark.asyncio
    async def test_truncates_to_limit(
        self, fake_client: FakeNeo4jClient, service: WildcardSearchService
    ) -> None:
        fake_client.add_response(
            WILDCARD_FRAGMENT, [memory_row(f"m{i}", f"Memory {i}") for i in range(4)]
        )

        results = await service.search(limit=2, include_graph_context=False)

        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_query_failure(
        self, fake_client: FakeNeo4jClient, service: WildcardSearchService
    ) -> None:
        fake_client.add_response(WILDCARD_FRAGMENT, Neo4jQueryError("boom"))

        with pytest.raises(SearchChannelError) as exc_info:
            await service.search(limit=5)

        assert exc_info.value.channel == "wildcard"

    @pytest.mark.asyncio
    async def test_rejects_non_positive_limit(self, service: WildcardSearchService) -> None:
        with pytest.raises(InvalidQueryError):
            await service.search(limit=0)
