"""
Unit tests for batch graph-context enrichment.
"""

from __future__ import annotations

import pytest

from memory_search.graph.context import GraphContextEnricher, decode_related_list
from memory_search.graph.exceptions import Neo4jQueryError
from memory_search.graph.neo4j_client import FakeNeo4jClient
from tests.fakes import CONTEXT_FRAGMENT, DriverInteger, related_row


@pytest.fixture
def enricher(fake_client: FakeNeo4jClient) -> GraphContextEnricher:
    return GraphContextEnricher(fake_client, max_graph_depth=2, max_related_items=3)


class TestBatchQuery:
    """Single round trip with staged aggregation."""

    def test_query_shape(self, enricher: GraphContextEnricher) -> None:
        cypher = enricher.build_batch_query()

        assert cypher.startswith("UNWIND $memoryIds AS memoryId")
        assert "(m)<-[:RELATES_TO*1..2]-(ancestorsNode:Memory)" in cypher
        assert "(m)-[:RELATES_TO*1..2]->(descendantsNode:Memory)" in cypher
        assert "WITH m, ancestors, descendantsNode" in cypher
        assert cypher.endswith("RETURN m.id AS id, ancestors, descendants")

    def test_rejects_zero_cap(self, fake_client: FakeNeo4jClient) -> None:
        with pytest.raises(ValueError):
            GraphContextEnricher(fake_client, max_related_items=0)


class TestGetGraphContext:
    """Decoding, omission and degradation."""

    @pytest.mark.asyncio
    async def test_one_query_for_many_ids(
        self, fake_client: FakeNeo4jClient, enricher: GraphContextEnricher
    ) -> None:
        fake_client.add_response(
            CONTEXT_FRAGMENT,
            [
                {
                    "id": "m1",
                    "ancestors": [related_row("p1", "Parent", "CONTAINS", DriverInteger(1))],
                    "descendants": [related_row("c1", "Child", "DEPENDS_ON", 2)],
                },
                {"id": "m2", "ancestors": [], "descendants": []},
            ],
        )

        contexts = await enricher.get_graph_context(["m1", "m2", "m1"])

        assert len(fake_client.calls) == 1
        _, params = fake_client.calls[0]
        assert params == {"memoryIds": ["m1", "m2"], "maxRelatedItems": 3}
        assert set(contexts) == {"m1"}
        assert contexts["m1"].ancestors[0].distance == 1
        assert contexts["m1"].descendants[0].relation == "DEPENDS_ON"

    @pytest.mark.asyncio
    async def test_lists_capped(
        self, fake_client: FakeNeo4jClient, enricher: GraphContextEnricher
    ) -> None:
        fake_client.add_response(
            CONTEXT_FRAGMENT,
            [
                {
                    "id": "m1",
                    "ancestors": [related_row(f"p{i}", f"P{i}", "CONTAINS") for i in range(6)],
                    "descendants": None,
                }
            ],
        )

        contexts = await enricher.get_graph_context(["m1"])

        assert len(contexts["m1"].ancestors) == 3
        assert contexts["m1"].descendants is None

    @pytest.mark.asyncio
    async def test_empty_ids_skip_query(
        self, fake_client: FakeNeo4jClient, enricher: GraphContextEnricher
    ) -> None:
        assert await enricher.get_graph_context([]) == {}
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_failure_degrades_to_empty(
        self, fake_client: FakeNeo4jClient, enricher: GraphContextEnricher
    ) -> None:
        fake_client.add_response(CONTEXT_FRAGMENT, Neo4jQueryError("timeout"))

        assert await enricher.get_graph_context(["m1"]) == {}


class TestDecodeRelatedList:
    """Collected map lists from staged aggregation."""

    def test_skips_null_and_duplicate_entries(self) -> None:
        raw = [None, related_row("a", "A", "R"), related_row("a", "A", "R", 2), "junk"]

        related = decode_related_list(raw, limit=5)

        assert [r.id for r in related] == ["a"]

    def test_non_list_is_empty(self) -> None:
        assert decode_related_list(None, limit=3) == []
