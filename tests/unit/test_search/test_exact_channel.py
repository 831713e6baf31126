"""
Unit tests for the exact-match channel.

Uses the scripted FakeNeo4jClient: each sub-query is identified by a
Cypher fragment.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from memory_search.graph.exceptions import Neo4jQueryError
from memory_search.graph.neo4j_client import FakeNeo4jClient
from memory_search.search.exact_channel import ExactSearchChannel
from memory_search.search.exceptions import (
    ChannelCancelledError,
    FulltextIndexMissingError,
    InvalidQueryError,
    SearchChannelError,
)
from tests.fakes import CONTENT_FRAGMENT, METADATA_FRAGMENT, NAME_FRAGMENT


def _row(memory_id: str, name: str, metadata: dict | None = None) -> dict:
    return {
        "id": memory_id,
        "name": name,
        "metadata": json.dumps(metadata or {}),
        "score": 1.0,
    }


class TestExactSearchMerge:
    """Merging and ordering of the three sub-queries."""

    @pytest.mark.asyncio
    async def test_merges_flags_by_id(self, fake_client: FakeNeo4jClient) -> None:
        fake_client.add_response(NAME_FRAGMENT, [_row("m1", "Graph Search")])
        fake_client.add_response(METADATA_FRAGMENT, [_row("m1", "Graph Search"), _row("m2", "B")])
        fake_client.add_response(CONTENT_FRAGMENT, [_row("m2", "B"), _row("m3", "C")])

        channel = ExactSearchChannel(fake_client)
        candidates = await channel.search("graph search", limit=10)

        by_id = {c.id: c for c in candidates}
        assert by_id["m1"].match_types.exact_name is True
        assert by_id["m1"].match_types.exact_metadata is True
        assert by_id["m1"].match_types.exact_content is False
        assert by_id["m2"].match_types.exact_metadata is True
        assert by_id["m2"].match_types.exact_content is True
        assert by_id["m3"].match_types.exact_content is True
        assert by_id["m3"].match_types.exact_metadata is False

    @pytest.mark.asyncio
    async def test_orders_by_weight_and_truncates(self, fake_client: FakeNeo4jClient) -> None:
        fake_client.add_response(NAME_FRAGMENT, [_row("name-only", "x")])
        fake_client.add_response(
            METADATA_FRAGMENT, [_row("meta-content", "y"), _row("meta-only", "z")]
        )
        fake_client.add_response(
            CONTENT_FRAGMENT, [_row("content-only", "w"), _row("meta-content", "y")]
        )

        channel = ExactSearchChannel(fake_client)
        candidates = await channel.search("x", limit=3)

        # weights: name-only 3, meta-content 3, meta-only 2, content-only 1
        assert [c.id for c in candidates] == ["name-only", "meta-content", "meta-only"]

    @pytest.mark.asyncio
    async def test_malformed_metadata_recovers_to_empty(self, fake_client: FakeNeo4jClient) -> None:
        fake_client.add_response(
            NAME_FRAGMENT, [{"id": "m1", "name": "x", "metadata": "{not json"}]
        )

        channel = ExactSearchChannel(fake_client)
        candidates = await channel.search("x", limit=5)

        assert candidates[0].metadata == {}


class TestExactSearchQueries:
    """Parameters and filters sent to the backend."""

    @pytest.mark.asyncio
    async def test_type_filter_in_every_query(self, fake_client: FakeNeo4jClient) -> None:
        channel = ExactSearchChannel(fake_client)

        await channel.search("graph", limit=4, memory_types=["project", "note"])

        assert len(fake_client.calls) == 3
        for cypher, params in fake_client.calls:
            assert "memoryType IN $memoryTypes" in cypher
            assert params["memoryTypes"] == ["project", "note"]
            assert params["limit"] == 4
            assert "project" not in cypher

    @pytest.mark.asyncio
    async def test_no_type_filter_without_types(self, fake_client: FakeNeo4jClient) -> None:
        channel = ExactSearchChannel(fake_client)

        await channel.search("graph", limit=4)

        for cypher, params in fake_client.calls:
            assert "$memoryTypes" not in cypher
            assert "memoryTypes" not in params

    @pytest.mark.asyncio
    async def test_fulltext_receives_sanitized_query(self, fake_client: FakeNeo4jClient) -> None:
        channel = ExactSearchChannel(fake_client)

        await channel.search("c++ (x)", limit=4)

        fulltext_params = fake_client.calls_matching(METADATA_FRAGMENT)[0][1]
        name_params = fake_client.calls_matching(NAME_FRAGMENT)[0][1]
        assert fulltext_params["query"] == "c\\+\\+ \\(x\\)"
        assert name_params["query"] == "c++ (x)"

    @pytest.mark.asyncio
    async def test_rejects_non_positive_limit(self, fake_client: FakeNeo4jClient) -> None:
        channel = ExactSearchChannel(fake_client)

        with pytest.raises(InvalidQueryError):
            await channel.search("graph", limit=0)
        assert fake_client.calls == []

    def test_rejects_unsafe_index_name(self, fake_client: FakeNeo4jClient) -> None:
        with pytest.raises(ValueError, match="Invalid fulltext index name"):
            ExactSearchChannel(fake_client, metadata_index="idx') RETURN 1 //")


class TestExactSearchErrors:
    """Failures are fatal to the channel."""

    @pytest.mark.asyncio
    async def test_missing_index_raises_remediation(self, fake_client: FakeNeo4jClient) -> None:
        fake_client.add_response(
            METADATA_FRAGMENT,
            Neo4jQueryError("There is no such fulltext schema index: memory_metadata_idx"),
        )
        channel = ExactSearchChannel(fake_client)

        with pytest.raises(FulltextIndexMissingError) as exc_info:
            await channel.search("graph", limit=5)

        assert exc_info.value.missing_indexes == ["memory_metadata_idx", "observation_content_idx"]
        assert exc_info.value.channel == "exact"
        assert "SHOW FULLTEXT INDEXES" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_other_fulltext_failure_wrapped(self, fake_client: FakeNeo4jClient) -> None:
        fake_client.add_response(CONTENT_FRAGMENT, Neo4jQueryError("boom"))
        channel = ExactSearchChannel(fake_client)

        with pytest.raises(SearchChannelError) as exc_info:
            await channel.search("graph", limit=5)

        assert not isinstance(exc_info.value, FulltextIndexMissingError)
        assert isinstance(exc_info.value.cause, Neo4jQueryError)

    @pytest.mark.asyncio
    async def test_name_query_failure_wrapped(self, fake_client: FakeNeo4jClient) -> None:
        fake_client.add_response(NAME_FRAGMENT, Neo4jQueryError("boom"))
        channel = ExactSearchChannel(fake_client)

        with pytest.raises(SearchChannelError):
            await channel.search("graph", limit=5)

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, fake_client: FakeNeo4jClient) -> None:
        cancel = asyncio.Event()
        cancel.set()
        channel = ExactSearchChannel(fake_client)

        with pytest.raises(ChannelCancelledError):
            await channel.search("graph", limit=5, cancel_event=cancel)
        assert fake_client.calls == []
