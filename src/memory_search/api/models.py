"""
Pydantic models for API request/response validation.

Field names on the wire are camelCase (memoryTypes, traverseFrom, ...),
matching the memory-find contract; Python attributes stay snake_case.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SearchRequest(_CamelModel):
    """Request model for memory search."""

    query: str = Field(
        description='Free text, an identifier, or "*" / "" / "all" for everything',
        max_length=10000,
    )
    limit: int | None = Field(
        default=None,
        ge=1,
        le=1000,
        description="Maximum number of results (default from settings)",
    )
    include_graph_context: bool = Field(
        default=True,
        description="Attach ancestors/descendants to each result",
    )
    memory_types: list[str] | None = Field(
        default=None,
        description="Only return memories of these types",
    )
    threshold: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Minimum score (default from settings)",
    )


class SearchResponse(_CamelModel):
    """Response model for memory search."""

    results: list[dict[str, Any]] = Field(description="Ranked results, best first")
    total: int = Field(description="Number of results returned")
    query: str = Field(description="The query as received")
    query_type: str = Field(description="WILDCARD, TECHNICAL_IDENTIFIER or SEMANTIC_SEARCH")
    latency_ms: float = Field(description="Search latency in milliseconds")


class TraverseRequest(_CamelModel):
    """Request model for relationship traversal."""

    traverse_from: str = Field(min_length=1, description="Origin memory ID")
    traverse_relations: list[str] | None = Field(
        default=None,
        description="Allowed relationType values; every hop must match",
    )
    max_depth: int | None = Field(
        default=None,
        description="Hop bound, clamped to the configured ceiling",
    )
    traverse_direction: str = Field(
        default="both",
        description="outbound, inbound or both",
    )


class TraverseResponse(_CamelModel):
    """Response model for relationship traversal."""

    origin: str = Field(description="Origin memory ID")
    direction: str = Field(description="Direction used")
    related: list[dict[str, Any]] = Field(description="Related memories, closest first")
    total: int = Field(description="Number of related memories")
    latency_ms: float = Field(description="Traversal latency in milliseconds")


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(description="Overall health status")
    services: dict[str, str] = Field(
        default_factory=dict,
        description="Individual service statuses",
    )
    dependencies: dict[str, Any] = Field(
        default_factory=dict,
        description="Dependency details (neo4j, embedder)",
    )
    version: str = Field(description="API version")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(description="Error type")
    message: str = Field(description="Error message")
    detail: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details",
    )
