"""
API routes for memory search.

Provides endpoints for search, relationship traversal and health.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status

from memory_search.api.dependencies import ServiceContainer
from memory_search.api.models import (
    ErrorResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
    TraverseRequest,
    TraverseResponse,
)
from memory_search.graph.exceptions import (
    InvalidTraversalOptionsError,
    Neo4jConnectionError,
    Neo4jError,
)
from memory_search.graph.health import check_neo4j_health
from memory_search.graph.traversal import TraversalOptions
from memory_search.search.exceptions import (
    CapabilityMissingError,
    FulltextIndexMissingError,
    InvalidQueryError,
    SearchError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "1.0.0"

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    422: {"model": ErrorResponse, "description": "Validation error"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
    503: {"model": ErrorResponse, "description": "Service unavailable"},
}


def get_services() -> ServiceContainer:
    """Get service container - injected at runtime."""
    # This is overridden by dependency injection in create_app
    msg = "Services not configured"
    raise RuntimeError(msg)


def to_http_exception(error: Exception, error_type: str) -> HTTPException:
    """Map a domain error onto an HTTP status.

    Validation -> 400; missing capability, index or connection -> 503;
    any other query failure -> 500.
    """
    if isinstance(error, (InvalidQueryError, InvalidTraversalOptionsError)):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "message": str(error)},
        )
    if isinstance(error, (CapabilityMissingError, FulltextIndexMissingError, Neo4jConnectionError)):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "service_unavailable", "message": str(error)},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": error_type, "message": str(error)},
    )


@router.post(
    "/v1/memories/search",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    tags=["search"],
    summary="Truth-first memory search",
)
async def search_memories(
    request: SearchRequest,
    services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> SearchResponse:
    """
    Search memories with exact-evidence-first ranking.

    Wildcard queries ("*", "", "all") return the newest memories unranked.
    Identifier-like queries use exact matching only. Other queries combine
    exact matching with vector similarity; exact evidence always ranks first.

    Args:
        request: Search parameters
        services: Injected service container

    Returns:
        SearchResponse with at most ``limit`` results
    """
    if services.orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "search_unavailable", "message": "Search is not configured"},
        )

    start_time = time.perf_counter()
    orchestrator = services.orchestrator

    try:
        results = await orchestrator.search(
            request.query,
            limit=request.limit,
            include_graph_context=request.include_graph_context,
            memory_types=request.memory_types,
            threshold=request.threshold,
        )
    except (SearchError, Neo4jError) as e:
        logger.warning("Search failed", extra={"error": str(e), "error_type": type(e).__name__})
        raise to_http_exception(e, "search_error") from e

    latency_ms = (time.perf_counter() - start_time) * 1000
    query_type = orchestrator.classifier.classify(request.query).type.value

    return SearchResponse(
        results=[result.to_dict() for result in results],
        total=len(results),
        query=request.query,
        query_type=query_type,
        latency_ms=latency_ms,
    )


@router.post(
    "/v1/memories/traverse",
    response_model=TraverseResponse,
    responses=_ERROR_RESPONSES,
    tags=["graph"],
    summary="Traverse relationships from a memory",
)
async def traverse_memories(
    request: TraverseRequest,
    services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> TraverseResponse:
    """
    Walk RELATES_TO edges from an origin memory.

    Args:
        request: Traversal parameters
        services: Injected service container

    Returns:
        TraverseResponse with related memories, closest first
    """
    if services.traversal is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "graph_unavailable", "message": "Graph traversal is not configured"},
        )

    start_time = time.perf_counter()
    options = TraversalOptions(
        traverse_from=request.traverse_from,
        traverse_relations=request.traverse_relations,
        max_depth=request.max_depth,
        traverse_direction=request.traverse_direction,
    )

    try:
        related = await services.traversal.traverse(options)
    except (InvalidTraversalOptionsError, Neo4jError) as e:
        raise to_http_exception(e, "traversal_error") from e

    latency_ms = (time.perf_counter() - start_time) * 1000
    direction = services.traversal.builder.resolve_direction(request.traverse_direction)

    return TraverseResponse(
        origin=request.traverse_from,
        direction=direction.value,
        related=[item.to_dict() for item in related],
        total=len(related),
        latency_ms=latency_ms,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check endpoint",
)
async def health_check(
    services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> HealthResponse:
    """
    Check the health of the graph backend and the vector capability.

    Args:
        services: Injected service container

    Returns:
        HealthResponse with service statuses and dependencies
    """
    service_statuses: dict[str, str] = {}
    dependencies: dict[str, object] = {}

    if services.graph_client is not None:
        neo4j_health = await check_neo4j_health(services.graph_client)
        service_statuses["graph"] = neo4j_health["status"]
        dependencies["neo4j"] = neo4j_health
    else:
        service_statuses["graph"] = "not_configured"

    vector_channel = services.orchestrator.vector_channel if services.orchestrator else None
    if vector_channel is None:
        service_statuses["vector"] = "not_configured"
    else:
        verified = vector_channel.is_capability_verified()
        service_statuses["vector"] = {
            None: "unverified",
            True: "verified",
            False: "unavailable",
        }[verified]

    dependencies["embedder"] = (
        services.embedding_service.model_name if services.embedding_service else "not_configured"
    )

    all_healthy = service_statuses["graph"] in ("healthy", "not_configured") and service_statuses[
        "vector"
    ] != "unavailable"

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        services=service_statuses,
        dependencies=dependencies,
        version=API_VERSION,
    )
