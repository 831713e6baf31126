"""
FastAPI application factory for memory-search.

Creates and configures the FastAPI application with routes and dependencies.
Without injected services, the lifespan handler connects a Neo4jClient
and a SentenceTransformerEmbedder from settings and closes the client on
shutdown.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from memory_search.api.dependencies import ServiceContainer, build_services
from memory_search.core.config import Settings, get_settings
from memory_search.core.logging import clear_correlation_id, set_correlation_id
from memory_search.graph.neo4j_client import Neo4jClient
from memory_search.graph.schema import SchemaManager
from memory_search.search.embeddings import SentenceTransformerEmbedder

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def prepare_schema(client: Any, settings: Settings) -> list[str]:
    """Optionally create the schema, then report unusable fulltext indexes.

    Returns:
        Names of required fulltext indexes that are missing or not ONLINE
    """
    manager = SchemaManager(client=client, settings=settings)
    if settings.ensure_schema_on_startup:
        await manager.init_schema()

    missing = await manager.validate_fulltext_indexes()
    if missing:
        logger.warning(
            "Exact search will fail until fulltext indexes exist",
            extra={"missing_indexes": missing},
        )
    return missing


def create_app(
    settings: Settings | None = None,
    services: ServiceContainer | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Optional settings (defaults to get_settings())
        services: Optional pre-configured service container; when given,
            no connections are opened or closed by the app

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if services is not None:
            app.state.services = services
            yield
            return

        client = Neo4jClient(settings=settings)
        await client.connect()
        await prepare_schema(client, settings)
        embedder = None
        if settings.enable_vector_search:
            embedder = SentenceTransformerEmbedder(
                settings.embedding_model,
                dimensions=settings.embedding_dimensions,
            )
        app.state.services = build_services(client, embedder, settings)
        logger.info("Memory search started", extra={"neo4j_uri": client.uri})
        try:
            yield
        finally:
            await client.close()
            logger.info("Memory search stopped")

    app = FastAPI(
        title="Memory Search Service",
        description="Truth-first search over the memory graph",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response

    if services is not None:
        app.state.services = services

    # Import routes here to avoid circular imports
    from memory_search.api.routes import get_services, router

    # Override the dependency to return our services
    def _get_services() -> ServiceContainer:
        return app.state.services

    app.dependency_overrides[get_services] = _get_services

    # Include routes
    app.include_router(router)

    return app
