"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from nuget_context.config import configure_logging, settings
from nuget_context.handlers import ToolHandler
from nuget_context.repositories import MsBuildManifestParser, NuGetRegistryClient, SqliteCacheRepository
from nuget_context.services import (
    CacheEvictionService,
    CachedQueryService,
    PackageService,
    ProjectAnalysisService,
)

logger = logging.getLogger(__name__)


def get_handler(request: Request) -> ToolHandler:
    """Dependency injection for ToolHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The ToolHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "tool_handler", None)
    if handler is None:
        raise RuntimeError("ToolHandler not initialized. Check lifespan setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Repositories (cache store, registry client, manifest parser) - created explicitly
    2. Services (business logic) - query service stored in app.state.query_service
    3. Eviction loop - started here, stopped on shutdown
    4. Handler (HTTP endpoints) - stored in app.state.tool_handler

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Stops the eviction loop, closes the HTTP client and the database,
        and removes all services from app.state on shutdown
    """
    configure_logging()
    logger.info("Starting NuGet Context API...")
    logger.info("Cache database: %s (TTL %d minutes)", settings.cache_database_path, settings.cache_ttl_minutes)

    store = SqliteCacheRepository.create()
    registry = NuGetRegistryClient.create()
    parser = MsBuildManifestParser()
    logger.info("NuGet feed: %s (credentials configured: %s)", registry.feed_url, settings.has_credentials)

    query_service = CachedQueryService.create(store=store, registry=registry)
    package_service = PackageService(queries=query_service)
    analysis_service = ProjectAnalysisService(parser=parser, queries=query_service)
    eviction_service = CacheEvictionService(store=store)
    eviction_service.start()

    tool_handler = ToolHandler(
        analysis_service=analysis_service,
        package_service=package_service,
        store=store,
        eviction_service=eviction_service,
    )

    # Store in app.state (FastAPI pattern)
    app.state.query_service = query_service
    app.state.tool_handler = tool_handler
    app.state.eviction_service = eviction_service
    app.state.store = store
    app.state.registry = registry

    logger.info("Cache healthy: %s", await store.health_check())

    try:
        yield
    finally:
        await eviction_service.stop()
        await registry.close()
        store.close()

        del app.state.tool_handler
        del app.state.query_service
        del app.state.eviction_service
        del app.state.store
        del app.state.registry
        logger.info("NuGet Context API shut down")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[ToolHandler, Depends(get_handler)]
