"""HTTP handlers for the package tools.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging

from fastapi import HTTPException, status

from nuget_context.dto import (
    AnalyzedDependencyItem,
    AnalyzeRequest,
    CacheStatsResponse,
    HealthCheckResponse,
    PackageDetailResponse,
    PackageSearchItem,
    PackageVersionResponse,
    SearchRequest,
    SweepResponse,
)
from nuget_context.errors import CacheStorageError
from nuget_context.protocols import CacheStore
from nuget_context.services import CacheEvictionService, PackageService, ProjectAnalysisService

logger = logging.getLogger(__name__)


def _storage_unavailable(error: CacheStorageError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Cache storage unavailable: {error}",
    )


class ToolHandler:
    """HTTP handlers for analysis, package and cache operations.

    This handler delegates business logic to the services and handles
    HTTP-specific concerns like:
    - Converting entities to DTOs
    - Setting appropriate status codes
    - Turning unexpected failures into empty results

    Only cache storage failures surface as errors (503); everything else
    yields a well-formed, possibly empty, body.
    """

    def __init__(
        self,
        analysis_service: ProjectAnalysisService,
        package_service: PackageService,
        store: CacheStore,
        eviction_service: CacheEvictionService,
    ) -> None:
        """Initialize the tool handler.

        Args:
            analysis_service: Project analysis (required).
            package_service: Single-package queries (required).
            store: Cache store, for stats and manual sweeps (required).
            eviction_service: Background eviction loop, for stats (required).
        """
        self._analysis = analysis_service
        self._packages = package_service
        self._store = store
        self._eviction = eviction_service

    async def analyze(self, request: AnalyzeRequest) -> list[AnalyzedDependencyItem]:
        """Handle POST /analyze requests."""
        logger.debug("Tool 'analyze' invoked for path: %s", request.path)
        try:
            dependencies = await self._analysis.analyze(request.path)
        except CacheStorageError as e:
            raise _storage_unavailable(e) from e
        except Exception:
            logger.exception("Error executing tool 'analyze' for path: %s", request.path)
            return []

        return [AnalyzedDependencyItem.model_validate(dep, from_attributes=True) for dep in dependencies]

    async def search(self, request: SearchRequest) -> list[PackageSearchItem]:
        """Handle GET /packages/search requests."""
        logger.debug("Tool 'search' invoked for term: %s, skip: %d, take: %d", request.q, request.skip, request.take)
        try:
            results = await self._packages.search(request.q, request.prerelease, request.skip, request.take)
        except CacheStorageError as e:
            raise _storage_unavailable(e) from e
        except Exception:
            logger.exception("Error executing tool 'search' for term: %s", request.q)
            return []

        return [PackageSearchItem.model_validate(result, from_attributes=True) for result in results]

    async def list_versions(self, package_id: str, include_prerelease: bool) -> list[str]:
        """Handle GET /packages/{package_id}/versions requests."""
        logger.debug("Tool 'list_versions' invoked for package: %s", package_id)
        try:
            return await self._packages.list_versions(package_id, include_prerelease)
        except CacheStorageError as e:
            raise _storage_unavailable(e) from e
        except Exception:
            logger.exception("Error executing tool 'list_versions' for package: %s", package_id)
            return []

    async def latest_version(self, package_id: str, include_prerelease: bool) -> PackageVersionResponse:
        """Handle GET /packages/{package_id}/latest requests.

        Raises:
            HTTPException: 404 when the package has no matching version, 503 on storage failure
        """
        logger.debug("Tool 'latest_version' invoked for package: %s", package_id)
        try:
            info = await self._packages.latest_version(package_id, include_prerelease)
        except CacheStorageError as e:
            raise _storage_unavailable(e) from e
        except Exception:
            logger.exception("Error executing tool 'latest_version' for package: %s", package_id)
            info = None

        if info is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No version found for package {package_id}",
            )
        return PackageVersionResponse.model_validate(info, from_attributes=True)

    async def package_details(self, package_id: str, version: str | None) -> PackageDetailResponse:
        """Handle GET /packages/{package_id}/details requests.

        Raises:
            HTTPException: 404 when the package or version is unknown, 503 on storage failure
        """
        logger.debug("Tool 'package_details' invoked for package: %s, version: %s", package_id, version)
        try:
            metadata = await self._packages.package_details(package_id, version)
        except CacheStorageError as e:
            raise _storage_unavailable(e) from e
        except Exception:
            logger.exception("Error executing tool 'package_details' for package: %s", package_id)
            metadata = None

        if metadata is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Package {package_id} {version or '(latest)'} not found",
            )
        return PackageDetailResponse.model_validate(metadata, from_attributes=True)

    async def cache_stats(self) -> CacheStatsResponse:
        """Handle GET /cache/stats requests."""
        try:
            stats = await self._store.get_stats()
        except CacheStorageError as e:
            raise _storage_unavailable(e) from e

        return CacheStatsResponse(
            total_entries=stats.get("total_entries", 0),
            live_entries=stats.get("live_entries", 0),
            expired_entries=stats.get("expired_entries", 0),
            database_path=stats.get("database_path", ""),
            eviction_state=self._eviction.state.value,
            eviction_interval_seconds=self._eviction.interval,
        )

    async def sweep(self) -> SweepResponse:
        """Handle POST /cache/sweep requests."""
        try:
            removed = await self._store.sweep_expired()
        except CacheStorageError as e:
            raise _storage_unavailable(e) from e
        return SweepResponse(removed=removed)

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        is_healthy = await self._store.health_check()
        return HealthCheckResponse(
            status="healthy" if is_healthy else "unhealthy",
            cache_healthy=is_healthy,
        )
