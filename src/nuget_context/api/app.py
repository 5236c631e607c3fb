from typing import Any

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from nuget_context.api.dependencies import HandlerDep, lifespan
from nuget_context.config import settings
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

app = FastAPI(
    title="NuGet Context API",
    description="NuGet package and project dependency queries backed by a SQLite cache",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "NuGet Context API",
        "version": "0.1.0",
        "description": "NuGet package and project dependency queries backed by a SQLite cache",
        "endpoints": {
            "analyze": "/analyze",
            "packages": "/packages",
            "cache": "/cache/stats",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep) -> HealthCheckResponse:
    """Health check endpoint."""
    return await handler.health_check()


@app.post("/analyze", response_model=list[AnalyzedDependencyItem])
async def analyze(request: AnalyzeRequest, handler: HandlerDep) -> list[AnalyzedDependencyItem]:
    """
    Analyze the NuGet dependencies of a solution or project file.

    Args:
        request: Path of the .sln or project file on the server.

    Returns:
        One entry per unique package id with the latest stable and prerelease versions.
    """
    return await handler.analyze(request)


@app.get("/packages/search", response_model=list[PackageSearchItem])
async def search_packages(
    handler: HandlerDep,
    q: str = Query(..., min_length=1, description="The term to search for"),
    prerelease: bool = Query(False, description="Include prerelease packages"),
    skip: int = Query(0, ge=0, description="Number of results to skip"),
    take: int = Query(20, ge=1, le=1000, description="Maximum number of results"),
) -> list[PackageSearchItem]:
    """Search the feed for packages."""
    return await handler.search(SearchRequest(q=q, prerelease=prerelease, skip=skip, take=take))


@app.get("/packages/{package_id}/versions", response_model=list[str])
async def list_versions(
    package_id: str,
    handler: HandlerDep,
    prerelease: bool = Query(False, description="Include prerelease versions"),
) -> list[str]:
    """List all versions of a package, newest first."""
    return await handler.list_versions(package_id, prerelease)


@app.get("/packages/{package_id}/latest", response_model=PackageVersionResponse)
async def latest_version(
    package_id: str,
    handler: HandlerDep,
    prerelease: bool = Query(False, description="Consider prerelease versions"),
) -> PackageVersionResponse:
    """Get the latest version of a package."""
    return await handler.latest_version(package_id, prerelease)


@app.get("/packages/{package_id}/details", response_model=PackageDetailResponse)
async def package_details(
    package_id: str,
    handler: HandlerDep,
    version: str | None = Query(None, description="A specific version; the latest when omitted"),
) -> PackageDetailResponse:
    """Get catalog details of a package version."""
    return await handler.package_details(package_id, version)


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(handler: HandlerDep) -> CacheStatsResponse:
    """Get cache statistics."""
    return await handler.cache_stats()


@app.post("/cache/sweep", response_model=SweepResponse)
async def sweep_cache(handler: HandlerDep) -> SweepResponse:
    """Remove expired cache entries now instead of waiting for the eviction loop."""
    return await handler.sweep()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "nuget_context.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
