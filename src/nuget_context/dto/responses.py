"""Response DTOs for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class AnalyzedDependencyItem(BaseModel):
    """Single dependency in an analysis result."""

    id: str = Field(..., description="The package id")
    requested_version: str = Field(..., description="Version or range requested by the project")
    latest_stable_version: str | None = Field(None, description="Newest stable version on the feed")
    latest_version: str | None = Field(None, description="Newest version on the feed, including prereleases")


class PackageSearchItem(BaseModel):
    """Single package in search results."""

    id: str = Field(..., description="The package id")
    version: str = Field(..., description="The latest version (normalized)")
    description: str | None = Field(None, description="Package description")
    project_url: str | None = Field(None, description="Project page URL")


class PackageVersionResponse(BaseModel):
    """Response DTO for the latest version of a package."""

    package_id: str = Field(..., description="The package id")
    version: str = Field(..., description="The latest version (normalized)")


class PackageDetailResponse(BaseModel):
    """Response DTO for package version details."""

    id: str
    version: str
    title: str | None = None
    description: str | None = None
    summary: str | None = None
    authors: str | None = None
    project_url: str | None = None
    license_url: str | None = None
    icon_url: str | None = None
    tags: str | None = None
    published: datetime | None = None
    listed: bool = True
    download_count: int | None = None
    require_license_acceptance: bool = False


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    total_entries: int = Field(..., description="Rows in the cache, including expired ones", ge=0)
    live_entries: int = Field(..., description="Rows that have not expired", ge=0)
    expired_entries: int = Field(..., description="Expired rows awaiting the next sweep", ge=0)
    database_path: str = Field(..., description="Path of the cache database file")
    eviction_state: str = Field(..., description="State of the background eviction loop")
    eviction_interval_seconds: float = Field(..., description="Seconds between eviction sweeps")


class SweepResponse(BaseModel):
    """Response DTO for a manual eviction sweep."""

    removed: int = Field(..., description="Number of expired entries removed", ge=0)


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether the cache database is reachable")
