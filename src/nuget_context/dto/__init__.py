"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import AnalyzeRequest, SearchRequest
from .responses import (
    AnalyzedDependencyItem,
    CacheStatsResponse,
    HealthCheckResponse,
    PackageDetailResponse,
    PackageSearchItem,
    PackageVersionResponse,
    SweepResponse,
)

__all__ = [
    "AnalyzeRequest",
    "SearchRequest",
    "AnalyzedDependencyItem",
    "PackageSearchItem",
    "PackageVersionResponse",
    "PackageDetailResponse",
    "CacheStatsResponse",
    "SweepResponse",
    "HealthCheckResponse",
]
