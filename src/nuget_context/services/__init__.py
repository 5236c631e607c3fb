"""Service layer for business logic.

This layer contains the core business logic and orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from nuget_context.services import CachedQueryService, ProjectAnalysisService

    queries = CachedQueryService.create(store=store, registry=registry)
    analysis = ProjectAnalysisService(parser=parser, queries=queries)
    ```
"""

from .analysis_service import ProjectAnalysisService
from .cached_query_service import CachedQueryService
from .eviction_service import CacheEvictionService, EvictionState
from .package_service import PackageService

__all__ = [
    "CacheEvictionService",
    "CachedQueryService",
    "EvictionState",
    "PackageService",
    "ProjectAnalysisService",
]
