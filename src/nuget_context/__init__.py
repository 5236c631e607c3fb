"""NuGet Context - NuGet package and project dependency queries with a persistent cache.

This package provides a layered architecture for cached registry lookups:

Layers:
    - protocols: Interface contracts (CacheStore, RegistryClient, ManifestParser)
    - repositories: Data access implementations (SQLite, NuGet v3 feed, MSBuild files)
    - services: Business logic (cache-aside queries, analysis, eviction)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from nuget_context.repositories import NuGetRegistryClient, SqliteCacheRepository
    from nuget_context.services import CachedQueryService

    queries = CachedQueryService.create(
        store=SqliteCacheRepository.create(),
        registry=NuGetRegistryClient.create(),
    )
    versions = await queries.get_all_versions("Newtonsoft.Json")
    ```

For HTTP API:
    ```python
    from nuget_context.api.app import app
    ```
"""

from nuget_context.config import configure_logging, settings
from nuget_context.dto import AnalyzeRequest, SearchRequest
from nuget_context.entities import (
    AnalyzedDependency,
    CacheEntryEntity,
    DeclaredDependency,
    PackageMetadata,
    PackageSearchResult,
)
from nuget_context.errors import CacheStorageError, ManifestError, NuGetContextError, RegistryError
from nuget_context.handlers import ToolHandler
from nuget_context.protocols import CacheStore, ManifestParser, RegistryClient
from nuget_context.repositories import MsBuildManifestParser, NuGetRegistryClient, SqliteCacheRepository
from nuget_context.services import (
    CacheEvictionService,
    CachedQueryService,
    PackageService,
    ProjectAnalysisService,
)
from nuget_context.versioning import NuGetVersion, ReleaseChannel

__all__ = [
    # Configuration
    "settings",
    "configure_logging",
    # Errors
    "NuGetContextError",
    "CacheStorageError",
    "RegistryError",
    "ManifestError",
    # Protocols (interfaces)
    "CacheStore",
    "ManifestParser",
    "RegistryClient",
    # Services (business logic)
    "CachedQueryService",
    "PackageService",
    "ProjectAnalysisService",
    "CacheEvictionService",
    # Handlers (HTTP)
    "ToolHandler",
    # Repositories (data access)
    "SqliteCacheRepository",
    "NuGetRegistryClient",
    "MsBuildManifestParser",
    # Entities (domain models)
    "CacheEntryEntity",
    "DeclaredDependency",
    "AnalyzedDependency",
    "PackageSearchResult",
    "PackageMetadata",
    # Versioning
    "NuGetVersion",
    "ReleaseChannel",
    # DTOs (API contracts)
    "AnalyzeRequest",
    "SearchRequest",
]
