"""Repository layer for data access.

This layer abstracts external dependencies (SQLite, the NuGet feed, project
files on disk) behind protocol-based interfaces. This enables:
- Easy swapping of implementations (SQLite -> in-memory, nuget.org -> private feed, etc.)
- Unit testing with fake implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from nuget_context.protocols import CacheStore, ManifestParser, RegistryClient

from .msbuild_manifest_parser import MsBuildManifestParser
from .nuget_registry_client import NuGetRegistryClient
from .sqlite_cache_repository import SqliteCacheRepository

__all__ = [
    "CacheStore",
    "ManifestParser",
    "MsBuildManifestParser",
    "NuGetRegistryClient",
    "RegistryClient",
    "SqliteCacheRepository",
]
