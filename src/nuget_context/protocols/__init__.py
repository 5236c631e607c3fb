"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (SQLite -> in-memory, nuget.org -> private feed, etc.)
- Unit testing with fake implementations
- Clear separation of concerns

Usage:
    ```python
    from nuget_context.protocols import CacheStore, RegistryClient

    # Type hints work with any implementation
    store: CacheStore = SqliteCacheRepository.create()
    client: RegistryClient = NuGetRegistryClient.create()
    ```
"""

from .cache_store import CacheStore, PayloadCodec
from .manifest_parser import ManifestParser
from .registry_client import RegistryClient

__all__ = [
    "CacheStore",
    "ManifestParser",
    "PayloadCodec",
    "RegistryClient",
]
