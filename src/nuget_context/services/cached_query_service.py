"""Cache-aside layer over the package registry.

Every registry query shape goes through ``fetch_cached``: the cache is
consulted first, the registry only on a miss, and only non-empty results are
written back so a registry outage is never frozen into the cache.
"""

import logging
from collections.abc import Awaitable, Callable, Sized
from typing import TypeVar

from nuget_context import cache_keys
from nuget_context.codecs import METADATA_CODEC, SEARCH_RESULTS_CODEC, VERSION_LIST_CODEC
from nuget_context.config import settings
from nuget_context.entities import PackageMetadata, PackageSearchResult
from nuget_context.errors import CacheStorageError
from nuget_context.protocols import CacheStore, PayloadCodec, RegistryClient
from nuget_context.versioning import NuGetVersion, ReleaseChannel, latest

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_empty(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, Sized) and len(value) == 0


class CachedQueryService:
    """Registry queries made transparent to the cache.

    This service depends on PROTOCOLS, not concrete implementations:
    - CacheStore: SQLite by default, anything with the same methods in tests
    - RegistryClient: a NuGet v3 feed by default

    Example:
        ```python
        queries = CachedQueryService.create(
            store=SqliteCacheRepository.create(),
            registry=NuGetRegistryClient.create(),
        )
        newest = await queries.latest_version("Newtonsoft.Json", ReleaseChannel.STABLE)
        ```
    """

    def __init__(
        self,
        store: CacheStore,
        registry: RegistryClient,
        ttl_seconds: float | None = None,
    ) -> None:
        """Initialize the query service.

        Args:
            store: Cache storage backend (required).
            registry: Remote registry client (required).
            ttl_seconds: Lifetime of cached results. Defaults to settings.
        """
        self._store = store
        self._registry = registry
        self._ttl = ttl_seconds or settings.cache_ttl_seconds

    @classmethod
    def create(
        cls,
        store: CacheStore,
        registry: RegistryClient,
        ttl_seconds: float | None = None,
    ) -> "CachedQueryService":
        """Factory method to create CachedQueryService with sensible defaults.

        Args:
            store: Cache storage backend (required).
            registry: Remote registry client (required).
            ttl_seconds: Cache lifetime in seconds. If None, uses settings.

        Returns:
            Configured CachedQueryService instance
        """
        return cls(store=store, registry=registry, ttl_seconds=ttl_seconds)

    async def fetch_cached(
        self,
        key: str,
        codec: PayloadCodec[T],
        fetch: Callable[[], Awaitable[T | None]],
        ttl_seconds: float | None = None,
    ) -> T | None:
        """Return a cached value, or fetch it and populate the cache.

        Business logic:
        1. Look the key up in the store; a hit never calls ``fetch``
        2. On a miss, await ``fetch`` (its exceptions propagate, nothing is cached)
        3. Store non-empty results with the TTL
        4. Return the result, possibly empty

        A failing cache read is logged and treated as a miss. A failing cache
        write propagates.

        Args:
            key: Cache key for this query
            codec: Codec for the result type
            fetch: Performs the real registry call
            ttl_seconds: Override the default TTL

        Returns:
            The cached or freshly fetched result
        """
        try:
            cached = await self._store.get_value(key, codec)
        except CacheStorageError as e:
            logger.warning("Cache read failed for key %s, falling back to registry: %s", key, e)
            cached = None

        if cached is not None:
            return cached

        logger.debug("Fetching data for cache key: %s", key)
        fetched = await fetch()

        if _is_empty(fetched):
            logger.debug("Registry returned no data for key %s, not caching", key)
            return fetched

        await self._store.set_value(key, fetched, codec, ttl_seconds or self._ttl)
        return fetched

    async def search(
        self,
        term: str,
        include_prerelease: bool,
        skip: int,
        take: int,
    ) -> list[PackageSearchResult]:
        """Search the registry, one cached entry per page."""
        term = term.strip()
        key = cache_keys.search_key(term, include_prerelease, skip, take)
        results = await self.fetch_cached(
            key,
            SEARCH_RESULTS_CODEC,
            lambda: self._registry.search(term, include_prerelease, skip, take),
        )
        return results or []

    async def get_all_versions(self, package_id: str) -> list[NuGetVersion]:
        """Get every published version of a package.

        The cache holds normalized version strings; unparseable strings from
        the registry are skipped.
        """

        async def _fetch() -> list[str]:
            normalized = []
            for raw in await self._registry.list_versions(package_id):
                parsed = NuGetVersion.try_parse(raw)
                if parsed is None:
                    logger.debug("Skipping unparseable version %r of %s", raw, package_id)
                    continue
                normalized.append(parsed.to_normalized_string())
            return normalized

        strings = await self.fetch_cached(cache_keys.versions_key(package_id), VERSION_LIST_CODEC, _fetch)

        versions = []
        for value in strings or []:
            parsed = NuGetVersion.try_parse(value)
            if parsed is not None:
                versions.append(parsed)
        return versions

    async def latest_version(self, package_id: str, channel: ReleaseChannel) -> NuGetVersion | None:
        """Derive the newest version in a release channel from the cached version list."""
        return latest(await self.get_all_versions(package_id), channel)

    async def latest_stable_version(self, package_id: str) -> NuGetVersion | None:
        return await self.latest_version(package_id, ReleaseChannel.STABLE)

    async def latest_prerelease_version(self, package_id: str) -> NuGetVersion | None:
        return await self.latest_version(package_id, ReleaseChannel.INCLUDING_PRERELEASE)

    async def get_metadata(self, package_id: str, version: NuGetVersion) -> PackageMetadata | None:
        """Get metadata for one exact version."""
        normalized = version.to_normalized_string()
        return await self.fetch_cached(
            cache_keys.metadata_key(package_id, normalized),
            METADATA_CODEC,
            lambda: self._registry.get_metadata(package_id, normalized),
        )

    async def get_latest_metadata(self, package_id: str, include_prerelease: bool) -> PackageMetadata | None:
        """Get metadata for the newest listed version."""
        return await self.fetch_cached(
            cache_keys.latest_metadata_key(package_id, include_prerelease),
            METADATA_CODEC,
            lambda: self._registry.get_latest_metadata(package_id, include_prerelease),
        )

    @property
    def store(self) -> CacheStore:
        """Get the underlying cache store (for testing)."""
        return self._store

    @property
    def registry(self) -> RegistryClient:
        """Get the underlying registry client (for testing)."""
        return self._registry
