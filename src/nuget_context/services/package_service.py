"""Package lookups exposed to the tool layer.

Registry failures are logged and turned into empty results so callers get a
well-formed answer; only cache storage failures propagate.
"""

import logging

from nuget_context.entities import PackageMetadata, PackageSearchResult, PackageVersionInfo
from nuget_context.errors import RegistryError
from nuget_context.services.cached_query_service import CachedQueryService
from nuget_context.versioning import NuGetVersion, ReleaseChannel, select_versions

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_TAKE = 20


class PackageService:
    """Search, version and detail queries for single packages.

    Example:
        ```python
        packages = PackageService(queries=queries)
        await packages.list_versions("Newtonsoft.Json", include_prerelease=False)
        # ["13.0.3", "13.0.2", ...]
        ```
    """

    def __init__(self, queries: CachedQueryService) -> None:
        """Initialize the package service.

        Args:
            queries: Cache-aware registry queries (required).
        """
        self._queries = queries

    async def search(
        self,
        term: str,
        include_prerelease: bool = False,
        skip: int = 0,
        take: int = DEFAULT_SEARCH_TAKE,
    ) -> list[PackageSearchResult]:
        """Search packages by term.

        Args:
            term: The text to search for
            include_prerelease: Whether prerelease packages may match
            skip: Results to skip (pagination)
            take: Maximum results to return

        Returns:
            Matching packages, empty on registry failure
        """
        logger.info(
            "Searching packages for term: %s, include_prerelease: %s, skip: %d, take: %d",
            term,
            include_prerelease,
            skip,
            take,
        )
        try:
            results = await self._queries.search(term, include_prerelease, skip, take)
        except RegistryError as e:
            logger.error("Error searching packages for term %s: %s", term, e)
            return []

        logger.info("Returning %d packages for term: %s", len(results), term)
        return results

    async def list_versions(self, package_id: str, include_prerelease: bool) -> list[str]:
        """List versions of a package, newest first.

        Args:
            package_id: The exact package id
            include_prerelease: Whether to include prerelease versions

        Returns:
            Normalized version strings in descending order
        """
        logger.info("Getting versions for package: %s, include_prerelease: %s", package_id, include_prerelease)
        try:
            versions = await self._queries.get_all_versions(package_id)
        except RegistryError as e:
            logger.error("Error getting versions for package %s: %s", package_id, e)
            return []

        ordered = select_versions(versions, ReleaseChannel.from_flag(include_prerelease))
        logger.info("Found %d versions for package: %s", len(ordered), package_id)
        return [v.to_normalized_string() for v in ordered]

    async def latest_version(self, package_id: str, include_prerelease: bool) -> PackageVersionInfo | None:
        """Get the latest stable (or prerelease-inclusive) version of a package."""
        channel = ReleaseChannel.from_flag(include_prerelease)
        logger.info("Getting latest version for package: %s, channel: %s", package_id, channel.value)
        try:
            newest = await self._queries.latest_version(package_id, channel)
        except RegistryError as e:
            logger.error("Error getting latest version for package %s: %s", package_id, e)
            return None

        if newest is None:
            logger.warning("Could not find latest version for package: %s", package_id)
            return None

        logger.info("Found latest version %s for package: %s", newest, package_id)
        return PackageVersionInfo(package_id=package_id, version=newest.to_normalized_string())

    async def package_details(self, package_id: str, version: str | None = None) -> PackageMetadata | None:
        """Get catalog details for a package version.

        Without a version, the latest version including prereleases is used,
        falling back to the latest stable one.

        Args:
            package_id: The exact package id
            version: A specific version, or None for the latest

        Returns:
            The package metadata, or None if not found or the version is invalid
        """
        logger.info("Getting package details for %s, version: %s", package_id, version or "latest")
        try:
            if not version:
                metadata = await self._queries.get_latest_metadata(package_id, include_prerelease=True)
                if metadata is None:
                    logger.debug("No latest version (including prerelease) for %s, trying latest stable", package_id)
                    metadata = await self._queries.get_latest_metadata(package_id, include_prerelease=False)
            else:
                parsed = NuGetVersion.try_parse(version)
                if parsed is None:
                    logger.warning("Invalid version format provided: %s", version)
                    return None
                metadata = await self._queries.get_metadata(package_id, parsed)
        except RegistryError as e:
            logger.error("Error retrieving package details for %s, version %s: %s", package_id, version or "latest", e)
            return None

        if metadata is None:
            logger.warning("Package metadata not found for %s, version: %s", package_id, version or "latest")
        return metadata
