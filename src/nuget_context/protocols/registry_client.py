"""Package registry client protocol.

Implementations can include:
- NuGet v3 HTTP feeds (default, see ``NuGetRegistryClient``)
- Fakes for unit tests
"""

from typing import Protocol, runtime_checkable

from nuget_context.entities import PackageMetadata, PackageSearchResult


@runtime_checkable
class RegistryClient(Protocol):
    """Protocol for remote package registries.

    Every method may raise ``RegistryError`` when the registry cannot be reached
    or answers with something unusable.
    """

    async def search(
        self,
        term: str,
        include_prerelease: bool,
        skip: int,
        take: int,
    ) -> list[PackageSearchResult]:
        """Search packages by term, one page at a time."""
        ...

    async def list_versions(self, package_id: str) -> list[str]:
        """List every published version of a package.

        Returns:
            Version strings in registry order, empty when the package is unknown
        """
        ...

    async def get_metadata(self, package_id: str, version: str) -> PackageMetadata | None:
        """Get metadata for one exact version, or None if it does not exist."""
        ...

    async def get_latest_metadata(self, package_id: str, include_prerelease: bool) -> PackageMetadata | None:
        """Get metadata for the newest listed version, or None if there is none."""
        ...
