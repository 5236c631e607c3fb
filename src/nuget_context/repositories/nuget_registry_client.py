"""NuGet v3 feed client.

Talks to any NuGet v3 feed (nuget.org, Azure Artifacts, GitHub Packages, ...)
through its service index. Only the three resources needed here are used:

- SearchQueryService: paged package search
- PackageBaseAddress/3.0.0 (flat container): full version lists
- RegistrationsBaseUrl: per-version catalog metadata

Private feeds authenticate with Basic credentials; a personal access token
may be given as the password with any (or no) user name.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from nuget_context.config import settings
from nuget_context.entities import PackageMetadata, PackageSearchResult
from nuget_context.errors import RegistryError
from nuget_context.versioning import NuGetVersion, ReleaseChannel, latest

logger = logging.getLogger(__name__)

SERVICE_INDEX_SUFFIX = "/v3/index.json"

# Preferred resource types, best first
SEARCH_RESOURCE_TYPES = (
    "SearchQueryService/3.5.0",
    "SearchQueryService/3.0.0-rc",
    "SearchQueryService/3.0.0-beta",
    "SearchQueryService",
)
FLAT_CONTAINER_RESOURCE_TYPES = ("PackageBaseAddress/3.0.0",)
REGISTRATION_RESOURCE_TYPES = (
    "RegistrationsBaseUrl/3.6.0",  # gzip + SemVer 2.0.0
    "RegistrationsBaseUrl/3.4.0",
    "RegistrationsBaseUrl/3.0.0-rc",
    "RegistrationsBaseUrl/3.0.0-beta",
    "RegistrationsBaseUrl",
)

# Unlisted packages carry this sentinel publish year
UNLISTED_PUBLISH_YEAR = 1900


def normalize_feed_url(feed_url: str) -> str:
    """Make sure the feed URL points at the v3 service index."""
    feed_url = feed_url.strip()
    if feed_url.lower().endswith(SERVICE_INDEX_SUFFIX):
        return feed_url
    return feed_url.rstrip("/") + SERVICE_INDEX_SUFFIX


def _join_text(value: Any, separator: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return separator.join(str(item) for item in value)
    return str(value)


def _parse_published(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable publish date: %s", value)
        return None


class NuGetRegistryClient:
    """NuGet v3 implementation of the RegistryClient protocol.

    This class satisfies the RegistryClient protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        client = NuGetRegistryClient.create()
        versions = await client.list_versions("Newtonsoft.Json")
        await client.close()
        ```
    """

    def __init__(
        self,
        feed_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the NuGet client.

        Args:
            feed_url: Feed URL, with or without the /v3/index.json suffix. Defaults to settings.
            username: User name for Basic auth. Defaults to settings, or "pat" when only a password is set.
            password: Password or personal access token. Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.
            http_client: Pre-built client (mostly for tests). Created lazily when omitted.
        """
        self._feed_url = normalize_feed_url(feed_url or settings.nuget_feed_url)
        self._timeout = timeout or settings.nuget_timeout
        self._client = http_client
        self._resources: dict[str, str] | None = None
        self._resources_lock = asyncio.Lock()

        password = password if password is not None else settings.nuget_password
        if password:
            user = username or settings.nuget_username or "pat"
            self._auth: httpx.Auth | None = httpx.BasicAuth(user, password)
            logger.info("Using configured credentials for feed %s", self._feed_url)
        else:
            self._auth = None
            logger.info("No credentials configured for feed %s", self._feed_url)

    @classmethod
    def create(
        cls,
        feed_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> "NuGetRegistryClient":
        """Factory method to create NuGetRegistryClient with defaults.

        Args:
            feed_url: Feed URL. If None, uses settings.
            username: Feed user. If None, uses settings.
            password: Feed password or PAT. If None, uses settings.

        Returns:
            Configured NuGetRegistryClient
        """
        return cls(feed_url=feed_url, username=username, password=password)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def feed_url(self) -> str:
        return self._feed_url

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any | None:
        """GET a JSON document.

        Returns:
            The decoded document, or None when the server answers 404

        Raises:
            RegistryError: On transport errors, other error statuses or invalid JSON
        """
        try:
            response = await self.client.get(url, params=params, auth=self._auth or httpx.USE_CLIENT_DEFAULT)
            if response.status_code == httpx.codes.NOT_FOUND:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise RegistryError(f"NuGet feed request failed for {url}: {e}") from e
        except ValueError as e:
            raise RegistryError(f"NuGet feed returned invalid JSON for {url}: {e}") from e

    async def _resource(self, candidates: tuple[str, ...]) -> str:
        """Resolve a resource URL from the service index (fetched once)."""
        if self._resources is None:
            async with self._resources_lock:
                if self._resources is None:
                    self._resources = await self._load_service_index()

        for resource_type in candidates:
            if resource_type in self._resources:
                return self._resources[resource_type]

        raise RegistryError(f"Feed {self._feed_url} does not support any of {', '.join(candidates)}")

    async def _load_service_index(self) -> dict[str, str]:
        document = await self._get_json(self._feed_url)
        if not isinstance(document, dict) or not isinstance(document.get("resources"), list):
            raise RegistryError(f"Feed {self._feed_url} did not return a v3 service index")

        resources: dict[str, str] = {}
        for resource in document["resources"]:
            types = resource.get("@type")
            url = resource.get("@id")
            if not url:
                continue
            for resource_type in types if isinstance(types, list) else [types]:
                # first occurrence wins, mirroring how NuGet clients pick resources
                resources.setdefault(str(resource_type), str(url))

        logger.debug("Loaded %d resources from service index %s", len(resources), self._feed_url)
        return resources

    async def search(
        self,
        term: str,
        include_prerelease: bool,
        skip: int,
        take: int,
    ) -> list[PackageSearchResult]:
        """Search the feed.

        Args:
            term: Search text
            include_prerelease: Whether prerelease packages may match
            skip: Results to skip (pagination)
            take: Maximum results to return

        Returns:
            One page of results, with the latest version of each package
        """
        url = await self._resource(SEARCH_RESOURCE_TYPES)
        document = await self._get_json(
            url,
            params={
                "q": term,
                "skip": skip,
                "take": take,
                "prerelease": "true" if include_prerelease else "false",
                "semVerLevel": "2.0.0",
            },
        )
        if document is None:
            return []

        try:
            return [
                PackageSearchResult(
                    id=item["id"],
                    version=self._normalize(item["version"]),
                    description=item.get("description"),
                    project_url=item.get("projectUrl") or None,
                )
                for item in document.get("data", [])
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise RegistryError(f"Malformed search response for {term!r}: {e}") from e

    async def list_versions(self, package_id: str) -> list[str]:
        """List every version of a package from the flat container.

        Returns:
            Normalized version strings, empty if the package does not exist
        """
        base = await self._resource(FLAT_CONTAINER_RESOURCE_TYPES)
        url = f"{base.rstrip('/')}/{quote(package_id.lower())}/index.json"
        document = await self._get_json(url)
        if document is None:
            logger.debug("Package %s not found on feed %s", package_id, self._feed_url)
            return []

        try:
            return [self._normalize(version) for version in document["versions"]]
        except (KeyError, TypeError) as e:
            raise RegistryError(f"Malformed version list for {package_id}: {e}") from e

    async def get_metadata(self, package_id: str, version: str) -> PackageMetadata | None:
        """Get catalog metadata for one exact version."""
        target = NuGetVersion.try_parse(version)
        for entry in await self._registration_entries(package_id):
            entry_version = NuGetVersion.try_parse(entry.version)
            if target is not None and entry_version == target:
                return entry
            if target is None and entry.version.lower() == version.lower():
                return entry
        return None

    async def get_latest_metadata(self, package_id: str, include_prerelease: bool) -> PackageMetadata | None:
        """Get catalog metadata for the newest listed version."""
        by_version: dict[NuGetVersion, PackageMetadata] = {}
        for entry in await self._registration_entries(package_id):
            parsed = NuGetVersion.try_parse(entry.version)
            if parsed is not None and entry.listed:
                by_version[parsed] = entry

        newest = latest(by_version, ReleaseChannel.from_flag(include_prerelease))
        return by_version[newest] if newest is not None else None

    async def _registration_entries(self, package_id: str) -> list[PackageMetadata]:
        """Collect every catalog entry of a package, fetching non-inlined pages."""
        base = await self._resource(REGISTRATION_RESOURCE_TYPES)
        url = f"{base.rstrip('/')}/{quote(package_id.lower())}/index.json"
        index = await self._get_json(url)
        if index is None:
            return []

        entries: list[PackageMetadata] = []
        try:
            for page in index.get("items", []):
                leaves = page.get("items")
                if leaves is None:
                    page_document = await self._get_json(page["@id"])
                    leaves = (page_document or {}).get("items", [])
                entries.extend(self._to_metadata(leaf["catalogEntry"]) for leaf in leaves)
        except (KeyError, TypeError, AttributeError) as e:
            raise RegistryError(f"Malformed registration data for {package_id}: {e}") from e

        return entries

    @staticmethod
    def _to_metadata(entry: dict[str, Any]) -> PackageMetadata:
        published = _parse_published(entry.get("published"))
        listed = entry.get("listed")
        if listed is None:
            listed = published is None or published.year != UNLISTED_PUBLISH_YEAR

        return PackageMetadata(
            id=entry["id"],
            version=NuGetRegistryClient._normalize(entry["version"]),
            title=entry.get("title") or None,
            description=entry.get("description") or None,
            summary=entry.get("summary") or None,
            authors=_join_text(entry.get("authors"), ", "),
            project_url=entry.get("projectUrl") or None,
            license_url=entry.get("licenseUrl") or None,
            icon_url=entry.get("iconUrl") or None,
            tags=_join_text(entry.get("tags"), " "),
            published=published,
            listed=bool(listed),
            download_count=entry.get("downloadCount"),
            require_license_acceptance=bool(entry.get("requireLicenseAcceptance", False)),
        )

    @staticmethod
    def _normalize(version: str) -> str:
        parsed = NuGetVersion.try_parse(version)
        return parsed.to_normalized_string() if parsed else version

    async def is_available(self) -> bool:
        """Check if the feed's service index can be loaded.

        Returns:
            True if the feed answered, False otherwise
        """
        try:
            await self._resource(SEARCH_RESOURCE_TYPES + FLAT_CONTAINER_RESOURCE_TYPES)
            return True
        except RegistryError:
            return False

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
