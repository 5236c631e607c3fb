"""Package domain entities returned by the registry."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PackageSearchResult:
    """A package found by a search query.

    Attributes:
        id: The package id
        version: The latest version (normalized)
        description: Package description
        project_url: Project page, if the package declares one
    """

    id: str
    version: str
    description: str | None = None
    project_url: str | None = None


@dataclass(frozen=True)
class PackageMetadata:
    """Catalog metadata for one package version."""

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


@dataclass(frozen=True)
class PackageVersionInfo:
    """The latest version of a package."""

    package_id: str
    version: str
