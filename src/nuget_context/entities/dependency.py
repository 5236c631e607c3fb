"""Dependency domain entities."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DeclaredDependency:
    """A package reference found in a project file.

    Attributes:
        id: The package id as written in the manifest
        requested_version: The requested version, possibly a range such as ``[6.0.0, )``
    """

    id: str
    requested_version: str


@dataclass(frozen=True)
class AnalyzedDependency:
    """A declared dependency joined with the newest versions on the feed.

    Attributes:
        id: The package id as written in the manifest
        requested_version: The version requested by the manifest
        latest_stable_version: Newest non-prerelease version, if any
        latest_version: Newest version including prereleases, if any
    """

    id: str
    requested_version: str
    latest_stable_version: str | None
    latest_version: str | None
