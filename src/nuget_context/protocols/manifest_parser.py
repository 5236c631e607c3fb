"""Manifest parser protocol."""

from typing import Protocol, runtime_checkable

from nuget_context.entities import DeclaredDependency


@runtime_checkable
class ManifestParser(Protocol):
    """Protocol for project and solution file readers.

    Both methods return an empty list for a well-formed file that declares
    nothing, and raise ``ManifestError`` for a missing or malformed file.
    """

    async def parse_project(self, path: str) -> list[DeclaredDependency]:
        """Read the package references declared by a project file."""
        ...

    async def parse_solution(self, path: str) -> list[str]:
        """Read the project file paths listed in a solution file."""
        ...
