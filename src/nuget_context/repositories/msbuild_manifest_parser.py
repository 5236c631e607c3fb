"""MSBuild project and solution file reader.

Reads ``PackageReference`` items straight from the project XML instead of
running a full MSBuild evaluation. Supported subset:

- ``Version`` / ``VersionOverride`` given as attribute or child element
- Central package management through the nearest ``Directory.Packages.props``
- ``$(Property)`` references defined in a ``PropertyGroup`` of the project
  or of that props file

Conditions, imports other than ``Directory.Packages.props`` and item
functions are not evaluated.
"""

import asyncio
import logging
import os
import re
import xml.etree.ElementTree as ET
from pathlib import Path

from nuget_context.entities import DeclaredDependency
from nuget_context.errors import ManifestError
from nuget_context.project_files import is_project_path

logger = logging.getLogger(__name__)

CENTRAL_PACKAGES_FILE = "Directory.Packages.props"
SOLUTION_HEADER = "Microsoft Visual Studio Solution File"

_SOLUTION_PROJECT = re.compile(
    r'^Project\("\{(?P<type>[^}]+)\}"\)\s*=\s*"(?P<name>[^"]*)"\s*,\s*"(?P<path>[^"]*)"',
    re.MULTILINE,
)
_PROPERTY_REFERENCE = re.compile(r"\$\((?P<name>[A-Za-z_][A-Za-z0-9_.-]*)\)")


def _local_name(tag: str) -> str:
    # old-style projects use the 2003 MSBuild namespace
    return tag.rsplit("}", 1)[-1]


def _load_xml(path: Path) -> ET.Element:
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ManifestError(f"Invalid project file format: {e}", str(path)) from e
    except OSError as e:
        raise ManifestError(f"Cannot read project file: {e}", str(path)) from e

    for element in root.iter():
        if isinstance(element.tag, str):
            element.tag = _local_name(element.tag)
    return root


def _metadata(element: ET.Element, name: str) -> str | None:
    """Read item metadata given either as an attribute or as a child element."""
    value = element.get(name)
    if value is None:
        child = element.find(name)
        if child is not None and child.text:
            value = child.text
    value = value.strip() if value else None
    return value or None


def _collect_properties(root: ET.Element, properties: dict[str, str]) -> None:
    for group in root.iter("PropertyGroup"):
        for prop in group:
            if isinstance(prop.tag, str) and prop.text is not None:
                properties[prop.tag.lower()] = _expand(prop.text.strip(), properties)


def _expand(value: str, properties: dict[str, str]) -> str:
    return _PROPERTY_REFERENCE.sub(lambda m: properties.get(m.group("name").lower(), ""), value)


def find_central_packages_file(project_path: Path) -> Path | None:
    """Find the nearest Directory.Packages.props at or above the project directory."""
    for directory in [project_path.parent, *project_path.parent.parents]:
        candidate = directory / CENTRAL_PACKAGES_FILE
        if candidate.is_file():
            return candidate
    return None


class MsBuildManifestParser:
    """MSBuild file implementation of the ManifestParser protocol.

    This class satisfies the ManifestParser protocol through structural
    typing - no explicit inheritance needed. Parsing runs on a worker
    thread so large solutions do not stall the event loop.
    """

    async def parse_project(self, path: str) -> list[DeclaredDependency]:
        """Read the package references of a project file.

        Args:
            path: Path to a .csproj/.fsproj/.vbproj file

        Returns:
            Declared dependencies in document order

        Raises:
            ManifestError: If the file is missing or not valid XML
        """
        return await asyncio.to_thread(self.read_project, path)

    async def parse_solution(self, path: str) -> list[str]:
        """Read the project paths listed in a solution file.

        Args:
            path: Path to a .sln file

        Returns:
            Absolute paths of the listed projects that exist on disk

        Raises:
            ManifestError: If the file is missing or is not a solution file
        """
        return await asyncio.to_thread(self.read_solution, path)

    def read_project(self, path: str) -> list[DeclaredDependency]:
        project_path = Path(path)
        if not project_path.is_file():
            raise ManifestError("Project file not found", path)

        logger.debug("Loading project: %s", path)
        root = _load_xml(project_path)

        properties: dict[str, str] = {}
        central_versions: dict[str, str] = {}
        props_path = find_central_packages_file(project_path)
        if props_path is not None:
            try:
                props_root = _load_xml(props_path)
            except ManifestError as e:
                logger.warning("Ignoring unreadable %s: %s", props_path, e)
            else:
                _collect_properties(props_root, properties)
                for item in props_root.iter("PackageVersion"):
                    package_id = item.get("Include")
                    version = _metadata(item, "Version")
                    if package_id and version:
                        central_versions[package_id.strip().lower()] = _expand(version, properties)

        _collect_properties(root, properties)

        dependencies: list[DeclaredDependency] = []
        for item in root.iter("PackageReference"):
            include = item.get("Include")
            if not include:
                # Update="..." items only adjust references declared elsewhere
                continue

            version = _metadata(item, "VersionOverride") or _metadata(item, "Version")
            for package_id in filter(None, (part.strip() for part in _expand(include, properties).split(";"))):
                resolved = version or central_versions.get(package_id.lower())
                resolved = _expand(resolved, properties).strip() if resolved else None
                if not resolved:
                    logger.warning(
                        "Found PackageReference with missing version in project %s: Include='%s'",
                        path,
                        package_id,
                    )
                    continue

                dependencies.append(DeclaredDependency(id=package_id, requested_version=resolved))
                logger.debug("Found PackageReference: %s Version: %s", package_id, resolved)

        logger.info("Parsed %d PackageReferences from project %s", len(dependencies), path)
        return dependencies

    def read_solution(self, path: str) -> list[str]:
        solution_path = Path(path)
        if not solution_path.is_file():
            raise ManifestError("Solution file not found", path)

        logger.debug("Parsing solution file: %s", path)
        try:
            text = solution_path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as e:
            raise ManifestError(f"Cannot read solution file: {e}", path) from e

        if SOLUTION_HEADER not in text:
            raise ManifestError("Not a Visual Studio solution file", path)

        project_paths: list[str] = []
        for match in _SOLUTION_PROJECT.finditer(text):
            relative = match.group("path")
            if not is_project_path(relative):
                # solution folders and non-MSBuild entries
                continue

            absolute = os.path.normpath(solution_path.parent.absolute() / relative.replace("\\", "/"))
            if os.path.isfile(absolute):
                project_paths.append(absolute)
                logger.debug("Found project %s at %s", match.group("name"), absolute)
            else:
                logger.warning(
                    "Project '%s' listed in solution but not found at expected path: %s",
                    match.group("name"),
                    absolute,
                )

        logger.info("Parsed %d valid project paths from solution %s", len(project_paths), path)
        return project_paths
