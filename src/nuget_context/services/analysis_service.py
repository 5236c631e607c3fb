"""Project dependency analysis.

Fans out one lookup per declared dependency and joins the results. A bad
manifest or a failing lookup only removes its own share of the result.
"""

import asyncio
import logging

from nuget_context.config import settings
from nuget_context.entities import AnalyzedDependency, DeclaredDependency
from nuget_context.errors import CacheStorageError
from nuget_context.protocols import ManifestParser
from nuget_context.project_files import is_project_path, is_solution_path
from nuget_context.services.cached_query_service import CachedQueryService
from nuget_context.versioning import ReleaseChannel, latest

logger = logging.getLogger(__name__)


def deduplicate(dependencies: list[AnalyzedDependency]) -> list[AnalyzedDependency]:
    """Keep the first occurrence of every package id (ids compare case-insensitively)."""
    seen: set[str] = set()
    unique = []
    for dependency in dependencies:
        key = dependency.id.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(dependency)
    return unique


class ProjectAnalysisService:
    """Analyze the NuGet dependencies of a project or solution.

    Example:
        ```python
        analysis = ProjectAnalysisService(parser=MsBuildManifestParser(), queries=queries)
        for dep in await analysis.analyze("/src/App/App.csproj"):
            print(dep.id, dep.requested_version, dep.latest_stable_version)
        ```
    """

    def __init__(
        self,
        parser: ManifestParser,
        queries: CachedQueryService,
        max_concurrency: int | None = None,
    ) -> None:
        """Initialize the analysis service.

        Args:
            parser: Project/solution file reader (required).
            queries: Cache-aware registry queries (required).
            max_concurrency: Maximum dependency lookups in flight. Defaults to settings.
        """
        self._parser = parser
        self._queries = queries
        self._max_concurrency = max_concurrency or settings.analysis_max_concurrency

    async def analyze(self, path: str) -> list[AnalyzedDependency]:
        """Analyze a solution or project file.

        Business logic:
        1. Expand a solution into its projects (a project is a list of one)
        2. Parse every project concurrently, skipping those that fail
        3. Fetch the version list of every dependency concurrently (once per dependency)
           and derive latest stable and latest overall from it, dropping those whose
           lookup fails
        4. Deduplicate by package id, first occurrence wins

        Args:
            path: Path to a .sln or project file

        Returns:
            Unique analyzed dependencies; empty for invalid paths or when nothing was found

        Raises:
            asyncio.CancelledError: If the analysis is cancelled; in-flight lookups are cancelled too
        """
        logger.info("Starting analysis for path: %s", path)
        try:
            project_paths = await self._resolve_projects(path)
            if not project_paths:
                logger.warning("No valid projects found to analyze for path: %s", path)
                return []

            declared = await self._collect_dependencies(project_paths)

            semaphore = asyncio.Semaphore(self._max_concurrency)
            analyzed = await asyncio.gather(
                *(self._analyze_dependency(dependency, project, semaphore) for project, dependency in declared)
            )
        except asyncio.CancelledError:
            logger.warning("Analysis cancelled for path: %s", path)
            raise

        unique = deduplicate([result for result in analyzed if result is not None])
        logger.info("Analysis complete for path: %s. Found %d unique dependencies.", path, len(unique))
        return unique

    async def _resolve_projects(self, path: str) -> list[str]:
        if is_solution_path(path):
            try:
                return await self._parser.parse_solution(path)
            except Exception as e:
                logger.error("Failed to parse solution %s: %s", path, e)
                return []

        if is_project_path(path):
            return [path]

        logger.error("Invalid file type provided. Path must be a solution or project file: %s", path)
        return []

    async def _collect_dependencies(self, project_paths: list[str]) -> list[tuple[str, DeclaredDependency]]:
        """Parse all projects, keeping project order then declaration order."""

        async def _parse(project_path: str) -> list[tuple[str, DeclaredDependency]]:
            logger.debug("Analyzing project: %s", project_path)
            try:
                references = await self._parser.parse_project(project_path)
            except Exception as e:
                logger.error("Failed to parse project %s. Skipping project: %s", project_path, e)
                return []
            return [(project_path, reference) for reference in references]

        per_project = await asyncio.gather(*(_parse(project_path) for project_path in project_paths))
        return [pair for pairs in per_project for pair in pairs]

    async def _analyze_dependency(
        self,
        dependency: DeclaredDependency,
        project_path: str,
        semaphore: asyncio.Semaphore,
    ) -> AnalyzedDependency | None:
        async with semaphore:
            logger.debug("Fetching latest versions for package: %s", dependency.id)
            try:
                versions = await self._queries.get_all_versions(dependency.id)
            except CacheStorageError as e:
                logger.error(
                    "Cache storage failed while looking up %s from project %s. Skipping dependency: %s",
                    dependency.id,
                    project_path,
                    e,
                )
                return None
            except Exception as e:
                logger.warning(
                    "Failed to get latest versions for package %s from project %s. Skipping dependency: %s",
                    dependency.id,
                    project_path,
                    e,
                )
                return None

        stable = latest(versions, ReleaseChannel.STABLE)
        newest = latest(versions, ReleaseChannel.INCLUDING_PRERELEASE)

        return AnalyzedDependency(
            id=dependency.id,
            requested_version=dependency.requested_version or "0.0.0",
            latest_stable_version=stable.to_normalized_string() if stable else None,
            latest_version=newest.to_normalized_string() if newest else None,
        )
