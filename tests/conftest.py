"""Shared fixtures: an on-disk cache with a controllable clock, plus in-memory fakes."""

import asyncio

import pytest

from nuget_context.entities import DeclaredDependency, PackageMetadata, PackageSearchResult
from nuget_context.errors import ManifestError
from nuget_context.repositories import SqliteCacheRepository
from nuget_context.services import CachedQueryService
from nuget_context.versioning import NuGetVersion

CACHE_TTL_SECONDS = 3600


class FakeClock:
    """Manually advanced Unix clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRegistryClient:
    """In-memory RegistryClient that records every call.

    ``failures`` maps a lower-cased package id or search term to the exception
    to raise. ``gate``, when set, blocks every call until the event is set.
    """

    def __init__(self) -> None:
        self.versions: dict[str, list[str]] = {}
        self.search_results: dict[str, list[PackageSearchResult]] = {}
        self.metadata: dict[tuple[str, str], PackageMetadata] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()

    async def _enter(self, method: str, subject: str) -> None:
        self.calls.append((method, subject))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        error = self.failures.get(subject.lower())
        if error is not None:
            raise error

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def add_metadata(self, metadata: PackageMetadata) -> None:
        self.metadata[(metadata.id.lower(), metadata.version)] = metadata

    async def search(self, term, include_prerelease, skip, take):
        await self._enter("search", term)
        return list(self.search_results.get(term.lower(), []))[skip : skip + take]

    async def list_versions(self, package_id):
        await self._enter("list_versions", package_id)
        return list(self.versions.get(package_id.lower(), []))

    async def get_metadata(self, package_id, version):
        await self._enter("get_metadata", package_id)
        return self.metadata.get((package_id.lower(), version))

    async def get_latest_metadata(self, package_id, include_prerelease):
        await self._enter("get_latest_metadata", package_id)
        candidates = [
            metadata
            for (pid, _), metadata in self.metadata.items()
            if pid == package_id.lower()
            and (include_prerelease or not NuGetVersion.parse(metadata.version).is_prerelease)
        ]
        return max(candidates, key=lambda m: NuGetVersion.parse(m.version), default=None)


class FakeManifestParser:
    """In-memory ManifestParser; unknown paths raise ManifestError."""

    def __init__(self) -> None:
        self.projects: dict[str, list[DeclaredDependency] | Exception] = {}
        self.solutions: dict[str, list[str] | Exception] = {}

    async def parse_project(self, path):
        return self._lookup(self.projects, path)

    async def parse_solution(self, path):
        return self._lookup(self.solutions, path)

    @staticmethod
    def _lookup(table, path):
        result = table.get(path)
        if result is None:
            raise ManifestError("File not found", path)
        if isinstance(result, Exception):
            raise result
        return list(result)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    """SQLite cache in a temporary directory, without retry backoff."""
    repository = SqliteCacheRepository(
        database_path=str(tmp_path / "cache" / "nuget_cache.db"),
        max_retry_attempts=3,
        retry_delay=0,
        clock=clock,
    )
    yield repository
    repository.close()


@pytest.fixture
def registry():
    return FakeRegistryClient()


@pytest.fixture
def parser():
    return FakeManifestParser()


@pytest.fixture
def queries(store, registry):
    return CachedQueryService(store=store, registry=registry, ttl_seconds=CACHE_TTL_SECONDS)
