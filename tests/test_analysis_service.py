"""
Tests for project and solution dependency analysis.
"""

import asyncio

import pytest

from nuget_context.entities import AnalyzedDependency, DeclaredDependency
from nuget_context.errors import CacheStorageError, ManifestError, RegistryError
from nuget_context.services import ProjectAnalysisService
from nuget_context.services.analysis_service import deduplicate


@pytest.fixture
def analysis(parser, queries):
    return ProjectAnalysisService(parser=parser, queries=queries, max_concurrency=4)


@pytest.mark.asyncio
async def test_single_project(analysis, parser, registry):
    parser.projects["/src/App/App.csproj"] = [DeclaredDependency("Foo", "1.0.0")]
    registry.versions["foo"] = ["1.0.0", "1.1.0", "2.0.0-beta"]

    result = await analysis.analyze("/src/App/App.csproj")

    assert result == [
        AnalyzedDependency(
            id="Foo",
            requested_version="1.0.0",
            latest_stable_version="1.1.0",
            latest_version="2.0.0-beta",
        )
    ]
    assert registry.count("list_versions") == 1


@pytest.mark.asyncio
async def test_solution_deduplicates_first_occurrence_wins(analysis, parser, registry):
    parser.solutions["/src/App.sln"] = ["/src/A/A.csproj", "/src/B/B.fsproj"]
    parser.projects["/src/A/A.csproj"] = [DeclaredDependency("Foo", "1.0.0")]
    parser.projects["/src/B/B.fsproj"] = [DeclaredDependency("foo", "2.0.0"), DeclaredDependency("Bar", "3.0.0")]
    registry.versions["foo"] = ["2.0.0"]
    registry.versions["bar"] = ["3.0.0"]

    result = await analysis.analyze("/src/App.sln")

    assert [(d.id, d.requested_version) for d in result] == [("Foo", "1.0.0"), ("Bar", "3.0.0")]


@pytest.mark.asyncio
async def test_failed_lookup_drops_only_that_dependency(analysis, parser, registry):
    parser.projects["/src/App.csproj"] = [
        DeclaredDependency("Foo", "1.0.0"),
        DeclaredDependency("Bar", "1.0.0"),
        DeclaredDependency("Baz", "2.0.0"),
    ]
    registry.versions["foo"] = ["1.0.0", "1.2.0"]
    registry.versions["baz"] = ["2.0.0", "3.0.0-rc.1"]
    registry.failures["bar"] = RegistryError("feed down")

    result = await analysis.analyze("/src/App.csproj")

    assert result == [
        AnalyzedDependency("Foo", "1.0.0", "1.2.0", "1.2.0"),
        AnalyzedDependency("Baz", "2.0.0", "2.0.0", "3.0.0-rc.1"),
    ]


@pytest.mark.asyncio
async def test_cache_write_failure_drops_only_that_dependency(analysis, parser, registry, store, monkeypatch):
    parser.projects["/src/App.csproj"] = [DeclaredDependency("Foo", "1.0.0"), DeclaredDependency("Bar", "1.0.0")]
    registry.versions["foo"] = ["1.0.0"]
    registry.versions["bar"] = ["1.0.0"]
    original_set_value = store.set_value

    async def set_value(key, value, codec, ttl_seconds):
        if "bar" in key:
            raise CacheStorageError("disk full")
        await original_set_value(key, value, codec, ttl_seconds)

    monkeypatch.setattr(store, "set_value", set_value)

    result = await analysis.analyze("/src/App.csproj")

    assert [d.id for d in result] == ["Foo"]


@pytest.mark.asyncio
async def test_unknown_package_is_kept_without_versions(analysis, parser):
    parser.projects["/src/App.csproj"] = [DeclaredDependency("Internal.Only", "1.0.0")]

    result = await analysis.analyze("/src/App.csproj")

    assert result == [AnalyzedDependency("Internal.Only", "1.0.0", None, None)]


@pytest.mark.asyncio
async def test_missing_requested_version_defaults(analysis, parser, registry):
    parser.projects["/src/App.csproj"] = [DeclaredDependency("Foo", "")]
    registry.versions["foo"] = ["1.0.0"]

    result = await analysis.analyze("/src/App.csproj")

    assert result[0].requested_version == "0.0.0"


@pytest.mark.asyncio
async def test_unparseable_project_is_skipped(analysis, parser, registry):
    parser.solutions["/src/App.sln"] = ["/src/A.csproj", "/src/Broken.csproj"]
    parser.projects["/src/A.csproj"] = [DeclaredDependency("Foo", "1.0.0")]
    parser.projects["/src/Broken.csproj"] = ManifestError("Invalid project file format", "/src/Broken.csproj")
    registry.versions["foo"] = ["1.0.0"]

    result = await analysis.analyze("/src/App.sln")

    assert [d.id for d in result] == ["Foo"]


@pytest.mark.asyncio
async def test_unparseable_solution_is_empty(analysis, parser):
    parser.solutions["/src/App.sln"] = ManifestError("Not a Visual Studio solution file", "/src/App.sln")

    assert await analysis.analyze("/src/App.sln") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/src/readme.txt", "/src/App.csproj.user", ""])
async def test_invalid_path_is_empty(analysis, registry, path):
    assert await analysis.analyze(path) == []
    assert registry.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/src/Legacy.vbproj", "/src/Lib.FSPROJ"])
async def test_other_project_languages_are_analyzed(analysis, parser, registry, path):
    parser.projects[path] = [DeclaredDependency("Foo", "1.0.0")]
    registry.versions["foo"] = ["1.0.0"]

    assert [d.id for d in await analysis.analyze(path)] == ["Foo"]


@pytest.mark.asyncio
async def test_empty_solution_is_empty(analysis, parser):
    parser.solutions["/src/App.sln"] = []

    assert await analysis.analyze("/src/App.sln") == []


@pytest.mark.asyncio
async def test_cancellation_leaves_cache_consistent(analysis, parser, registry, store):
    parser.projects["/src/App.csproj"] = [DeclaredDependency("Foo", "1.0.0"), DeclaredDependency("Bar", "2.0.0")]
    registry.versions["foo"] = ["1.0.0", "1.1.0"]
    registry.versions["bar"] = ["2.0.0"]
    registry.gate = asyncio.Event()

    task = asyncio.create_task(analysis.analyze("/src/App.csproj"))
    await registry.started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert await store.keys() == []

    registry.gate = None
    result = await analysis.analyze("/src/App.csproj")

    assert [(d.id, d.latest_stable_version) for d in result] == [("Foo", "1.1.0"), ("Bar", "2.0.0")]
    assert await store.keys() == ["versions:bar", "versions:foo"]


def test_deduplicate_is_case_insensitive():
    deps = [
        AnalyzedDependency("Foo", "1.0.0", None, None),
        AnalyzedDependency("FOO", "2.0.0", None, None),
        AnalyzedDependency("Bar", "1.0.0", None, None),
    ]

    assert deduplicate(deps) == [deps[0], deps[2]]
