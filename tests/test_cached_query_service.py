"""
Tests for the cache-aside query layer.
"""

import pytest

from nuget_context import cache_keys
from nuget_context.codecs import METADATA_CODEC, VERSION_LIST_CODEC
from nuget_context.entities import PackageMetadata, PackageSearchResult
from nuget_context.errors import CacheStorageError, RegistryError
from nuget_context.versioning import NuGetVersion, ReleaseChannel

CACHE_TTL_SECONDS = 3600


def test_cache_keys():
    assert cache_keys.versions_key("Newtonsoft.Json") == "versions:newtonsoft.json"
    assert cache_keys.search_key("json", True, 0, 20) == "search:json:prerel:true:skip:0:take:20"
    assert cache_keys.search_key("a:b c", False, 5, 10) == "search:a%3Ab%20c:prerel:false:skip:5:take:10"
    assert cache_keys.metadata_key("Serilog", "3.1.1") == "metadata:serilog:3.1.1"
    assert cache_keys.latest_metadata_key("Serilog", False) == "latest-metadata:serilog:prerel:false"


@pytest.mark.asyncio
async def test_versions_served_from_cache_within_ttl(queries, registry, store, clock):
    registry.versions["newtonsoft.json"] = ["12.0.0", "13.0.1"]

    first = await queries.get_all_versions("Newtonsoft.Json")
    clock.advance(30)
    second = await queries.get_all_versions("Newtonsoft.Json")

    assert first == second == [NuGetVersion.parse("12.0.0"), NuGetVersion.parse("13.0.1")]
    assert registry.count("list_versions") == 1
    assert await store.get_value("versions:newtonsoft.json", VERSION_LIST_CODEC) == ["12.0.0", "13.0.1"]


@pytest.mark.asyncio
async def test_key_is_case_insensitive(queries, registry):
    registry.versions["serilog"] = ["3.1.1"]

    await queries.get_all_versions("Serilog")
    await queries.get_all_versions("SERILOG")

    assert registry.count("list_versions") == 1


@pytest.mark.asyncio
async def test_expired_entry_is_refetched(queries, registry, clock):
    registry.versions["serilog"] = ["3.1.1"]

    await queries.get_all_versions("Serilog")
    clock.advance(CACHE_TTL_SECONDS)
    registry.versions["serilog"] = ["3.1.1", "4.0.0"]
    versions = await queries.get_all_versions("Serilog")

    assert [str(x) for x in versions] == ["3.1.1", "4.0.0"]
    assert registry.count("list_versions") == 2


@pytest.mark.asyncio
async def test_empty_results_are_not_cached(queries, registry, store):
    assert await queries.get_all_versions("Unknown.Package") == []
    assert await queries.get_all_versions("Unknown.Package") == []

    assert registry.count("list_versions") == 2
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_missing_metadata_is_not_cached(queries, registry, store):
    assert await queries.get_metadata("Foo", NuGetVersion.parse("1.0.0")) is None
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_unparseable_versions_are_skipped(queries, registry, store):
    registry.versions["foo"] = ["1.0.0", "not-a-version", "1.0"]

    versions = await queries.get_all_versions("Foo")

    assert [str(x) for x in versions] == ["1.0.0", "1.0.0"]
    assert await store.get_value("versions:foo", VERSION_LIST_CODEC) == ["1.0.0", "1.0.0"]


@pytest.mark.asyncio
async def test_registry_errors_propagate_and_are_not_cached(queries, registry, store):
    registry.failures["foo"] = RegistryError("feed down")

    with pytest.raises(RegistryError):
        await queries.get_all_versions("Foo")

    assert await store.count() == 0


@pytest.mark.asyncio
async def test_cache_read_failure_falls_back_to_registry(queries, registry, store, monkeypatch):
    registry.versions["foo"] = ["1.0.0"]

    async def broken_read(key, codec):
        raise CacheStorageError("database is locked", transient=True)

    monkeypatch.setattr(store, "get_value", broken_read)

    versions = await queries.get_all_versions("Foo")

    assert [str(x) for x in versions] == ["1.0.0"]
    assert registry.count("list_versions") == 1


@pytest.mark.asyncio
async def test_cache_write_failure_propagates(queries, registry, store, monkeypatch):
    registry.versions["foo"] = ["1.0.0"]

    async def broken_write(key, value, codec, ttl_seconds):
        raise CacheStorageError("disk full")

    monkeypatch.setattr(store, "set_value", broken_write)

    with pytest.raises(CacheStorageError):
        await queries.get_all_versions("Foo")


@pytest.mark.asyncio
async def test_latest_versions_share_one_cached_list(queries, registry):
    registry.versions["foo"] = ["1.0.0", "1.1.0", "2.0.0-beta"]

    stable = await queries.latest_stable_version("Foo")
    newest = await queries.latest_prerelease_version("Foo")

    assert str(stable) == "1.1.0"
    assert str(newest) == "2.0.0-beta"
    assert await queries.latest_version("Foo", ReleaseChannel.STABLE) == stable
    assert registry.count("list_versions") == 1


@pytest.mark.asyncio
async def test_search_pages_are_cached_separately(queries, registry):
    registry.search_results["json"] = [
        PackageSearchResult(id=f"Json.Package{i}", version="1.0.0") for i in range(5)
    ]

    first_page = await queries.search("json", False, 0, 2)
    second_page = await queries.search("json", False, 2, 2)
    again = await queries.search("JSON", False, 0, 2)

    assert [r.id for r in first_page] == ["Json.Package0", "Json.Package1"]
    assert [r.id for r in second_page] == ["Json.Package2", "Json.Package3"]
    assert again == first_page
    assert registry.count("search") == 2


@pytest.mark.asyncio
async def test_metadata_is_cached_under_normalized_version(queries, registry, store):
    metadata = PackageMetadata(id="Foo", version="1.0.0", description="Foo library", authors="Jane")
    registry.add_metadata(metadata)

    result = await queries.get_metadata("Foo", NuGetVersion.parse("1.0"))
    cached = await store.get_value("metadata:foo:1.0.0", METADATA_CODEC)

    assert result == metadata
    assert cached == metadata


@pytest.mark.asyncio
async def test_latest_metadata_keys_by_channel(queries, registry):
    registry.add_metadata(PackageMetadata(id="Foo", version="1.0.0"))
    registry.add_metadata(PackageMetadata(id="Foo", version="2.0.0-rc.1"))

    stable = await queries.get_latest_metadata("Foo", include_prerelease=False)
    newest = await queries.get_latest_metadata("Foo", include_prerelease=True)
    await queries.get_latest_metadata("Foo", include_prerelease=False)

    assert stable.version == "1.0.0"
    assert newest.version == "2.0.0-rc.1"
    assert registry.count("get_latest_metadata") == 2


@pytest.mark.asyncio
async def test_search_term_is_trimmed_for_key_and_registry(queries, registry):
    registry.search_results["json"] = [PackageSearchResult(id="Newtonsoft.Json", version="13.0.1")]

    padded = await queries.search("  json ", False, 0, 20)
    plain = await queries.search("json", False, 0, 20)

    assert padded == plain
    assert registry.calls == [("search", "json")]
