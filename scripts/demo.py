#!/usr/bin/env python3
"""
Demo script for nuget-context.

This script demonstrates the cache-aside lookups against the configured NuGet
feed and, when given a path, analyzes a project or solution file.

Usage:
    python scripts/demo.py [path/to/App.sln]
"""

import asyncio
import sys
import time

from nuget_context import (
    CachedQueryService,
    MsBuildManifestParser,
    NuGetRegistryClient,
    PackageService,
    ProjectAnalysisService,
    SqliteCacheRepository,
    configure_logging,
    settings,
)
from nuget_context.versioning import ReleaseChannel


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def demo_cache_aside(queries: CachedQueryService) -> None:
    """Show a cold lookup followed by a cached one."""
    print_section("Cache-Aside Lookups")

    for package_id in ("Newtonsoft.Json", "Serilog", "xunit"):
        for attempt in ("cold", "warm"):
            start = time.time()
            newest = await queries.latest_version(package_id, ReleaseChannel.STABLE)
            duration = (time.time() - start) * 1000
            print(f"  {package_id:<20} {attempt:<5} {str(newest):<15} {duration:8.2f}ms")


async def demo_package_queries(packages: PackageService) -> None:
    """Show search and details queries."""
    print_section("Package Queries")

    print("\n🔍 Searching for 'logging':")
    for result in await packages.search("logging", take=5):
        print(f"  {result.id:<40} {result.version}")

    print("\n📦 Details for Newtonsoft.Json:")
    details = await packages.package_details("Newtonsoft.Json")
    if details is not None:
        print(f"  Version: {details.version}")
        print(f"  Authors: {details.authors}")
        print(f"  Project: {details.project_url}")
    else:
        print("  ✗ Not found")


async def demo_analysis(analysis: ProjectAnalysisService, path: str) -> None:
    """Analyze a project or solution file."""
    print_section(f"Analysis of {path}")

    dependencies = await analysis.analyze(path)
    print(f"{'Package':<40} {'Requested':<15} {'Stable':<15} {'Latest':<15}")
    print("-" * 85)
    for dep in dependencies:
        print(
            f"{dep.id:<40} "
            f"{dep.requested_version:<15} "
            f"{dep.latest_stable_version or '-':<15} "
            f"{dep.latest_version or '-':<15}"
        )


async def main() -> None:
    """Run all demos."""
    configure_logging()
    print("\n🚀 NuGet Context Demo")
    print("=" * 70)
    print(f"Feed: {settings.nuget_feed_url}")
    print(f"Cache: {settings.cache_database_path}")

    store = SqliteCacheRepository.create()
    registry = NuGetRegistryClient.create()
    queries = CachedQueryService.create(store=store, registry=registry)

    try:
        await demo_cache_aside(queries)
        await demo_package_queries(PackageService(queries=queries))
        if len(sys.argv) > 1:
            await demo_analysis(ProjectAnalysisService(parser=MsBuildManifestParser(), queries=queries), sys.argv[1])

        print("\n" + "=" * 70)
        print("✅ Demo completed successfully!")
        print("=" * 70)

    except Exception as e:
        print(f"\n❌ Error: {e}")
        print("\nMake sure the feed is reachable or set NUGET_FEED_URL to your feed.")
    finally:
        await registry.close()
        store.close()


if __name__ == "__main__":
    asyncio.run(main())
