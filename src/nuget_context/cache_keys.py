"""Cache key construction for every registry query shape.

Subjects (package ids, search terms) are lower-cased and percent-encoded so
that call-site casing never splits a key and a ``:`` inside a search term
cannot collide with the parameter separators.
"""

from urllib.parse import quote


def _subject(value: str | None) -> str:
    return quote((value or "").strip().lower(), safe="")


def _flag(value: bool) -> str:
    return "true" if value else "false"


def search_key(term: str, include_prerelease: bool, skip: int, take: int) -> str:
    return f"search:{_subject(term)}:prerel:{_flag(include_prerelease)}:skip:{skip}:take:{take}"


def versions_key(package_id: str) -> str:
    return f"versions:{_subject(package_id)}"


def metadata_key(package_id: str, version: str) -> str:
    return f"metadata:{_subject(package_id)}:{_subject(version)}"


def latest_metadata_key(package_id: str, include_prerelease: bool) -> str:
    return f"latest-metadata:{_subject(package_id)}:prerel:{_flag(include_prerelease)}"
