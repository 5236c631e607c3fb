"""
Tests for NuGet version parsing and ordering.
"""

import pytest

from nuget_context.versioning import NuGetVersion, ReleaseChannel, latest, select_versions


def v(text: str) -> NuGetVersion:
    return NuGetVersion.parse(text)


@pytest.mark.parametrize(
    ("text", "normalized"),
    [
        ("13.0.1", "13.0.1"),
        ("1.0", "1.0.0"),
        ("2", "2.0.0"),
        ("1.2.3.4", "1.2.3.4"),
        ("1.2.3.0", "1.2.3"),
        ("2.0.0-beta.1+sha.abc", "2.0.0-beta.1"),
        (" 1.0.0-RC1 ", "1.0.0-RC1"),
    ],
)
def test_parse_and_normalize(text, normalized):
    assert v(text).to_normalized_string() == normalized


@pytest.mark.parametrize("text", ["", "abc", "1.0.0-", "1.0.0-beta..1", "1.0.0-01", "[1.0,2.0)"])
def test_parse_rejects_invalid(text):
    with pytest.raises(ValueError):
        NuGetVersion.parse(text)
    assert NuGetVersion.try_parse(text) is None


def test_try_parse_none():
    assert NuGetVersion.try_parse(None) is None


def test_prerelease_sorts_before_release():
    assert v("1.0.0-rc.1") < v("1.0.0")
    assert v("1.0.0") < v("1.0.1-alpha")


def test_numeric_labels_compare_numerically():
    assert v("1.0.0-beta.2") < v("1.0.0-beta.10")
    assert v("1.0.0-1") < v("1.0.0-alpha")


def test_labels_compare_case_insensitively():
    assert v("1.0.0-Beta") == v("1.0.0-beta")
    assert v("1.0.0-alpha") < v("1.0.0-BETA")


def test_revision_participates_in_ordering():
    assert v("1.2.3") < v("1.2.3.1")
    assert v("1.2.3") == v("1.2.3.0")


def test_metadata_is_ignored():
    assert v("1.0.0+build.1") == v("1.0.0+build.2")
    assert hash(v("1.0.0+a")) == hash(v("1.0.0"))


def test_select_versions_is_descending_and_filtered():
    versions = [v("1.0.0"), v("2.0.0-beta"), v("1.5.0"), v("0.9.0")]

    stable = select_versions(versions, ReleaseChannel.STABLE)
    everything = select_versions(versions, ReleaseChannel.INCLUDING_PRERELEASE)

    assert [str(x) for x in stable] == ["1.5.0", "1.0.0", "0.9.0"]
    assert [str(x) for x in everything] == ["2.0.0-beta", "1.5.0", "1.0.0", "0.9.0"]


def test_latest_per_channel():
    versions = [v("1.0.0"), v("1.1.0"), v("2.0.0-beta")]

    assert latest(versions, ReleaseChannel.STABLE) == v("1.1.0")
    assert latest(versions, ReleaseChannel.INCLUDING_PRERELEASE) == v("2.0.0-beta")
    assert latest([v("1.0.0-alpha")], ReleaseChannel.STABLE) is None
    assert latest([], ReleaseChannel.INCLUDING_PRERELEASE) is None


def test_release_channel_from_flag():
    assert ReleaseChannel.from_flag(True) is ReleaseChannel.INCLUDING_PRERELEASE
    assert ReleaseChannel.from_flag(False) is ReleaseChannel.STABLE
