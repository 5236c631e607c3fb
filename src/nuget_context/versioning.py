"""NuGet version parsing and ordering.

NuGet versions are SemVer 2.0 with an optional fourth ``revision`` component
(``1.2.3.4``) and tolerate short forms (``1`` or ``1.2``). Ordering follows
semantic-version precedence; build metadata is ignored.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering

_VERSION_PATTERN = re.compile(
    r"""
    ^\s*v?
    (?P<major>\d+)
    (?:\.(?P<minor>\d+))?
    (?:\.(?P<patch>\d+))?
    (?:\.(?P<revision>\d+))?
    (?:-(?P<release>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    (?:\+(?P<metadata>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    \s*$
    """,
    re.VERBOSE,
)


class ReleaseChannel(Enum):
    """Which versions a "latest" query may return."""

    STABLE = "stable"
    INCLUDING_PRERELEASE = "including-prerelease"

    @classmethod
    def from_flag(cls, include_prerelease: bool) -> "ReleaseChannel":
        return cls.INCLUDING_PRERELEASE if include_prerelease else cls.STABLE

    def admits(self, version: "NuGetVersion") -> bool:
        return self is ReleaseChannel.INCLUDING_PRERELEASE or not version.is_prerelease


def _label_key(label: str) -> tuple[int, int, str]:
    # numeric identifiers sort before alphanumeric ones
    if label.isdigit():
        return (0, int(label), "")
    return (1, 0, label.lower())


@total_ordering
@dataclass(frozen=True, eq=False)
class NuGetVersion:
    """A parsed package version.

    Attributes:
        major: Major component
        minor: Minor component
        patch: Patch component
        revision: NuGet's legacy fourth component (0 when absent)
        release_labels: Dot-separated pre-release labels, empty for stable versions
        metadata: Build metadata after ``+``, ignored for ordering
    """

    major: int
    minor: int = 0
    patch: int = 0
    revision: int = 0
    release_labels: tuple[str, ...] = ()
    metadata: str | None = field(default=None)

    @classmethod
    def parse(cls, value: str) -> "NuGetVersion":
        """Parse a version string.

        Args:
            value: Version text such as ``13.0.1`` or ``2.0.0-beta.1+sha.abc``

        Returns:
            The parsed version

        Raises:
            ValueError: If the text is not a valid version
        """
        match = _VERSION_PATTERN.match(value or "")
        if match is None:
            raise ValueError(f"Invalid version string: {value!r}")

        release = match.group("release")
        labels = tuple(release.split(".")) if release else ()
        for label in labels:
            if label.isdigit() and len(label) > 1 and label.startswith("0"):
                raise ValueError(f"Invalid version string: {value!r} (leading zero in {label!r})")

        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor") or 0),
            patch=int(match.group("patch") or 0),
            revision=int(match.group("revision") or 0),
            release_labels=labels,
            metadata=match.group("metadata"),
        )

    @classmethod
    def try_parse(cls, value: str | None) -> "NuGetVersion | None":
        if not value:
            return None
        try:
            return cls.parse(value)
        except ValueError:
            return None

    @property
    def is_prerelease(self) -> bool:
        return bool(self.release_labels)

    @property
    def release(self) -> str:
        return ".".join(self.release_labels)

    def to_normalized_string(self) -> str:
        """Render the canonical form used for caching and display."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.release_labels:
            text += f"-{self.release}"
        return text

    def _precedence(self) -> tuple:
        numbers = (self.major, self.minor, self.patch, self.revision)
        if not self.release_labels:
            return (numbers, 1, ())
        return (numbers, 0, tuple(_label_key(label) for label in self.release_labels))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._precedence() == other._precedence()

    def __lt__(self, other: "NuGetVersion") -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._precedence() < other._precedence()

    def __hash__(self) -> int:
        return hash(self._precedence())

    def __str__(self) -> str:
        return self.to_normalized_string()


def select_versions(versions: Iterable[NuGetVersion], channel: ReleaseChannel) -> list[NuGetVersion]:
    """Filter versions by release channel, newest first."""
    return sorted((v for v in versions if channel.admits(v)), reverse=True)


def latest(versions: Iterable[NuGetVersion], channel: ReleaseChannel) -> NuGetVersion | None:
    """Return the highest version admitted by the channel, if any."""
    ordered = select_versions(versions, channel)
    return ordered[0] if ordered else None
