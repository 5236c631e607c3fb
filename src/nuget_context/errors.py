"""Exception types shared across layers.

Only ``CacheStorageError`` is expected to reach API callers; registry and
manifest failures are logged and absorbed by the services.
"""


class NuGetContextError(Exception):
    """Base class for all errors raised by this package."""


class CacheStorageError(NuGetContextError):
    """The cache database rejected an operation.

    Attributes:
        transient: True when the failure was lock contention that outlived the retry budget
    """

    def __init__(self, message: str, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class RegistryError(NuGetContextError):
    """A call to the package registry failed or returned an unusable payload."""


class ManifestError(NuGetContextError):
    """A project or solution file is missing or cannot be parsed."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path
