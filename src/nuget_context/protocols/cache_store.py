"""Cache storage protocol.

Defines the interface for the persistent key/value store with per-entry
expiration that sits between the query services and the remote registry.

Implementations can include:
- SQLite file (default, see ``SqliteCacheRepository``)
- An in-memory dictionary for tests
"""

from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class PayloadCodec(Protocol[T]):
    """Protocol for turning cached values into payload text and back.

    ``decode`` must raise ``ValueError`` (or a subclass) when the payload
    does not describe a valid ``T``; the store treats that as a poisoned entry.
    """

    def encode(self, value: T) -> str:
        ...

    def decode(self, payload: str) -> T:
        ...


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for TTL cache storage backends.

    Similar to Go's interface pattern - any type that implements these
    methods satisfies the protocol, no explicit inheritance needed.

    Example:
        ```python
        from nuget_context.protocols import CacheStore

        store: CacheStore = SqliteCacheRepository.create()
        ```
    """

    async def get(self, key: str) -> str | None:
        """Read a payload.

        Args:
            key: The cache key

        Returns:
            The payload if a non-expired entry exists, None otherwise
        """
        ...

    async def get_value(self, key: str, codec: PayloadCodec[T]) -> T | None:
        """Read and decode a payload.

        An entry that cannot be decoded is removed and reported as a miss.

        Args:
            key: The cache key
            codec: Codec for the expected value type

        Returns:
            The decoded value, or None on a miss
        """
        ...

    async def set(self, key: str, payload: str, ttl_seconds: float) -> None:
        """Insert or overwrite an entry (last write wins).

        Args:
            key: The cache key
            payload: Serialized value
            ttl_seconds: Lifetime from now in seconds
        """
        ...

    async def set_value(self, key: str, value: T, codec: PayloadCodec[T], ttl_seconds: float) -> None:
        """Encode and store a value."""
        ...

    async def remove(self, key: str) -> None:
        """Delete one entry. Removing a missing key is not an error."""
        ...

    async def sweep_expired(self) -> int:
        """Delete every expired entry in one unit of work.

        Returns:
            Number of entries removed
        """
        ...

    async def count(self) -> int:
        """Count stored rows, including expired rows not yet swept."""
        ...

    async def keys(self) -> list[str]:
        """List stored keys, including expired rows not yet swept."""
        ...

    async def health_check(self) -> bool:
        """Check if the storage is accessible."""
        ...

    async def get_stats(self) -> dict:
        """Get store statistics (implementation-specific)."""
        ...
