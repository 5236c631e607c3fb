"""Cache entry domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a persisted cache row.

    This is an internal representation used by the cache repository.
    A row whose ``expires_at`` is not in the future is logically absent,
    even before the eviction sweep physically deletes it.

    Attributes:
        key: Unique cache key (see ``nuget_context.cache_keys``)
        payload: Serialized value, usually a JSON document
        expires_at: Absolute expiry as a Unix timestamp in seconds
    """

    key: str
    payload: str
    expires_at: int

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now
