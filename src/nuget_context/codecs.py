"""Payload codecs for cached values.

``JsonCodec`` wraps a pydantic ``TypeAdapter`` so any JSON-representable
type (lists of strings, dataclass entities, ...) can be cached and validated
on the way back out.
"""

from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter

from nuget_context.entities import PackageMetadata, PackageSearchResult

T = TypeVar("T")


class JsonCodec(Generic[T]):
    """JSON codec for a single value type.

    Satisfies the ``PayloadCodec`` protocol. ``decode`` raises
    ``pydantic.ValidationError`` (a ``ValueError``) for payloads that are not
    valid JSON or do not match the type.

    Example:
        ```python
        codec = JsonCodec(list[str])
        codec.decode(codec.encode(["13.0.1"]))  # ["13.0.1"]
        ```
    """

    def __init__(self, value_type: Any) -> None:
        self._adapter: TypeAdapter[T] = TypeAdapter(value_type)

    def encode(self, value: T) -> str:
        return self._adapter.dump_json(value).decode("utf-8")

    def decode(self, payload: str) -> T:
        return self._adapter.validate_json(payload)


VERSION_LIST_CODEC: JsonCodec[list[str]] = JsonCodec(list[str])
SEARCH_RESULTS_CODEC: JsonCodec[list[PackageSearchResult]] = JsonCodec(list[PackageSearchResult])
METADATA_CODEC: JsonCodec[PackageMetadata] = JsonCodec(PackageMetadata)
