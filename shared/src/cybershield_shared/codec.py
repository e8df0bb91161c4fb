"""Collection serialization helpers.

Each collection is stored as one JSON array under a single key, with
camelCase field names.
"""

import logging
from typing import Generic, Sequence, TypeVar

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class CollectionCodec(Generic[T]):
    """Maps a list of records to and from its stored string.

    - A missing or malformed value decodes to an empty list
    - Encoding is deterministic: aliases, no ``None`` fields, compact JSON
    """

    def __init__(self, item_type: type[T]):
        self._item_type = item_type
        self._adapter: TypeAdapter[list[T]] = TypeAdapter(list[item_type])  # type: ignore[valid-type]

    def decode(self, raw: str | None) -> list[T]:
        if raw is None:
            return []
        try:
            return self._adapter.validate_json(raw)
        except ValidationError:
            logger.warning(
                "Discarding unreadable %s collection (%d chars)",
                getattr(self._item_type, "__name__", self._item_type),
                len(raw),
            )
            return []

    def encode(self, items: Sequence[T]) -> str:
        return self._adapter.dump_json(list(items), by_alias=True, exclude_none=True).decode()
