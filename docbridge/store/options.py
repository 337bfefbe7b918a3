"""Lifecycle flags and typed operation options.

Flags drive the lazy connect/create/retrieve protocol shared by servers,
databases and collections. Options carry the few keys this layer
interprets itself (result format, cardinality, traversal direction,
pagination, collection type); anything else travels to the native driver
untouched through the ``native`` field.
"""

from enum import Enum, IntFlag
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from docbridge.store.exceptions import InvalidArgumentError


class Flags(IntFlag):
    """Resource resolution flags, combinable with ``|``."""

    NONE = 0x0
    ASSERT = 0x1
    CONNECT = 0x2
    CREATE = 0x4
    # Baseline used when the caller omits flags.
    DEFAULT = 0x2


class Format(str, Enum):
    """Shape of the values returned by finders."""

    NATIVE = "native"
    STANDARD = "standard"
    HANDLE = "handle"
    KEY = "key"


class Direction(str, Enum):
    """Edge traversal direction relative to a vertex."""

    IN = "in"
    OUT = "out"
    ANY = "any"


class CollectionType(str, Enum):
    """Kind of collection to create or retrieve."""

    DOCUMENT = "document"
    EDGE = "edge"


class Options(BaseModel):
    """Options accepted by lifecycle and collection operations."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    format: Format = Field(default=Format.STANDARD, description="Result shape")
    many: Optional[bool] = Field(
        default=None, description="Return all matches instead of the first"
    )
    direction: Direction = Field(default=Direction.ANY, description="Edge direction")
    start: Optional[int] = Field(default=None, ge=0, description="Records to skip")
    limit: Optional[int] = Field(default=None, ge=0, description="Maximum records")
    collection_type: CollectionType = Field(
        default=CollectionType.DOCUMENT, description="Collection kind"
    )
    native: Dict[str, Any] = Field(
        default_factory=dict, description="Backend options passed through as-is"
    )

    @classmethod
    def coerce(cls, value: Union["Options", Mapping[str, Any], None] = None) -> "Options":
        """Normalise ``None``, a mapping or an Options instance.

        Keys of a mapping that are not Options fields are moved into
        ``native`` so that backend-specific options are never lost.

        Raises:
            InvalidArgumentError: If a recognised option has an invalid value
        """
        if value is None:
            return cls()
        if isinstance(value, Options):
            return value
        if not isinstance(value, Mapping):
            raise InvalidArgumentError(
                f"Options must be provided as a mapping, got {type(value).__name__}"
            )

        known = {}
        native = dict(value.get("native") or {})
        for key, item in value.items():
            if key == "native":
                continue
            if key in cls.model_fields:
                known[key] = item
            else:
                native[key] = item

        try:
            return cls(native=native, **known)
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid options: {e}") from e

    def with_defaults(self, **defaults: Any) -> "Options":
        """Return a copy where fields the caller did not set take ``defaults``."""
        update = {
            name: value
            for name, value in defaults.items()
            if name not in self.model_fields_set
        }
        if not update:
            return self
        return self.model_copy(update=update)

    def is_many(self, default: bool) -> bool:
        """Resolve the cardinality option against an operation default."""
        return default if self.many is None else self.many

    def pagination(self) -> Tuple[Optional[int], Optional[int]]:
        """Return ``(start, limit)``; a limit without a start starts at 0."""
        start = self.start
        if self.limit is not None and start is None:
            start = 0
        return start, self.limit
