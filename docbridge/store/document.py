"""Document identity layer.

A document is a property bag bound to a collection. The collection names
the offsets holding the key, internal identifier, revision and class tag;
once the document is persistent those offsets are locked.

Stored documents carry a class tag that selects the Python type used to
rebuild them on read. Tags are resolved through an explicit registry, and
an unregistered tag is an error rather than a silent fallback.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, NamedTuple, Optional

from docbridge.store.container import Container
from docbridge.store.exceptions import ImmutableFieldError, InvalidArgumentError

if TYPE_CHECKING:
    from docbridge.store.base import Collection

logger = logging.getLogger(__name__)


class Handle(NamedTuple):
    """Collection name and key of a document."""

    collection: str
    key: Any

    def __str__(self) -> str:
        return f"{self.collection}/{self.key}"

    @classmethod
    def parse(cls, value: Any) -> "Handle":
        """Build a handle from a handle, a ``"collection/key"`` string or a pair.

        Raises:
            InvalidArgumentError: If the value is not a valid handle
        """
        if isinstance(value, Handle):
            return value
        if isinstance(value, str):
            collection, slash, key = value.partition("/")
            if slash and collection and key:
                return cls(collection, key)
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            collection, key = value
            if collection and key is not None:
                return cls(str(collection), key)
        raise InvalidArgumentError(f"Invalid document handle: {value!r}")


DocumentFactory = Callable[["Collection", Any], "Document"]


class DocumentRegistry:
    """Maps class tags to document factories."""

    def __init__(self):
        self._factories: Dict[str, DocumentFactory] = {}

    def __contains__(self, tag: object) -> bool:
        return tag in self._factories

    def register(self, tag: str, factory: Optional[DocumentFactory] = None):
        """Register a factory for ``tag``.

        Usable directly or as a class decorator; a decorated class gets its
        ``TYPE_TAG`` set to ``tag``.
        """
        def _register(target):
            if isinstance(target, type):
                target.TYPE_TAG = tag
            self._factories[tag] = target
            return target

        if factory is not None:
            return _register(factory)
        return _register

    def unregister(self, tag: str) -> None:
        self._factories.pop(tag, None)

    def get(self, tag: str) -> DocumentFactory:
        """Return the factory registered for ``tag``.

        Raises:
            InvalidArgumentError: If the tag is not registered
        """
        try:
            return self._factories[tag]
        except (KeyError, TypeError):
            raise InvalidArgumentError(f"Unregistered document class: {tag!r}")

    def tags(self) -> List[str]:
        return list(self._factories)


registry = DocumentRegistry()


def document_type(tag: str):
    """Class decorator registering a Document subclass under ``tag``."""
    return registry.register(tag)


@document_type("Document")
class Document(Container):
    """Persistent document bound to a collection."""

    TYPE_TAG = "Document"

    def __init__(self, collection: "Collection", data: Any = None):
        """Initialize a document.

        Args:
            collection: Owning collection
            data: Initial properties: a mapping, a container or a native record
        """
        self._collection = collection
        self._persistent = False
        self._modified = False
        super().__init__(collection.new_document_dict(data))
        self._data[collection.class_offset] = self.TYPE_TAG

    def __setitem__(self, offset: str, value: Any) -> None:
        self._check_locked(offset)
        super().__setitem__(offset, value)
        self._modified = True

    def __delitem__(self, offset: str) -> None:
        if offset not in self._data:
            return
        self._check_locked(offset)
        super().__delitem__(offset)
        self._modified = True

    def _check_locked(self, offset: str) -> None:
        if self._persistent and offset in self.locked_offsets():
            raise ImmutableFieldError(offset, "document is persistent")

    def _set_internal(self, offset: str, value: Any) -> None:
        Container.__setitem__(self, offset, value)

    # Identity

    @property
    def collection(self) -> "Collection":
        return self._collection

    @property
    def key(self) -> Any:
        return self[self._collection.key_offset]

    @key.setter
    def key(self, value: Any) -> None:
        self[self._collection.key_offset] = value

    @property
    def id(self) -> Any:
        return self[self._collection.id_offset]

    @id.setter
    def id(self, value: Any) -> None:
        self[self._collection.id_offset] = value

    @property
    def revision(self) -> Any:
        return self[self._collection.revision_offset]

    @revision.setter
    def revision(self, value: Any) -> None:
        self[self._collection.revision_offset] = value

    @property
    def class_tag(self) -> Optional[str]:
        return self[self._collection.class_offset]

    @class_tag.setter
    def class_tag(self, value: str) -> None:
        self[self._collection.class_offset] = value

    @property
    def handle(self) -> Handle:
        """Handle of this document.

        Raises:
            InvalidArgumentError: If the document has no key yet
        """
        if self.key is None:
            raise InvalidArgumentError("Document has no key")
        return Handle(self._collection.name, self.key)

    @property
    def is_persistent(self) -> bool:
        return self._persistent

    @property
    def is_modified(self) -> bool:
        return self._modified

    def locked_offsets(self) -> List[str]:
        """Offsets that cannot change once the document is persistent."""
        collection = self._collection
        offsets = [
            collection.key_offset,
            collection.id_offset,
            collection.revision_offset,
            collection.class_offset,
        ]
        return [offset for offset in dict.fromkeys(offsets) if offset]

    def required_offsets(self) -> List[str]:
        """Offsets that must be set before the document is stored."""
        return []

    def validate(self) -> None:
        """Check required offsets.

        Raises:
            InvalidArgumentError: If a required offset is missing
        """
        missing = [offset for offset in self.required_offsets() if self[offset] is None]
        if missing:
            raise InvalidArgumentError(
                f"{type(self).__name__} is missing required field(s): {', '.join(missing)}"
            )

    # Persistence

    def store(self) -> Any:
        """Insert or replace the document in its collection.

        Returns:
            The document key
        """
        if not self._persistent:
            self._collection.insert(self)
        elif self._modified:
            self._collection.replace(self)
        return self.key

    def delete(self) -> int:
        """Delete the document from its collection.

        Properties are kept locally; the key is kept, identifier and
        revision are cleared.

        Returns:
            int: Number of deleted documents, 0 if already gone
        """
        if self.key is None:
            return 0
        return self._collection.delete(self)

    def resolve(self, handle: Any) -> Optional["Document"]:
        """Fetch the document referenced by ``handle``."""
        return self._collection.database.resolve(handle)

    # Collection callbacks

    def _mark_stored(self, stamp: Mapping[str, Any]) -> None:
        for offset, value in stamp.items():
            if value is not None:
                self._set_internal(offset, value)
        self._persistent = True
        self._modified = False

    def _mark_selected(self) -> None:
        self._persistent = True
        self._modified = False

    def _mark_deleted(self) -> None:
        collection = self._collection
        for offset in (collection.id_offset, collection.revision_offset):
            if offset and offset != collection.key_offset:
                Container.__delitem__(self, offset)
        self._persistent = False
        self._modified = True
