"""Buffered bulk insertion."""

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List

from docbridge.store.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from docbridge.store.base import Collection

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 100


class DocumentSet:
    """Buffer of documents bulk-inserted into a collection.

    The buffer is flushed as soon as it holds ``buffer_size`` documents,
    when ``flush`` is called, when the owning collection is reassigned and
    when the set is closed. Use it as a context manager so that the last
    partial buffer is always written::

        with DocumentSet(collection, buffer_size=500) as documents:
            for row in rows:
                documents.append(row)
    """

    def __init__(self, collection: "Collection", buffer_size: int = DEFAULT_BUFFER_SIZE):
        """Initialize the set.

        Args:
            collection: Collection receiving the documents
            buffer_size: Number of buffered documents that triggers a flush

        Raises:
            InvalidArgumentError: If buffer_size is lower than 1
        """
        if buffer_size < 1:
            raise InvalidArgumentError(f"Buffer size must be at least 1, got {buffer_size}")
        self._collection = collection
        self._buffer_size = buffer_size
        self._buffer: List[Any] = []
        self._closed = False

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def __del__(self):
        if getattr(self, "_buffer", None) and not getattr(self, "_closed", True):
            self.close()

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._buffer))

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def collection(self) -> "Collection":
        return self._collection

    @collection.setter
    def collection(self, collection: "Collection") -> None:
        """Reassign the target collection, flushing into the previous one first."""
        self.flush()
        self._collection = collection

    def append(self, document: Any) -> None:
        """Buffer a document, flushing when the buffer is full."""
        if self._closed:
            raise InvalidArgumentError("Document set is closed")
        self._buffer.append(document)
        if len(self._buffer) >= self._buffer_size:
            self.flush()

    def extend(self, documents: Iterable[Any]) -> None:
        for document in documents:
            self.append(document)

    def flush(self) -> List[Any]:
        """Bulk-insert the buffered documents.

        The buffer is emptied only if the insert succeeds.

        Returns:
            list: Keys of the inserted documents
        """
        if not self._buffer:
            return []
        keys = self._collection.insert_bulk(self._buffer)
        logger.debug(f"Flushed {len(self._buffer)} document(s) into '{self._collection.name}'")
        self._buffer = []
        return keys

    def close(self) -> List[Any]:
        """Flush the remaining documents and close the set."""
        if self._closed:
            return []
        keys = self.flush()
        self._closed = True
        return keys
