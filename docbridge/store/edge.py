"""Graph edge documents."""

from typing import TYPE_CHECKING, Any, List, Optional

from docbridge.store.document import Document, Handle, document_type
from docbridge.store.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from docbridge.store.base import Collection


@document_type("Edge")
class Edge(Document):
    """Document linking a source vertex to a destination vertex.

    Both vertices are stored as handles in the offsets named by the edge
    collection; they are required before the first store and locked after.
    """

    def __init__(self, collection: "Collection", data: Any = None):
        if not getattr(collection, "is_edge_collection", False):
            raise InvalidArgumentError(
                f"Collection '{collection.name}' is not an edge collection"
            )
        super().__init__(collection, data)

    @property
    def source(self) -> Optional[Handle]:
        """Handle of the source vertex."""
        return self._vertex(self._collection.vertex_source)

    @source.setter
    def source(self, vertex: Any) -> None:
        self[self._collection.vertex_source] = self._vertex_value(vertex)

    @property
    def destination(self) -> Optional[Handle]:
        """Handle of the destination vertex."""
        return self._vertex(self._collection.vertex_destination)

    @destination.setter
    def destination(self, vertex: Any) -> None:
        self[self._collection.vertex_destination] = self._vertex_value(vertex)

    def get_source(self) -> Optional[Document]:
        """Fetch the source vertex document."""
        handle = self.source
        return None if handle is None else self.resolve(handle)

    def get_destination(self) -> Optional[Document]:
        """Fetch the destination vertex document."""
        handle = self.destination
        return None if handle is None else self.resolve(handle)

    def locked_offsets(self) -> List[str]:
        return super().locked_offsets() + [
            self._collection.vertex_source,
            self._collection.vertex_destination,
        ]

    def required_offsets(self) -> List[str]:
        return super().required_offsets() + [
            self._collection.vertex_source,
            self._collection.vertex_destination,
        ]

    def _vertex(self, offset: str) -> Optional[Handle]:
        value = self[offset]
        if value is None:
            return None
        return self._collection.native_to_handle(value)

    def _vertex_value(self, vertex: Any) -> Any:
        if vertex is None:
            return None
        return self._collection.handle_to_native(self._collection.as_handle(vertex))
