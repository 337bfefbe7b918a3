"""Abstract base classes for document store operations.

This module defines backend-agnostic interfaces that are implemented
by the concrete backends (MongoDB, ArangoDB, in-memory).

A backend supplies a small set of protected hooks at each level:

- server: ``_connection_open``, ``_connection_close``, ``_list_databases``,
  ``_create_database``, ``_retrieve_database``
- database: ``_list_collections``, ``_create_collection``,
  ``_retrieve_collection``, ``_drop``
- collection: ``_insert``, ``_update``, ``_replace``, ``_find``, ``_query``,
  ``_delete`` (plus counting, truncation and dropping)

Everything else, including the lazy connect/create/retrieve protocol and
result materialization, lives here.

NO database-specific imports should be in this file.
"""

import logging
import weakref
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Type

from docbridge.store.container import Container
from docbridge.store.datasource import DataSource
from docbridge.store.document import Document, Handle, registry
from docbridge.store.edge import Edge
from docbridge.store.exceptions import (
    ConnectionError as StoreConnectionError,
    ImmutableFieldError,
    InvalidArgumentError,
    NotFoundError,
    StoreError,
)
from docbridge.store.materializer import materialize
from docbridge.store.options import CollectionType, Direction, Flags, Options
from docbridge.store.resources import ResourceManager

logger = logging.getLogger(__name__)


class Server(DataSource, ABC):
    """Connection to a document store server.

    The connection descriptor cannot be changed while the connection is open.
    """

    def __init__(self, connection: str):
        self._connection: Any = None
        super().__init__(connection)

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def _check_mutable(self, offset: str) -> None:
        if self._connection is not None:
            raise ImmutableFieldError(offset, "connection is open")

    @property
    def connection(self) -> Any:
        """Native connection handle, or None if not connected."""
        return self._connection

    def get_connection(self, flags: Flags = Flags.DEFAULT) -> Any:
        """Return the native connection, connecting first if CONNECT is set."""
        if self.is_connected(flags):
            return self._connection
        return None

    def connect(self) -> Any:
        """Open the connection if not already open.

        Returns:
            The native connection handle

        Raises:
            ConnectionError: If the connection cannot be opened
        """
        if self._connection is None:
            self._connection = self._connection_open()
            logger.info(f"Connected to {self.url(with_password=False)}")
        return self._connection

    def disconnect(self) -> bool:
        """Close the connection.

        Idempotent - safe to call multiple times.

        Returns:
            bool: True if a connection was closed
        """
        if self._connection is None:
            return False
        try:
            self._connection_close()
        finally:
            self._connection = None
        logger.info(f"Disconnected from {self.url(with_password=False)}")
        return True

    def is_connected(self, flags: Flags = Flags.NONE) -> bool:
        """Check the connection state.

        Args:
            flags: CONNECT opens a closed connection; ASSERT raises if it
                stays closed

        Raises:
            ConnectionError: If not connected and ASSERT is set
        """
        if self._connection is not None:
            return True
        if flags & Flags.CONNECT:
            self.connect()
            return True
        if flags & Flags.ASSERT:
            raise StoreConnectionError("Server connection was not opened")
        return False

    @abstractmethod
    def _connection_open(self) -> Any:
        """Open and return the native connection."""
        pass

    @abstractmethod
    def _connection_close(self) -> None:
        """Close the native connection."""
        pass


class DataServer(Server):
    """Server owning a working set of databases.

    If the connection string path names a database it is resolved, or
    created, at construction; a second path segment does the same for a
    collection in that database.
    """

    def __init__(self, connection: str):
        super().__init__(connection)
        self._databases: ResourceManager["Database"] = ResourceManager(
            "database",
            connect=lambda flags: self.is_connected(flags & Flags.CONNECT),
            list_names=self._list_databases,
            create=self._create_database,
            retrieve=self._retrieve_database,
            drop=lambda database, options: database.drop(options),
        )
        self._provision()

    def _provision(self) -> None:
        name = self.database_name
        if name is None:
            return
        database = self.get_database(name, Flags.CONNECT | Flags.CREATE)
        if self.collection_name is not None:
            database.get_collection(self.collection_name, Flags.CONNECT | Flags.CREATE)

    def disconnect(self) -> bool:
        """Close the connection and forget the working databases.

        Cached databases hold native handles bound to the closed connection.
        """
        closed = super().disconnect()
        if closed:
            self._databases.clear()
        return closed

    def list_databases(
        self,
        flags: Flags = Flags.DEFAULT,
        options: Optional[Options] = None,
    ) -> List[str]:
        """List database names at the server."""
        return self._databases.list(flags, options)

    def working_databases(self) -> List[str]:
        """Names of the databases in the working set."""
        return self._databases.working()

    def get_database(
        self,
        name: str,
        flags: Flags = Flags.DEFAULT,
        options: Optional[Options] = None,
    ) -> Optional["Database"]:
        """Resolve a database.

        Args:
            name: Database name
            flags: CONNECT, CREATE and ASSERT bits
            options: Backend options

        Returns:
            Database: The cached or resolved database, or None

        Raises:
            NotFoundError: If unresolved and ASSERT is set
        """
        return self._databases.get(name, flags, options)

    def forget_database(self, name: str) -> Optional["Database"]:
        """Remove a database from the working set without dropping it."""
        return self._databases.forget(name)

    def drop_database(
        self,
        name: str,
        flags: Flags = Flags.CONNECT,
        options: Optional[Options] = None,
    ) -> bool:
        """Drop a database at the server.

        Returns:
            bool: True if the database existed and was dropped
        """
        return self._databases.drop(name, flags, options)

    @abstractmethod
    def _list_databases(self, options: Options) -> List[str]:
        pass

    @abstractmethod
    def _create_database(self, name: str, options: Options) -> "Database":
        pass

    @abstractmethod
    def _retrieve_database(self, name: str, options: Options) -> Optional["Database"]:
        pass


class Database(ABC):
    """Database owning a working set of collections."""

    def __init__(self, server: DataServer, name: str, native: Any):
        """Initialize a database.

        Args:
            server: Owning server
            name: Database name
            native: Native database handle
        """
        self._server = server
        self._name = name
        self._native = native
        self._collections: ResourceManager["Collection"] = ResourceManager(
            "collection",
            connect=lambda flags: server.is_connected(flags & Flags.CONNECT),
            list_names=self._list_collections,
            create=self._create_collection,
            retrieve=self._retrieve_collection,
            drop=lambda collection, options: collection.drop(options),
        )

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def server(self) -> DataServer:
        return self._server

    @property
    def native(self) -> Any:
        """Native database handle."""
        return self._native

    def list_collections(
        self,
        flags: Flags = Flags.DEFAULT,
        options: Optional[Options] = None,
    ) -> List[str]:
        """List collection names in the database."""
        return self._collections.list(flags, options)

    def working_collections(self) -> List[str]:
        """Names of the collections in the working set."""
        return self._collections.working()

    def get_collection(
        self,
        name: str,
        flags: Flags = Flags.DEFAULT,
        options: Optional[Options] = None,
    ) -> Optional["Collection"]:
        """Resolve a collection.

        Args:
            name: Collection name
            flags: CONNECT, CREATE and ASSERT bits
            options: ``collection_type`` selects document or edge collections

        Returns:
            Collection: The cached or resolved collection, or None

        Raises:
            NotFoundError: If unresolved and ASSERT is set
            InvalidArgumentError: If the collection exists with another type
        """
        options = Options.coerce(options)
        collection = self._collections.get(name, flags, options)
        if collection is not None:
            self.check_type(name, self.requested_type(options), collection.collection_type)
        return collection

    def new_collection(self, name: str, options: Optional[Options] = None) -> "Collection":
        """Return a collection, creating it if needed."""
        return self.get_collection(name, Flags.CONNECT | Flags.CREATE, options)

    def new_edges_collection(self, name: str, options: Optional[Options] = None) -> "Collection":
        """Return an edge collection, creating it if needed."""
        options = Options.coerce(options).model_copy(
            update={"collection_type": CollectionType.EDGE}
        )
        return self.new_collection(name, options)

    def forget_collection(self, name: str) -> Optional["Collection"]:
        """Remove a collection from the working set without dropping it."""
        return self._collections.forget(name)

    def drop_collection(
        self,
        name: str,
        flags: Flags = Flags.CONNECT,
        options: Optional[Options] = None,
    ) -> bool:
        """Drop a collection.

        Returns:
            bool: True if the collection existed and was dropped
        """
        return self._collections.drop(name, flags, options)

    def drop(self, options: Optional[Options] = None) -> None:
        """Drop this database at the server and forget it."""
        self._drop(Options.coerce(options))
        self._collections.clear()
        self._server.forget_database(self._name)

    def resolve(self, handle: Any, options: Optional[Options] = None) -> Any:
        """Fetch the document referenced by a handle.

        Args:
            handle: Handle, ``"collection/key"`` string or pair
            options: Finder options (format defaults to standard)

        Returns:
            The document, or None if the collection or document is missing
        """
        handle = Handle.parse(handle)
        collection = self.get_collection(handle.collection)
        if collection is None:
            return None
        return collection.find_by_handle(handle, options)

    @staticmethod
    def requested_type(options: Options) -> Optional[CollectionType]:
        """Collection type explicitly requested by the caller, if any."""
        if "collection_type" in options.model_fields_set:
            return options.collection_type
        return None

    @staticmethod
    def check_type(name: str, requested: Optional[CollectionType], actual: CollectionType) -> None:
        """Raise if an existing collection has another type than requested."""
        if requested is not None and requested != actual:
            raise InvalidArgumentError(
                f"Collection '{name}' exists as a {actual.value} collection, "
                f"not a {requested.value} collection"
            )

    @abstractmethod
    def _list_collections(self, options: Options) -> List[str]:
        pass

    @abstractmethod
    def _create_collection(self, name: str, options: Options) -> "Collection":
        pass

    @abstractmethod
    def _retrieve_collection(self, name: str, options: Options) -> Optional["Collection"]:
        pass

    @abstractmethod
    def _drop(self, options: Options) -> None:
        pass


class Collection(ABC):
    """Collection of documents.

    Holds a weak reference to its database: the database owns the
    collection through its working set, not the other way round.
    """

    key_offset: str = "_key"
    id_offset: str = "_id"
    revision_offset: str = "_rev"
    class_offset: str = "_class"

    is_edge_collection: bool = False
    default_document_type: Type[Document] = Document

    def __init__(self, database: Database, name: str, native: Any):
        """Initialize a collection.

        Args:
            database: Owning database
            name: Collection name
            native: Native collection handle
        """
        self._database_ref = weakref.ref(database)
        self._name = name
        self._native = native

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def native(self) -> Any:
        """Native collection handle."""
        return self._native

    @property
    def database(self) -> Database:
        database = self._database_ref()
        if database is None:
            raise StoreError(f"Database of collection '{self._name}' is no longer available")
        return database

    @property
    def server(self) -> DataServer:
        return self.database.server

    @property
    def collection_type(self) -> CollectionType:
        return CollectionType.EDGE if self.is_edge_collection else CollectionType.DOCUMENT

    # Records

    def new_document_dict(self, data: Any) -> Dict[str, Any]:
        """Normalise a document, native record or mapping to a plain dict.

        Raises:
            InvalidArgumentError: If the value is none of those
        """
        if data is None:
            return {}
        if isinstance(data, Container):
            return data.to_dict()
        if self._is_native(data):
            return self._native_to_dict(data)
        if isinstance(data, Mapping):
            return dict(data)
        raise InvalidArgumentError(
            f"Cannot convert {type(data).__name__} to a document"
        )

    def new_native_document(self, data: Any) -> Any:
        """Convert to the record type handed to the driver."""
        if self._is_native(data):
            return data
        return self.new_document_dict(data)

    def new_document(self, data: Any, doc_type: Optional[Type[Document]] = None) -> Document:
        """Build a document instance.

        The type is ``doc_type`` if given, otherwise the one registered
        for the record's class tag, otherwise the collection default.

        Raises:
            InvalidArgumentError: If the class tag is not registered
        """
        record = self.new_document_dict(data)
        if doc_type is not None:
            return doc_type(self, record)
        tag = record.get(self.class_offset)
        if tag is None:
            return self.default_document_type(self, record)
        return registry.get(tag)(self, record)

    def new_document_key(self, data: Any) -> Any:
        """Extract the key of a record.

        Raises:
            InvalidArgumentError: If the record has no key
        """
        key = self.new_document_dict(data).get(self.key_offset)
        if key is None:
            raise InvalidArgumentError("Data is missing the document key")
        return key

    def new_document_handle(self, data: Any) -> Handle:
        """Build the handle of a record."""
        return Handle(self._name, self.new_document_key(data))

    def as_handle(self, value: Any) -> Handle:
        """Reduce a document, handle or stored handle value to a Handle."""
        if isinstance(value, Handle):
            return value
        if isinstance(value, Document):
            return value.handle
        return self.native_to_handle(value)

    def handle_to_native(self, handle: Handle) -> Any:
        """Stored representation of a handle."""
        return [handle.collection, handle.key]

    def native_to_handle(self, value: Any) -> Handle:
        """Parse the stored representation of a handle."""
        return Handle.parse(value)

    def _is_native(self, data: Any) -> bool:
        return False

    def _native_to_dict(self, data: Any) -> Dict[str, Any]:
        return dict(data)

    def _validate_record(self, data: Any) -> None:
        if isinstance(data, Document):
            data.validate()

    def _normalise_inserted(self, data: Any, stamp: Mapping[str, Any]) -> None:
        if isinstance(data, Document):
            data._mark_stored(stamp)
        elif isinstance(data, MutableMapping):
            data[self.key_offset] = stamp.get(self.key_offset)

    # Insert

    def insert(self, document: Any, options: Optional[Options] = None) -> Any:
        """Insert one document, or a list of documents with ``many``.

        Documents are validated before the backend is called. Inserted
        Document instances become persistent; plain mappings receive the key.

        Returns:
            The inserted key, or the list of keys with ``many``

        Raises:
            InvalidArgumentError: If a document fails validation
            BackendError: If the driver rejects the insert
        """
        options = Options.coerce(options)
        many = options.is_many(False)
        documents = list(document) if many else [document]
        for item in documents:
            self._validate_record(item)
        if not documents:
            return []

        records = [self.new_native_document(item) for item in documents]
        stamps = self._insert(records, options)
        for item, stamp in zip(documents, stamps):
            self._normalise_inserted(item, stamp)

        keys = [stamp.get(self.key_offset) for stamp in stamps]
        logger.debug(f"Inserted {len(keys)} document(s) into '{self._name}'")
        return keys if many else keys[0]

    def insert_bulk(self, documents: Iterable[Any], options: Optional[Options] = None) -> List[Any]:
        """Insert a list of documents in one backend call."""
        options = Options.coerce(options).model_copy(update={"many": True})
        return self.insert(list(documents), options)

    # Delete

    def delete(self, document: Any, options: Optional[Options] = None) -> int:
        """Delete one document, or a list of documents with ``many``.

        Deleted Document instances keep their properties and key but lose
        their identifier, revision and persistent state.

        Returns:
            int: Number of deleted documents
        """
        options = Options.coerce(options)
        documents = list(document) if options.is_many(False) else [document]
        count = 0
        for item in documents:
            count += self.delete_by_key(self.new_document_key(item))
            if isinstance(item, Document):
                item._mark_deleted()
        return count

    def delete_by_key(self, key: Any, options: Optional[Options] = None) -> int:
        """Delete by key, or by a list of keys with ``many``.

        A key that no longer exists counts as zero deletions.
        """
        options = Options.coerce(options)
        keys = list(key) if options.is_many(False) else [key]
        count = 0
        for item in keys:
            try:
                count += self._delete({self.key_offset: item}, False, options)
            except NotFoundError:
                logger.debug(f"Document '{item}' already absent from '{self._name}'")
        return count

    def delete_by_example(self, example: Any = None, options: Optional[Options] = None) -> int:
        """Delete documents matching all properties of ``example``."""
        options = Options.coerce(options)
        return self._delete(self.new_document_dict(example), options.is_many(True), options)

    def delete_by_query(self, query: Any = None, options: Optional[Options] = None) -> int:
        """Delete documents selected by a native query."""
        options = Options.coerce(options)
        if query is None:
            return self._delete({}, options.is_many(True), options)
        return self._delete_query(query, options.is_many(True), options)

    # Update

    def update(self, criteria: Any, filter: Any = None, options: Optional[Options] = None) -> int:
        """Apply native update ``criteria`` to documents matching ``filter``.

        Returns:
            int: Number of modified documents
        """
        options = Options.coerce(options)
        return self._update(criteria, self.new_document_dict(filter), options.is_many(True), options)

    def replace(self, document: Any, options: Optional[Options] = None) -> int:
        """Replace the stored document having the same key.

        Returns:
            int: 1 if replaced, 0 if no document has that key
        """
        options = Options.coerce(options)
        self._validate_record(document)
        self.new_document_key(document)
        stamp = self._replace(self.new_native_document(document), options)
        if stamp is None:
            return 0
        if isinstance(document, Document):
            document._mark_stored(stamp)
        return 1

    # Find

    def find_by_key(self, key: Any, options: Optional[Options] = None) -> Any:
        """Find by key, or by a list of keys with ``many``."""
        options = Options.coerce(options).with_defaults(many=False)
        if options.many:
            records = self._find_keys(list(key), options)
        else:
            records = self._find({self.key_offset: key}, options)
        return materialize(self, records, options)

    def find_by_handle(self, handle: Any, options: Optional[Options] = None) -> Any:
        """Find by handle, or by a list of handles with ``many``.

        Raises:
            InvalidArgumentError: If a handle names another collection
        """
        options = Options.coerce(options).with_defaults(many=False)
        handles = list(handle) if options.many else [handle]
        keys = []
        for item in handles:
            item = self.as_handle(item)
            if item.collection != self._name:
                raise InvalidArgumentError(
                    f"Handle {item} does not belong to collection '{self._name}'"
                )
            keys.append(item.key)
        return self.find_by_key(keys if options.many else keys[0], options)

    def find_by_example(self, example: Any = None, options: Optional[Options] = None) -> Any:
        """Find documents matching all properties of ``example``."""
        options = Options.coerce(options).with_defaults(many=True)
        records = self._find(self.new_document_dict(example), options)
        return materialize(self, records, options)

    def find_by_query(self, query: Any = None, options: Optional[Options] = None) -> Any:
        """Find documents selected by a native query; None selects all."""
        options = Options.coerce(options).with_defaults(many=True)
        if query is None:
            records = self._find({}, options)
        else:
            records = self._query(query, options)
        return materialize(self, records, options)

    # Count

    def record_count(self) -> int:
        """Number of documents in the collection."""
        return self._count({})

    def count_by_example(self, example: Any = None) -> int:
        return self._count(self.new_document_dict(example))

    def count_by_query(self, query: Any = None) -> int:
        if query is None:
            return self._count({})
        return self._count_query(query)

    # Lifecycle

    def truncate(self) -> None:
        """Delete all documents, keeping the collection."""
        self._truncate()
        logger.info(f"Truncated collection '{self._name}'")

    def drop(self, options: Optional[Options] = None) -> None:
        """Drop the collection and forget it."""
        self._drop(Options.coerce(options))
        database = self._database_ref()
        if database is not None:
            database.forget_collection(self._name)

    # Backend hooks

    @abstractmethod
    def _insert(self, records: List[Any], options: Options) -> List[Dict[str, Any]]:
        """Insert records, all or nothing.

        Returns:
            list: One stamp per record mapping key, id and revision offsets
            to the values assigned by the backend
        """
        pass

    @abstractmethod
    def _update(self, criteria: Any, example: Dict[str, Any], many: bool, options: Options) -> int:
        pass

    @abstractmethod
    def _replace(self, record: Any, options: Options) -> Optional[Dict[str, Any]]:
        """Replace the record with the same key.

        Returns:
            dict: Stamp of the replaced document, or None if not found
        """
        pass

    @abstractmethod
    def _find(self, example: Dict[str, Any], options: Options) -> Iterable[Any]:
        pass

    @abstractmethod
    def _query(self, query: Any, options: Options) -> Iterable[Any]:
        pass

    @abstractmethod
    def _delete(self, example: Dict[str, Any], many: bool, options: Options) -> int:
        """Delete matching records.

        Raises:
            NotFoundError: If the backend reports a missing document
        """
        pass

    @abstractmethod
    def _count(self, example: Dict[str, Any]) -> int:
        pass

    @abstractmethod
    def _truncate(self) -> None:
        pass

    @abstractmethod
    def _drop(self, options: Options) -> None:
        pass

    def _find_keys(self, keys: List[Any], options: Options) -> Iterable[Any]:
        single = options.model_copy(update={"many": False})
        for key in keys:
            yield from self._find({self.key_offset: key}, single)

    def _delete_query(self, query: Any, many: bool, options: Options) -> int:
        selected = self._query(query, options.model_copy(update={"many": many}))
        keys = [self.new_document_key(record) for record in selected]
        if not many:
            keys = keys[:1]
        return self.delete_by_key(keys, Options(many=True))

    def _count_query(self, query: Any) -> int:
        return sum(1 for _ in self._query(query, Options(many=True)))


class EdgesMixin:
    """Graph edge specialisation of a collection.

    Mixed in before a backend collection class; the backend supplies
    ``_find_vertex`` to express the vertex predicate in its own syntax.
    """

    is_edge_collection = True
    default_document_type = Edge

    vertex_source: str = "_from"
    vertex_destination: str = "_to"

    def vertex_offsets(self, direction: Any) -> List[str]:
        """Offsets to match against a vertex for a traversal direction.

        Raises:
            InvalidArgumentError: If the direction is not recognised
        """
        try:
            direction = Direction(direction)
        except ValueError:
            raise InvalidArgumentError(f"Invalid direction: {direction!r}")
        if direction is Direction.IN:
            return [self.vertex_destination]
        if direction is Direction.OUT:
            return [self.vertex_source]
        return [self.vertex_source, self.vertex_destination]

    def find_by_vertex(self, vertex: Any, options: Optional[Options] = None) -> Any:
        """Find edges connected to a vertex.

        Args:
            vertex: Vertex document or handle
            options: ``direction`` selects incoming (destination matches),
                outgoing (source matches) or any edges

        Returns:
            Edges in the requested format, each edge at most once
        """
        options = Options.coerce(options).with_defaults(many=True)
        offsets = self.vertex_offsets(options.direction)
        value = self.handle_to_native(self.as_handle(vertex))
        records = self._find_vertex(offsets, value, options)
        return materialize(self, records, options)

    def _validate_record(self, data: Any) -> None:
        super()._validate_record(data)
        if isinstance(data, Edge):
            return
        record = self.new_document_dict(data)
        if record.get(self.vertex_source) is None:
            raise InvalidArgumentError("Missing source vertex")
        if record.get(self.vertex_destination) is None:
            raise InvalidArgumentError("Missing destination vertex")

    @abstractmethod
    def _find_vertex(self, offsets: List[str], value: Any, options: Options) -> Iterable[Any]:
        """Records whose value at any of ``offsets`` equals ``value``."""
        pass
