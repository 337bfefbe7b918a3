"""MongoDB server and database implementation."""

import logging
from typing import List, Optional
from urllib.parse import urlencode

from pymongo import MongoClient

from docbridge.store.base import Collection, Database, DataServer
from docbridge.store.mongodb.collection import MongoCollection, MongoEdges
from docbridge.store.mongodb.utils import edge_validator, has_edge_validator, raises_backend_error
from docbridge.store.options import CollectionType, Options

logger = logging.getLogger(__name__)


class MongoServer(DataServer):
    """MongoDB implementation of DataServer.

    The connection string is handed to pymongo without its path, so the
    database and collection segments only drive provisioning. Query
    parameters are passed through as client options.
    """

    def __init__(self, connection: str = "mongodb://localhost:27017", **client_options):
        """Initialize the server.

        Args:
            connection: MongoDB connection URL, optionally naming a database
                and a collection in its path
            **client_options: Extra keyword arguments for MongoClient
        """
        self._client_options = client_options
        super().__init__(connection)

    def client_uri(self) -> str:
        """URI handed to the driver: the connection string without its path."""
        uri = f"{self.protocol}://{self.netloc()}/"
        query = self.query
        if query:
            uri += "?" + urlencode(query)
        return uri

    @raises_backend_error
    def _connection_open(self) -> MongoClient:
        client = MongoClient(self.client_uri(), **self._client_options)
        try:
            # Verify connectivity
            client.admin.command("ping")
        except Exception:
            client.close()
            raise
        return client

    def _connection_close(self) -> None:
        self._connection.close()

    @raises_backend_error
    def _list_databases(self, options: Options) -> List[str]:
        return list(self._connection.list_database_names())

    def _create_database(self, name: str, options: Options) -> "MongoDatabase":
        # MongoDB creates databases on first write.
        return MongoDatabase(self, name, self._connection[name])

    @raises_backend_error
    def _retrieve_database(self, name: str, options: Options) -> Optional["MongoDatabase"]:
        if name not in self._connection.list_database_names():
            return None
        return MongoDatabase(self, name, self._connection[name])


class MongoDatabase(Database):
    """MongoDB implementation of Database.

    Edge collections are created with a validator requiring both vertex
    offsets, which marks them as edge collections on retrieval.
    Collections without that marker follow the requested type.
    """

    @raises_backend_error
    def _list_collections(self, options: Options) -> List[str]:
        return list(self._native.list_collection_names())

    @raises_backend_error
    def _create_collection(self, name: str, options: Options) -> Collection:
        native_options = dict(options.native)
        if options.collection_type is CollectionType.EDGE:
            native_options.setdefault(
                "validator",
                edge_validator(MongoEdges.vertex_source, MongoEdges.vertex_destination),
            )
        native = self._native.create_collection(name, **native_options)
        return self._wrap(name, native, options.collection_type)

    @raises_backend_error
    def _retrieve_collection(self, name: str, options: Options) -> Optional[Collection]:
        info = next(iter(self._native.list_collections(filter={"name": name})), None)
        if info is None:
            return None
        requested = self.requested_type(options)
        if has_edge_validator(info, MongoEdges.vertex_source, MongoEdges.vertex_destination):
            actual = CollectionType.EDGE
            self.check_type(name, requested, actual)
        else:
            actual = requested or CollectionType.DOCUMENT
        return self._wrap(name, self._native[name], actual)

    @raises_backend_error
    def _drop(self, options: Options) -> None:
        self._server.connection.drop_database(self._name)

    def _wrap(self, name: str, native, collection_type: CollectionType) -> Collection:
        if collection_type is CollectionType.EDGE:
            return MongoEdges(self, name, native)
        return MongoCollection(self, name, native)
