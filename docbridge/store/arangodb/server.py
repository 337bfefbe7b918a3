"""ArangoDB server and database implementation."""

import logging
from typing import Any, List, Optional

from arango import ArangoClient

from docbridge.store.arangodb.collection import ArangoCollection, ArangoEdges
from docbridge.store.arangodb.utils import DEFAULT_PORT, SECURE_PROTOCOLS, raises_backend_error
from docbridge.store.base import Collection, Database, DataServer
from docbridge.store.exceptions import ConnectionError as StoreConnectionError
from docbridge.store.options import CollectionType, Options

logger = logging.getLogger(__name__)


class ArangoServer(DataServer):
    """ArangoDB implementation of DataServer.

    Accepts ``arangodb://`` and ``http://`` connection strings (``arangodbs://``
    and ``https://`` for TLS). Databases are managed through ``_system``.
    """

    def __init__(self, connection: str = "arangodb://localhost:8529", **client_options):
        """Initialize the server.

        Args:
            connection: ArangoDB connection URL, optionally naming a database
                and a collection in its path
            **client_options: Extra keyword arguments for ArangoClient
        """
        self._client_options = client_options
        self._system: Any = None
        super().__init__(connection)

    @property
    def system(self) -> Any:
        """Handle of the ``_system`` database, or None if not connected."""
        return self._system

    def client_hosts(self) -> List[str]:
        """HTTP endpoints handed to the driver."""
        scheme = "https" if self.protocol in SECURE_PROTOCOLS else "http"
        return [f"{scheme}://{host}:{port or DEFAULT_PORT}" for host, port in self.hosts]

    def credentials(self) -> dict:
        return {"username": self.user or "root", "password": self.password or ""}

    def _connection_open(self) -> ArangoClient:
        hosts = self.client_hosts()
        try:
            client = ArangoClient(
                hosts=hosts[0] if len(hosts) == 1 else hosts,
                **self._client_options,
            )
            self._system = client.db("_system", verify=True, **self.credentials())
        except Exception as e:
            raise StoreConnectionError(f"Failed to connect to ArangoDB at {hosts[0]}: {e}", e) from e
        return client

    def _connection_close(self) -> None:
        try:
            self._connection.close()
        finally:
            self._system = None

    @raises_backend_error
    def _list_databases(self, options: Options) -> List[str]:
        return list(self._system.databases())

    @raises_backend_error
    def _create_database(self, name: str, options: Options) -> "ArangoDatabase":
        self._system.create_database(name, **options.native)
        return self._open(name)

    @raises_backend_error
    def _retrieve_database(self, name: str, options: Options) -> Optional["ArangoDatabase"]:
        if not self._system.has_database(name):
            return None
        return self._open(name)

    def _open(self, name: str) -> "ArangoDatabase":
        return ArangoDatabase(self, name, self._connection.db(name, **self.credentials()))


class ArangoDatabase(Database):
    """ArangoDB implementation of Database."""

    @raises_backend_error
    def _list_collections(self, options: Options) -> List[str]:
        return [info["name"] for info in self._native.collections() if not info.get("system")]

    @raises_backend_error
    def _create_collection(self, name: str, options: Options) -> Collection:
        edge = options.collection_type is CollectionType.EDGE
        native = self._native.create_collection(name, edge=edge, **options.native)
        return self._wrap(name, native, options.collection_type)

    @raises_backend_error
    def _retrieve_collection(self, name: str, options: Options) -> Optional[Collection]:
        info = next(
            (info for info in self._native.collections() if info["name"] == name),
            None,
        )
        if info is None:
            return None
        actual = CollectionType.EDGE if info.get("type") == "edge" else CollectionType.DOCUMENT
        self.check_type(name, self.requested_type(options), actual)
        return self._wrap(name, self._native.collection(name), actual)

    @raises_backend_error
    def _drop(self, options: Options) -> None:
        self._server.system.delete_database(self._name, ignore_missing=True)

    def _wrap(self, name: str, native: Any, collection_type: CollectionType) -> Collection:
        if collection_type is CollectionType.EDGE:
            return ArangoEdges(self, name, native)
        return ArangoCollection(self, name, native)
