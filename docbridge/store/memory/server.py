"""In-memory server and database implementation.

The storage is a plain nested dict: database name -> collection name ->
table. Several servers can share one storage by passing the same dict.
"""

import logging
from typing import Dict, List, Optional

from docbridge.store.base import Collection, Database, DataServer
from docbridge.store.memory.collection import MemoryCollection, MemoryEdges, Table
from docbridge.store.options import CollectionType, Options

logger = logging.getLogger(__name__)

Storage = Dict[str, Dict[str, Table]]


class MemoryServer(DataServer):
    """Server keeping databases in process memory."""

    def __init__(self, connection: str = "memory://localhost", storage: Optional[Storage] = None):
        """Initialize the server.

        Args:
            connection: Connection URL; only the path is significant
            storage: Shared storage dict, a new one if omitted
        """
        self._storage: Storage = {} if storage is None else storage
        super().__init__(connection)

    @property
    def storage(self) -> Storage:
        return self._storage

    def _connection_open(self) -> Storage:
        return self._storage

    def _connection_close(self) -> None:
        pass

    def _list_databases(self, options: Options) -> List[str]:
        return sorted(self._connection)

    def _create_database(self, name: str, options: Options) -> "MemoryDatabase":
        tables = self._connection.setdefault(name, {})
        return MemoryDatabase(self, name, tables)

    def _retrieve_database(self, name: str, options: Options) -> Optional["MemoryDatabase"]:
        if name not in self._connection:
            return None
        return MemoryDatabase(self, name, self._connection[name])


class MemoryDatabase(Database):
    """Database backed by a dict of tables."""

    def _list_collections(self, options: Options) -> List[str]:
        return sorted(self._native)

    def _create_collection(self, name: str, options: Options) -> Collection:
        table = Table(options.collection_type)
        self._native[name] = table
        return self._wrap(name, table)

    def _retrieve_collection(self, name: str, options: Options) -> Optional[Collection]:
        table = self._native.get(name)
        if table is None:
            return None
        self.check_type(name, self.requested_type(options), table.collection_type)
        return self._wrap(name, table)

    def _drop(self, options: Options) -> None:
        self._server.storage.pop(self._name, None)

    def _wrap(self, name: str, table: Table) -> Collection:
        if table.collection_type is CollectionType.EDGE:
            return MemoryEdges(self, name, table)
        return MemoryCollection(self, name, table)
