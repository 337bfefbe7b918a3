"""End-to-end tests of the store lifecycle against the memory backend."""

import pytest

from docbridge.store.exceptions import (
    BackendError,
    ConnectionError as StoreConnectionError,
    ImmutableFieldError,
    InvalidArgumentError,
    NotFoundError,
)
from docbridge.store.memory.collection import MemoryCollection, MemoryEdges
from docbridge.store.memory.server import MemoryServer
from docbridge.store.options import CollectionType, Flags, Options


class TestServerLifecycle:
    """Test connection handling and provisioning."""

    def test_path_provisions_database_and_collection(self, storage):
        server = MemoryServer("memory://u:p@h:1/db0/things", storage=storage)

        assert server.is_connected()
        assert server.working_databases() == ["db0"]
        database = server.get_database("db0", Flags.NONE)
        assert database.working_collections() == ["things"]
        assert "things" in storage["db0"]

    def test_no_path_does_not_connect(self, server):
        assert not server.is_connected()
        assert server.connection is None

    def test_is_connected_with_connect_flag(self, server):
        assert server.is_connected(Flags.CONNECT)
        assert server.connection is not None

    def test_is_connected_with_assert_flag(self, server):
        with pytest.raises(StoreConnectionError):
            server.is_connected(Flags.ASSERT)

    def test_disconnect_is_idempotent(self, server):
        server.connect()
        assert server.disconnect() is True
        assert server.disconnect() is False

    def test_disconnect_forgets_databases(self, server):
        server.get_database("db", Flags.CONNECT | Flags.CREATE)
        server.disconnect()
        assert server.working_databases() == []

    def test_context_manager(self, storage):
        with MemoryServer("memory://localhost", storage=storage) as server:
            assert server.is_connected()
        assert not server.is_connected()

    def test_descriptor_locked_while_connected(self, server):
        server.connect()
        with pytest.raises(ImmutableFieldError):
            server.host = "elsewhere"

        server.disconnect()
        server.host = "elsewhere"
        assert server.host == "elsewhere"


class TestDatabaseLifecycle:
    """Test database resolution and dropping."""

    def test_get_missing_database_returns_none(self, server):
        assert server.get_database("missing") is None

    def test_get_missing_database_with_assert(self, server):
        with pytest.raises(NotFoundError):
            server.get_database("missing", Flags.CONNECT | Flags.ASSERT)

    def test_get_database_is_cached(self, server):
        first = server.get_database("db", Flags.CONNECT | Flags.CREATE)
        assert server.get_database("db") is first

    def test_list_databases(self, server, storage):
        server.get_database("b", Flags.CONNECT | Flags.CREATE)
        server.get_database("a", Flags.CONNECT | Flags.CREATE)
        assert server.list_databases() == ["a", "b"]

    def test_list_databases_not_connected(self, server):
        assert server.list_databases(Flags.NONE) == []

    def test_drop_then_get_returns_none(self, server, storage):
        server.get_database("db", Flags.CONNECT | Flags.CREATE)

        assert server.drop_database("db") is True
        assert "db" not in storage
        assert server.get_database("db") is None

    def test_drop_missing_database(self, server):
        assert server.drop_database("missing") is False

    def test_forget_keeps_database_at_server(self, server, storage):
        database = server.get_database("db", Flags.CONNECT | Flags.CREATE)

        assert server.forget_database("db") is database
        assert "db" in storage
        assert server.get_database("db") is not database


class TestCollectionLifecycle:
    """Test collection resolution, typing and dropping."""

    def test_new_collection(self, database):
        collection = database.new_collection("items")

        assert isinstance(collection, MemoryCollection)
        assert database.get_collection("items") is collection
        assert collection.database is database
        assert collection.server is database.server

    def test_get_missing_collection(self, database):
        assert database.get_collection("missing") is None
        with pytest.raises(NotFoundError):
            database.get_collection("missing", Flags.CONNECT | Flags.ASSERT)

    def test_new_edges_collection(self, database):
        edges = database.new_edges_collection("links")

        assert isinstance(edges, MemoryEdges)
        assert edges.collection_type is CollectionType.EDGE

    def test_existing_type_is_kept(self, database):
        database.new_edges_collection("links")
        database.forget_collection("links")

        assert isinstance(database.get_collection("links"), MemoryEdges)

    def test_wrong_type_raises(self, database):
        database.new_collection("items")
        database.forget_collection("items")

        with pytest.raises(InvalidArgumentError):
            database.get_collection("items", options=Options(collection_type=CollectionType.EDGE))

    def test_wrong_type_raises_for_cached_collection(self, database):
        database.new_collection("items")

        with pytest.raises(InvalidArgumentError):
            database.new_edges_collection("items")
        with pytest.raises(InvalidArgumentError):
            database.get_collection("items", options={"collection_type": "edge"})
        assert database.working_collections() == ["items"]

    def test_cached_edges_requested_as_documents(self, database):
        database.new_edges_collection("links")

        with pytest.raises(InvalidArgumentError):
            database.get_collection("links", options=Options(collection_type=CollectionType.DOCUMENT))
        assert isinstance(database.get_collection("links"), MemoryEdges)

    def test_list_and_working_collections(self, database):
        database.new_collection("b")
        database.new_collection("a")
        database.forget_collection("b")

        assert database.list_collections() == ["a", "b"]
        assert database.working_collections() == ["a"]

    def test_drop_collection(self, database):
        database.new_collection("items")

        assert database.drop_collection("items") is True
        assert database.get_collection("items") is None
        assert database.drop_collection("items") is False

    def test_collection_drop_forgets_it(self, database):
        collection = database.new_collection("items")
        collection.drop()

        assert "items" not in database.list_collections()
        assert database.working_collections() == []

    def test_database_drop_forgets_collections(self, server, database):
        database.new_collection("items")
        database.drop()

        assert database.working_collections() == []
        assert server.working_databases() == []


class TestEndToEnd:
    """Scenario from a connection string to deletes and counts."""

    def test_insert_count_delete(self, storage):
        server = MemoryServer("memory://u:p@h:1/db0", storage=storage)
        database = server.get_database("db0", Flags.CREATE | Flags.CONNECT)
        assert database.name == "db0"
        collection = database.get_collection("col0", Flags.CREATE)
        assert collection.record_count() == 0

        keys = [collection.insert({"n": n}) for n in range(3)]
        assert collection.record_count() == 3
        assert len(set(keys)) == 3

        assert collection.delete_by_key(keys[0]) == 1
        assert collection.record_count() == 2
        assert collection.delete_by_key(keys[0]) == 0

    def test_duplicate_key_raises_backend_error(self, collection):
        collection.insert({"_key": "k"})
        with pytest.raises(BackendError):
            collection.insert({"_key": "k"})

    def test_failed_bulk_insert_stores_nothing(self, collection):
        collection.insert({"_key": "k"})
        with pytest.raises(BackendError):
            collection.insert_bulk([{"_key": "new"}, {"_key": "k"}])

        assert collection.record_count() == 1
