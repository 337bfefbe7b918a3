"""Unit tests for the ArangoDB backend.

These tests use mocks of the python-arango client; no ArangoDB server is needed.
"""

import pytest
from unittest.mock import MagicMock, Mock, patch
from arango.exceptions import (
    ArangoError,
    DocumentDeleteError,
    DocumentInsertError,
    DocumentReplaceError,
)

from docbridge.store.arangodb.collection import ArangoCollection, ArangoEdges
from docbridge.store.arangodb.server import ArangoServer
from docbridge.store.exceptions import (
    BackendError,
    ConnectionError as StoreConnectionError,
    InvalidArgumentError,
)
from docbridge.store.options import Flags, Format


def server_error(error_class, status_code):
    """Build a python-arango server error for an HTTP status."""
    response = Mock(status_code=status_code, error_code=1202, error_message="failed")
    return error_class(response, Mock())


@pytest.fixture
def client_class():
    """Patched ArangoClient class returning one mock per database name."""
    with patch("docbridge.store.arangodb.server.ArangoClient") as client_class:
        handles = {}

        def db(name, **kwargs):
            return handles.setdefault(name, MagicMock(name=f"db:{name}"))

        client_class.return_value.db.side_effect = db
        system = db("_system")
        system.databases.return_value = ["_system", "catalog"]
        system.has_database.side_effect = lambda name: name in ("_system", "catalog")
        yield client_class


@pytest.fixture
def client(client_class):
    return client_class.return_value


@pytest.fixture
def server(client_class):
    server = ArangoServer("arangodb://root:pw@localhost:8529")
    yield server
    server.disconnect()


@pytest.fixture
def database(server):
    database = server.get_database("catalog")
    database.native.collections.return_value = [
        {"name": "_graphs", "system": True, "type": "document"},
        {"name": "items", "system": False, "type": "document"},
        {"name": "links", "system": False, "type": "edge"},
    ]
    return database


@pytest.fixture
def items(database):
    return database.get_collection("items")


@pytest.fixture
def links(database):
    return database.get_collection("links")


class TestArangoServer:
    """Test connection handling."""

    def test_client_hosts(self, client_class):
        server = ArangoServer("arangodbs://h1:1,h2")
        assert server.client_hosts() == ["https://h1:1", "https://h2:8529"]

    def test_http_protocol(self, client_class):
        assert ArangoServer("http://localhost").client_hosts() == ["http://localhost:8529"]

    def test_connect_verifies_system_database(self, server, client_class, client):
        server.connect()

        client_class.assert_called_once_with(hosts="http://localhost:8529")
        client.db.assert_called_once_with("_system", verify=True, username="root", password="pw")
        assert server.system is not None

    def test_default_credentials(self, client_class, client):
        ArangoServer("arangodb://localhost").connect()
        client.db.assert_called_once_with("_system", verify=True, username="root", password="")

    def test_connection_failure(self, client_class, client):
        client.db.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(StoreConnectionError):
            ArangoServer("arangodb://localhost").connect()

    def test_disconnect(self, server, client):
        server.connect()
        server.disconnect()

        client.close.assert_called_once()
        assert server.system is None

    def test_list_databases(self, server):
        assert server.list_databases() == ["_system", "catalog"]

    def test_get_database(self, server, client):
        database = server.get_database("catalog")

        assert database.name == "catalog"
        client.db.assert_called_with("catalog", username="root", password="pw")

    def test_get_missing_database(self, server):
        assert server.get_database("missing") is None

    def test_create_database(self, server):
        server.get_database("fresh", Flags.CONNECT | Flags.CREATE)
        server.system.create_database.assert_called_once_with("fresh")

    def test_drop_database(self, server):
        server.get_database("catalog")
        assert server.drop_database("catalog") is True
        server.system.delete_database.assert_called_once_with("catalog", ignore_missing=True)


class TestArangoDatabase:
    """Test collection resolution and typing."""

    def test_list_collections_hides_system(self, database):
        assert database.list_collections() == ["items", "links"]

    def test_retrieve_uses_native_type(self, items, links):
        assert type(items) is ArangoCollection
        assert type(links) is ArangoEdges

    def test_wrong_type_raises(self, database):
        with pytest.raises(InvalidArgumentError):
            database.get_collection("items", options={"collection_type": "edge"})

    def test_wrong_type_raises_when_cached(self, items, database):
        with pytest.raises(InvalidArgumentError):
            database.new_edges_collection("items")
        database.native.create_collection.assert_not_called()

    def test_create_edges_collection(self, database):
        database.new_edges_collection("follows")
        database.native.create_collection.assert_called_once_with("follows", edge=True)

    def test_get_missing_collection(self, database):
        assert database.get_collection("missing") is None


class TestArangoCollection:
    """Test collection operations against a mocked python-arango collection."""

    def test_insert_one(self, items):
        items.native.insert.return_value = {"_key": "k1", "_id": "items/k1", "_rev": "r1"}
        document = items.new_document({"name": "widget"})

        assert document.store() == "k1"
        assert document.id == "items/k1"
        assert document.revision == "r1"

    def test_bulk_insert_commits(self, items, database):
        transaction = database.native.begin_transaction.return_value
        transaction.collection.return_value.insert_many.return_value = [
            {"_key": "a", "_id": "items/a", "_rev": "1"},
            {"_key": "b", "_id": "items/b", "_rev": "1"},
        ]

        assert items.insert_bulk([{"n": 1}, {"n": 2}]) == ["a", "b"]
        database.native.begin_transaction.assert_called_once_with(write=["items"])
        transaction.commit_transaction.assert_called_once()

    def test_bulk_insert_failure_aborts(self, items, database):
        transaction = database.native.begin_transaction.return_value
        transaction.collection.return_value.insert_many.return_value = [
            {"_key": "a", "_id": "items/a", "_rev": "1"},
            ArangoError("unique constraint violated"),
        ]

        with pytest.raises(BackendError):
            items.insert_bulk([{"n": 1}, {"n": 2}])
        transaction.abort_transaction.assert_called_once()
        transaction.commit_transaction.assert_not_called()

    def test_bulk_insert_request_error_aborts(self, items, database):
        transaction = database.native.begin_transaction.return_value
        error = server_error(DocumentInsertError, 400)
        transaction.collection.return_value.insert_many.side_effect = error

        with pytest.raises(BackendError) as exc_info:
            items.insert_bulk([{"n": 1}, {"n": 2}])

        assert exc_info.value.__cause__ is error
        transaction.abort_transaction.assert_called_once()
        transaction.commit_transaction.assert_not_called()

    def test_update(self, items):
        items.native.update_match.return_value = 2

        assert items.update({"color": "red"}, {"size": 1}) == 2
        items.native.update_match.assert_called_once_with({"size": 1}, {"color": "red"}, limit=None)

    def test_replace(self, items):
        items.native.replace.return_value = {"_key": "k", "_id": "items/k", "_rev": "r2"}
        assert items.replace({"_key": "k", "n": 1}) == 1

    def test_replace_missing(self, items):
        items.native.replace.side_effect = server_error(DocumentReplaceError, 404)
        assert items.replace({"_key": "k"}) == 0

    def test_replace_conflict_is_wrapped(self, items):
        items.native.replace.side_effect = server_error(DocumentReplaceError, 412)
        with pytest.raises(BackendError):
            items.replace({"_key": "k", "_rev": "old"})

    def test_find_by_key_uses_get(self, items):
        items.native.get.return_value = {"_key": "k", "n": 1}

        assert items.find_by_key("k")["n"] == 1
        items.native.get.assert_called_once_with("k")

    def test_find_by_key_missing(self, items):
        items.native.get.return_value = None
        assert items.find_by_key("k") is None

    def test_find_by_key_many(self, items):
        items.native.get_many.return_value = [{"_key": "a"}, {"_key": "b"}]
        assert items.find_by_key(["a", "b"], {"many": True, "format": "key"}) == ["a", "b"]

    def test_find_by_example_pagination(self, items):
        items.native.find.return_value = iter([{"_key": "c"}])

        assert items.find_by_example({"n": 1}, {"limit": 1, "format": "key"}) == ["c"]
        items.native.find.assert_called_once_with({"n": 1}, skip=0, limit=1)

    def test_find_by_query_binds_collection(self, items, database):
        database.native.aql.execute.return_value = iter([{"_key": "a"}])
        query = "FOR doc IN @@collection RETURN doc"

        assert items.find_by_query(query, {"format": Format.KEY}) == ["a"]
        database.native.aql.execute.assert_called_once_with(query, bind_vars={"@collection": "items"})

    def test_find_by_query_with_bind_vars(self, items, database):
        database.native.aql.execute.return_value = iter([])
        query = {"query": "FOR doc IN items FILTER doc.n == @n RETURN doc", "bind_vars": {"n": 1}}

        items.find_by_query(query)
        database.native.aql.execute.assert_called_once_with(query["query"], bind_vars={"n": 1})

    def test_invalid_query(self, items):
        with pytest.raises(InvalidArgumentError):
            items.find_by_query({"n": 1})

    def test_delete_by_key(self, items):
        assert items.delete_by_key("k") == 1
        items.native.delete.assert_called_once_with("k")

    def test_delete_missing_counts_zero(self, items):
        items.native.delete.side_effect = server_error(DocumentDeleteError, 404)
        assert items.delete_by_key("k") == 0

    def test_delete_by_example(self, items):
        items.native.delete_match.return_value = 3
        assert items.delete_by_example({"color": "red"}) == 3
        items.native.delete_match.assert_called_once_with({"color": "red"}, limit=None)

    def test_counts(self, items, database):
        items.native.count.return_value = 5
        database.native.aql.execute.return_value = iter([2])

        assert items.record_count() == 5
        assert items.count_by_example({"n": 1}) == 2
        bind_vars = database.native.aql.execute.call_args[1]["bind_vars"]
        assert bind_vars == {"@collection": "items", "example": {"n": 1}}

    def test_truncate_and_drop(self, items, database):
        items.truncate()
        items.native.truncate.assert_called_once()

        items.drop()
        database.native.delete_collection.assert_called_once_with("items", ignore_missing=True)

    def test_driver_error_is_wrapped(self, items):
        items.native.count.side_effect = ArangoError("unavailable")
        with pytest.raises(BackendError):
            items.record_count()


class TestArangoEdges:
    """Test edge storage and vertex lookups."""

    def test_vertices_stored_as_ids(self, links):
        edge = links.new_document({})
        edge.source = "people/a"
        edge.destination = "people/b"

        assert edge["_from"] == "people/a"
        assert edge["_to"] == "people/b"
        assert str(edge.source) == "people/a"

    def test_find_by_vertex_any(self, links, database):
        database.native.aql.execute.return_value = iter([{"_key": "e1"}])

        assert links.find_by_vertex("people/a", {"format": "key"}) == ["e1"]

        query, = database.native.aql.execute.call_args[0]
        bind_vars = database.native.aql.execute.call_args[1]["bind_vars"]
        assert "edge._from == @vertex OR edge._to == @vertex" in query
        assert bind_vars == {"@collection": "links", "vertex": "people/a"}

    def test_find_by_vertex_out_with_limit(self, links, database):
        database.native.aql.execute.return_value = iter([])

        links.find_by_vertex("people/a", {"direction": "out", "limit": 3})

        query, = database.native.aql.execute.call_args[0]
        bind_vars = database.native.aql.execute.call_args[1]["bind_vars"]
        assert "edge._from == @vertex" in query
        assert "_to" not in query
        assert "LIMIT @start, @limit" in query
        assert bind_vars["start"] == 0
        assert bind_vars["limit"] == 3
