"""Shared pytest fixtures for store tests."""

import pytest

from docbridge.store.memory.server import MemoryServer
from docbridge.store.options import Flags


@pytest.fixture
def storage():
    """Shared in-memory storage dict."""
    return {}


@pytest.fixture
def server(storage):
    """Connected memory server without provisioned resources."""
    server = MemoryServer("memory://localhost", storage=storage)
    yield server
    server.disconnect()


@pytest.fixture
def database(server):
    """Database created in the memory server."""
    return server.get_database("test_db", Flags.CONNECT | Flags.CREATE)


@pytest.fixture
def collection(database):
    """Empty document collection."""
    return database.new_collection("people")


@pytest.fixture
def edges(database):
    """Empty edge collection."""
    return database.new_edges_collection("knows")


@pytest.fixture
def vertices(collection):
    """Three stored vertex documents keyed a, b and c."""
    documents = {}
    for key in ("a", "b", "c"):
        document = collection.new_document({"_key": key, "name": key.upper()})
        document.store()
        documents[key] = document
    return documents
