"""ArangoDB implementation of the document store abstraction layer."""

from docbridge.store.arangodb.collection import ArangoCollection, ArangoEdges
from docbridge.store.arangodb.server import ArangoDatabase, ArangoServer

__all__ = [
    "ArangoServer",
    "ArangoDatabase",
    "ArangoCollection",
    "ArangoEdges",
]
