"""MongoDB implementation of the document store abstraction layer."""

from docbridge.store.mongodb.collection import MongoCollection, MongoEdges
from docbridge.store.mongodb.server import MongoDatabase, MongoServer

__all__ = [
    "MongoServer",
    "MongoDatabase",
    "MongoCollection",
    "MongoEdges",
]
