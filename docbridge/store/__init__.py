"""Document store abstraction layer for docbridge.

This package provides backend-agnostic interfaces for document stores,
with concrete implementations for MongoDB, ArangoDB and process memory.

Usage:
    from docbridge.store.factory import create_server

    server = create_server("mongodb://localhost:27017/inventory/items")
    items = server.get_database("inventory").get_collection("items")
    key = items.insert({"name": "widget"})
"""

from docbridge.store.base import Collection, Database, DataServer, EdgesMixin, Server
from docbridge.store.datasource import DataSource
from docbridge.store.document import Document, Handle, document_type, registry
from docbridge.store.document_set import DocumentSet
from docbridge.store.edge import Edge
from docbridge.store.exceptions import (
    BackendError,
    ImmutableFieldError,
    InvalidArgumentError,
    NotFoundError,
    StoreError,
)
from docbridge.store.options import CollectionType, Direction, Flags, Format, Options

__all__ = [
    "Server",
    "DataServer",
    "Database",
    "Collection",
    "EdgesMixin",
    "DataSource",
    "Document",
    "Edge",
    "Handle",
    "DocumentSet",
    "document_type",
    "registry",
    "Flags",
    "Format",
    "Direction",
    "CollectionType",
    "Options",
    "StoreError",
    "NotFoundError",
    "InvalidArgumentError",
    "ImmutableFieldError",
    "BackendError",
]
