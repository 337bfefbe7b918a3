"""In-memory implementation of the document store abstraction layer.

Keeps every database in process memory; used for tests and local tooling.
"""

from docbridge.store.memory.collection import MemoryCollection, MemoryEdges
from docbridge.store.memory.server import MemoryDatabase, MemoryServer

__all__ = [
    "MemoryServer",
    "MemoryDatabase",
    "MemoryCollection",
    "MemoryEdges",
]
