"""Factory for creating document store servers.

This module provides factory functions to instantiate concrete
implementations of the store abstraction layer from a connection string
or from configuration.

The factory ensures that consumers (CLI, business logic) only depend on
abstract interfaces, not concrete implementations.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from docbridge.store.base import Collection, DataServer
from docbridge.store.datasource import DataSource
from docbridge.store.document_set import DocumentSet
from docbridge.store.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from docbridge.config.settings import Settings

logger = logging.getLogger(__name__)

BACKENDS = {
    "memory": "memory",
    "mongodb": "mongodb",
    "mongodb+srv": "mongodb",
    "arangodb": "arangodb",
    "arangodbs": "arangodb",
    "http": "arangodb",
    "https": "arangodb",
}


def backend_for(uri: str) -> str:
    """Name of the backend serving a connection string's protocol.

    Raises:
        InvalidArgumentError: If the protocol is not supported
    """
    protocol = DataSource(uri).protocol
    try:
        return BACKENDS[protocol]
    except KeyError:
        raise InvalidArgumentError(f"Unsupported store protocol: {protocol}")


def create_server(uri: str, backend: Optional[str] = None, **options: Any) -> DataServer:
    """Create a server for a connection string.

    Args:
        uri: Connection string; a database and collection in its path are
            provisioned at once
        backend: Backend name overriding the one implied by the protocol
        **options: Backend keyword arguments (client options, or the
            shared storage of the memory backend)

    Returns:
        DataServer: Configured server instance

    Raises:
        InvalidArgumentError: If the backend is not supported
    """
    backend = backend or backend_for(uri)
    logger.debug(f"Creating {backend} server")

    # Import here so only the selected driver has to be installed
    if backend == "memory":
        from docbridge.store.memory.server import MemoryServer
        return MemoryServer(uri, **options)
    elif backend == "mongodb":
        from docbridge.store.mongodb.server import MongoServer
        return MongoServer(uri, **options)
    elif backend == "arangodb":
        from docbridge.store.arangodb.server import ArangoServer
        return ArangoServer(uri, **options)
    else:
        raise InvalidArgumentError(f"Unsupported store backend: {backend}")


def get_server(config: "Settings", **options: Any) -> DataServer:
    """Get a server based on configuration.

    Credentials configured in the ``server`` section replace those of
    the connection string.

    Args:
        config: Application settings

    Returns:
        DataServer: Configured server instance
    """
    source = DataSource(config.server.uri)
    if config.server.username is not None:
        source.user = config.server.username
    if config.server.password is not None:
        source.password = config.server.password
    return create_server(source.url(), config.server.backend, **options)


def get_document_set(collection: Collection, config: Optional["Settings"] = None) -> DocumentSet:
    """Get a document set sized from configuration.

    Args:
        collection: Collection receiving the documents
        config: Application settings; the default buffer size if omitted

    Returns:
        DocumentSet: Empty document set
    """
    if config is None:
        return DocumentSet(collection)
    return DocumentSet(collection, buffer_size=config.document_set.buffer_size)
