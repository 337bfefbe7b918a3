"""Helpers shared by the ArangoDB server and collection classes."""

import functools
import logging

from arango.exceptions import ArangoError

from docbridge.store.exceptions import BackendError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8529
SECURE_PROTOCOLS = ("arangodbs", "https")


def raises_backend_error(func):
    """Translate python-arango errors into BackendError, keeping the cause."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ArangoError as e:
            logger.error(f"ArangoDB operation {func.__name__} failed: {e}")
            raise BackendError(f"ArangoDB operation failed: {e}", e) from e

    return wrapper


def is_missing(error: ArangoError) -> bool:
    """True if the server answered 404 (document or collection not found)."""
    return getattr(error, "http_code", None) == 404
