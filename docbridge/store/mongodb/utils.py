"""Helpers shared by the MongoDB server and collection classes."""

import functools
import logging

from pymongo import errors

from docbridge.store.exceptions import BackendError, ConnectionError as StoreConnectionError

logger = logging.getLogger(__name__)


def raises_backend_error(func):
    """Translate pymongo errors into store errors.

    Connection failures become ConnectionError, any other driver error
    becomes BackendError; the driver exception is kept as the cause.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except errors.ConnectionFailure as e:
            logger.error(f"MongoDB connection failure in {func.__name__}: {e}")
            raise StoreConnectionError(f"MongoDB connection failure: {e}", e) from e
        except errors.PyMongoError as e:
            logger.error(f"MongoDB operation {func.__name__} failed: {e}")
            raise BackendError(f"MongoDB operation failed: {e}", e) from e

    return wrapper


def has_operators(criteria) -> bool:
    """True if a mapping uses top-level ``$`` update operators."""
    return any(str(field).startswith("$") for field in criteria)


def edge_validator(source: str, destination: str) -> dict:
    """Collection validator requiring both vertex offsets.

    Edge collections are created with it, and it is how an existing
    collection is recognised as an edge collection.
    """
    return {
        "$jsonSchema": {
            "bsonType": "object",
            "required": [source, destination],
        }
    }


def has_edge_validator(info, source: str, destination: str) -> bool:
    """True if a ``list_collections`` entry carries the edge validator."""
    validator = (info.get("options") or {}).get("validator") or {}
    required = (validator.get("$jsonSchema") or {}).get("required") or []
    return source in required and destination in required
