"""Custom exceptions for document store operations."""

from typing import Any, Optional


class StoreError(Exception):
    """Base exception for document store errors."""
    pass


class NotFoundError(StoreError):
    """A database, collection or document could not be resolved."""

    def __init__(self, kind: str, name: Any):
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind}: '{name}'")


class InvalidArgumentError(StoreError):
    """Malformed argument, option or document."""
    pass


class ImmutableFieldError(StoreError):
    """Attempt to modify a locked field."""

    def __init__(self, offset: str, reason: str = ""):
        self.offset = offset
        msg = f"Field '{offset}' cannot be modified"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg)


class BackendError(StoreError):
    """Failure reported by the native driver."""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        self.original = original
        super().__init__(message)


class ConnectionError(BackendError):
    """Error connecting to the document store."""
    pass
