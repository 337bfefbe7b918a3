"""docbridge - backend-agnostic client for document stores."""

__version__ = "0.1.0"
__author__ = "docbridge contributors"
__description__ = "Uniform document, collection and graph edge API over MongoDB and ArangoDB"
