"""
Storage Services Package

Provides the abstract document store interface and its implementations.
Firestore is the production backend; the in-memory store serves tests
and local development.
"""

from familybudget.services.storage.interface import (
    OP_ARRAY_CONTAINS,
    OP_EQUAL,
    OP_GREATER_OR_EQUAL,
    ConnectionError,
    Document,
    DocumentNotFoundError,
    DocumentStore,
    Filter,
    StorageError,
    WriteBatch,
)
from familybudget.services.storage.memory import MemoryDocumentStore, MemoryWriteBatch

__all__ = [
    # Interfaces
    "DocumentStore",
    "WriteBatch",
    "Document",
    "Filter",
    "OP_ARRAY_CONTAINS",
    "OP_EQUAL",
    "OP_GREATER_OR_EQUAL",
    # Exceptions
    "ConnectionError",
    "DocumentNotFoundError",
    "StorageError",
    # In-memory implementation
    "MemoryDocumentStore",
    "MemoryWriteBatch",
]
