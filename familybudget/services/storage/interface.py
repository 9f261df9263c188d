"""
Abstract Document Store Interface

DESIGN DECISION: Services talk to an abstract document store rather than
to the Firestore SDK directly. This allows us to:
1. Run the whole API against in-memory storage for tests and local dev
2. Keep business logic decoupled from the database client
3. Name exactly which primitives the application relies on

The interface mirrors the primitives of a managed document database:
get-by-id, equality / array-membership queries, merge and overwrite
writes, atomic array union/remove, single-document transactions and
atomic multi-document batches. It is intentionally not an ORM.

Collection paths may name sub-collections, e.g.
``budgets/{budget_id}/editHistory``.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, NamedTuple, Optional


# Supported query operators.
OP_EQUAL = "=="
OP_ARRAY_CONTAINS = "array_contains"
OP_GREATER_OR_EQUAL = ">="

SUPPORTED_OPERATORS = (OP_EQUAL, OP_ARRAY_CONTAINS, OP_GREATER_OR_EQUAL)


class Filter(NamedTuple):
    """One ``where`` clause: field, operator, value."""
    field: str
    op: str
    value: Any


class Document(NamedTuple):
    """A query result: document id plus its data."""
    id: str
    data: dict[str, Any]


# A transaction body: receives the current document (None if absent) and
# returns the document to write back. Raising aborts without writing.
Mutator = Callable[[Optional[dict[str, Any]]], dict[str, Any]]


class WriteBatch(ABC):
    """
    An atomic multi-document write.

    Writes are staged with ``set``/``delete`` and applied together by
    ``commit``. Either every staged write lands or none does.
    """

    @abstractmethod
    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Stage a set (overwrite, or merge when ``merge`` is True)."""
        pass

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Stage a delete."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """
        Apply all staged writes atomically.

        Raises:
            StorageError: If the commit fails (nothing is applied)
        """
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of staged writes."""
        pass


class DocumentStore(ABC):
    """
    Abstract interface for document storage operations.

    Any storage implementation (Firestore, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    def new_id(self) -> str:
        """Generate a new globally-unique document/entry id."""
        pass

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """
        Retrieve a document by id.

        Args:
            collection: Collection path
            doc_id: Document id

        Returns:
            The document data if found, None otherwise

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Optional[list[Filter]] = None,
        limit: Optional[int] = None,
    ) -> list[Document]:
        """
        Query documents in a collection.

        Args:
            collection: Collection path
            filters: Clauses that must all hold (see SUPPORTED_OPERATORS)
            limit: Maximum number of results

        Returns:
            List of matching documents
        """
        pass

    @abstractmethod
    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """
        Write a document.

        Args:
            collection: Collection path
            doc_id: Document id
            data: Document body
            merge: Merge into the existing document instead of replacing it

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document (no error if it does not exist)."""
        pass

    @abstractmethod
    async def array_union(
        self,
        collection: str,
        doc_id: str,
        field: str,
        values: list[Any],
    ) -> None:
        """
        Atomically add values to an array field (skipping ones present).

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        pass

    @abstractmethod
    async def array_remove(
        self,
        collection: str,
        doc_id: str,
        field: str,
        values: list[Any],
    ) -> None:
        """
        Atomically remove all occurrences of values from an array field.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        pass

    @abstractmethod
    async def transact(
        self,
        collection: str,
        doc_id: str,
        mutate: Mutator,
    ) -> dict[str, Any]:
        """
        Atomic read-modify-write of one document.

        ``mutate`` may be called more than once if the backend retries on
        contention, so it must only depend on its argument.

        Args:
            collection: Collection path
            doc_id: Document id
            mutate: Transaction body

        Returns:
            The document as written

        Raises:
            StorageError: If the transaction fails to commit
            Any exception raised by ``mutate`` (nothing is written)
        """
        pass

    @abstractmethod
    def batch(self) -> WriteBatch:
        """Start an atomic multi-document write."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DocumentNotFoundError(StorageError):
    """Document not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
