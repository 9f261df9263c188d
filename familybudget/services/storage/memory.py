"""
In-Memory Storage Implementation

Keeps every collection in a dict of dicts. Used by the test-suite and by
local development (``STORAGE_BACKEND=memory``).

Reads and writes deep-copy documents so callers can never mutate stored
state by holding on to a returned dict. None of the operations await
between reading and writing, so each one is atomic with respect to other
coroutines on the same event loop.
"""

import copy
from typing import Any, Optional
from uuid import uuid4

from familybudget.services.storage.interface import (
    OP_ARRAY_CONTAINS,
    OP_EQUAL,
    OP_GREATER_OR_EQUAL,
    Document,
    DocumentNotFoundError,
    DocumentStore,
    Filter,
    Mutator,
    StorageError,
    WriteBatch,
)


def _deep_merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Merge ``source`` into ``target``: maps merge recursively, everything else replaces."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def _matches(data: dict[str, Any], clause: Filter) -> bool:
    if clause.field not in data:
        return False
    value = data[clause.field]
    if clause.op == OP_EQUAL:
        return value == clause.value
    if clause.op == OP_ARRAY_CONTAINS:
        return isinstance(value, list) and clause.value in value
    if clause.op == OP_GREATER_OR_EQUAL:
        try:
            return value is not None and value >= clause.value
        except TypeError:
            return False
    raise StorageError(f"Unsupported query operator: {clause.op}")


class MemoryWriteBatch(WriteBatch):
    """Staged writes applied together on commit."""

    def __init__(self, store: "MemoryDocumentStore"):
        self._store = store
        self._writes: list[tuple[str, str, str, Optional[dict[str, Any]], bool]] = []
        self._committed = False

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        self._writes.append(("set", collection, doc_id, copy.deepcopy(data), merge))

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes.append(("delete", collection, doc_id, None, False))

    @property
    def size(self) -> int:
        return len(self._writes)

    async def commit(self) -> None:
        if self._committed:
            raise StorageError("Batch already committed")
        # Build the new state off to the side, then swap it in.
        staged = copy.deepcopy(self._store._collections)
        for kind, collection, doc_id, data, merge in self._writes:
            documents = staged.setdefault(collection, {})
            if kind == "delete":
                documents.pop(doc_id, None)
            elif merge and doc_id in documents:
                _deep_merge(documents[doc_id], data)
            else:
                documents[doc_id] = data
        self._store._collections = staged
        self._committed = True


class MemoryDocumentStore(DocumentStore):
    """Dict-backed document store."""

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def new_id(self) -> str:
        return uuid4().hex

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        document = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def query(
        self,
        collection: str,
        filters: Optional[list[Filter]] = None,
        limit: Optional[int] = None,
    ) -> list[Document]:
        results = []
        for doc_id, data in self._collections.get(collection, {}).items():
            if all(_matches(data, clause) for clause in filters or []):
                results.append(Document(doc_id, copy.deepcopy(data)))
                if limit is not None and len(results) >= limit:
                    break
        return results

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        documents = self._collections.setdefault(collection, {})
        if merge and doc_id in documents:
            _deep_merge(documents[doc_id], data)
        else:
            documents[doc_id] = copy.deepcopy(data)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._collections.get(collection, {}).pop(doc_id, None)

    def _require(self, collection: str, doc_id: str) -> dict[str, Any]:
        document = self._collections.get(collection, {}).get(doc_id)
        if document is None:
            raise DocumentNotFoundError(f"{collection}/{doc_id} not found")
        return document

    async def array_union(
        self,
        collection: str,
        doc_id: str,
        field: str,
        values: list[Any],
    ) -> None:
        document = self._require(collection, doc_id)
        current = document.setdefault(field, [])
        for value in values:
            if value not in current:
                current.append(copy.deepcopy(value))

    async def array_remove(
        self,
        collection: str,
        doc_id: str,
        field: str,
        values: list[Any],
    ) -> None:
        document = self._require(collection, doc_id)
        document[field] = [item for item in document.get(field, []) if item not in values]

    async def transact(
        self,
        collection: str,
        doc_id: str,
        mutate: Mutator,
    ) -> dict[str, Any]:
        current = await self.get(collection, doc_id)
        updated = mutate(current)
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(updated)
        return copy.deepcopy(updated)

    def batch(self) -> MemoryWriteBatch:
        return MemoryWriteBatch(self)
