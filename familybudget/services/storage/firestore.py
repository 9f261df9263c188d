"""
Firestore Storage Implementation

DESIGN DECISION: Cloud Firestore is the production backend because:
1. Documents map directly onto budgets/families with embedded lists
2. It offers the atomic primitives we need (transactions, batches,
   array union/remove)
3. The async client lets slow store calls yield instead of blocking

The implementation follows the abstract interface, so tests and local
development run against the in-memory store without changing business
logic.

Store operations are NOT retried: a failed call surfaces to the caller
as a StorageError. Only client construction is retried.
"""

from typing import Any, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from familybudget.config import get_settings
from familybudget.services.storage.interface import (
    SUPPORTED_OPERATORS,
    ConnectionError,
    Document,
    DocumentNotFoundError,
    DocumentStore,
    Filter,
    Mutator,
    StorageError,
    WriteBatch,
)


SCOPES = [
    "https://www.googleapis.com/auth/datastore",
    "https://www.googleapis.com/auth/cloud-platform",
]


class FirestoreClient:
    """
    Low-level Firestore client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self):
        self._client: Optional[firestore.AsyncClient] = None
        self._settings = get_settings().firestore

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> firestore.AsyncClient:
        """
        Create the async Firestore client.

        Uses service account credentials when a credentials file is
        configured, application default credentials otherwise.
        """
        if self._client is None:
            try:
                credentials = None
                if self._settings.credentials_path:
                    credentials = Credentials.from_service_account_file(
                        self._settings.credentials_path,
                        scopes=SCOPES,
                    )
                self._client = firestore.AsyncClient(
                    project=self._settings.project_id,
                    credentials=credentials,
                    database=self._settings.database,
                )
            except FileNotFoundError:
                raise ConnectionError(
                    f"Firestore credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Firestore: {e}")

        return self._client


class FirestoreWriteBatch(WriteBatch):
    """Wraps a Firestore batch so callers stay on collection/id pairs."""

    def __init__(self, client: firestore.AsyncClient):
        self._client = client
        self._batch = client.batch()
        self._size = 0

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        self._batch.set(self._client.collection(collection).document(doc_id), data, merge=merge)
        self._size += 1

    def delete(self, collection: str, doc_id: str) -> None:
        self._batch.delete(self._client.collection(collection).document(doc_id))
        self._size += 1

    @property
    def size(self) -> int:
        return self._size

    async def commit(self) -> None:
        try:
            await self._batch.commit()
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to commit batch of {self._size} writes: {e}")


class FirestoreDocumentStore(DocumentStore):
    """
    Firestore implementation of the document store.

    Collection paths are passed straight to the client, so sub-collection
    paths such as ``budgets/{id}/editHistory`` work unchanged.
    """

    def __init__(self, client: Optional[FirestoreClient] = None):
        self._client = client or FirestoreClient()

    @property
    def _db(self) -> firestore.AsyncClient:
        return self._client.connect()

    def _ref(self, collection: str, doc_id: str):
        return self._db.collection(collection).document(doc_id)

    def new_id(self) -> str:
        # Auto-ids are generated client side; no round trip.
        return self._db.collection("_ids").document().id

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        try:
            snapshot = await self._ref(collection, doc_id).get()
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to get {collection}/{doc_id}: {e}")
        return snapshot.to_dict() if snapshot.exists else None

    async def query(
        self,
        collection: str,
        filters: Optional[list[Filter]] = None,
        limit: Optional[int] = None,
    ) -> list[Document]:
        query = self._db.collection(collection)
        for clause in filters or []:
            if clause.op not in SUPPORTED_OPERATORS:
                raise StorageError(f"Unsupported query operator: {clause.op}")
            query = query.where(filter=FieldFilter(clause.field, clause.op, clause.value))
        if limit is not None:
            query = query.limit(limit)

        try:
            return [
                Document(snapshot.id, snapshot.to_dict())
                async for snapshot in query.stream()
            ]
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to query {collection}: {e}")

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        try:
            await self._ref(collection, doc_id).set(data, merge=merge)
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to write {collection}/{doc_id}: {e}")

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self._ref(collection, doc_id).delete()
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to delete {collection}/{doc_id}: {e}")

    async def _update(self, collection: str, doc_id: str, updates: dict[str, Any]) -> None:
        try:
            await self._ref(collection, doc_id).update(updates)
        except google_exceptions.NotFound:
            raise DocumentNotFoundError(f"{collection}/{doc_id} not found")
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to update {collection}/{doc_id}: {e}")

    async def array_union(
        self,
        collection: str,
        doc_id: str,
        field: str,
        values: list[Any],
    ) -> None:
        await self._update(collection, doc_id, {field: firestore.ArrayUnion(values)})

    async def array_remove(
        self,
        collection: str,
        doc_id: str,
        field: str,
        values: list[Any],
    ) -> None:
        await self._update(collection, doc_id, {field: firestore.ArrayRemove(values)})

    async def transact(
        self,
        collection: str,
        doc_id: str,
        mutate: Mutator,
    ) -> dict[str, Any]:
        ref = self._ref(collection, doc_id)

        @firestore.async_transactional
        async def run(transaction) -> dict[str, Any]:
            snapshot = await ref.get(transaction=transaction)
            updated = mutate(snapshot.to_dict() if snapshot.exists else None)
            transaction.set(ref, updated)
            return updated

        try:
            return await run(self._db.transaction())
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Transaction on {collection}/{doc_id} failed: {e}")

    def batch(self) -> FirestoreWriteBatch:
        return FirestoreWriteBatch(self._db)
