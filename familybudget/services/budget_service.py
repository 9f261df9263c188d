"""
Budget Ledger Service

Budget CRUD, transaction add/save/delete, the merchant usage index,
imported-transaction documents, shared-budget bookkeeping and the
batch-reconcile entry point.

Flow for every transaction mutation:
1. Load the budget (NotFound if absent)
2. Check the actor is a member of the budget's family
3. Apply the change and the merchant delta inside one store transaction
4. Append one EditEvent

DESIGN DECISION: New transaction ids are generated before the store
transaction starts. The mutator may be re-run on contention, and it must
produce the same document every time.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from familybudget.audit import EditHistoryLogger
from familybudget.ledger import (
    ReconcileOutcome,
    ReconciliationMatcher,
    apply_merchant_change,
    reindex_merchants,
)
from familybudget.models.audit import EditAction, EditEvent
from familybudget.models.budget import (
    Budget,
    BudgetInfo,
    ImportedTransactionDoc,
    ReconcileRequest,
    SharedBudget,
    Transaction,
    UpdateImportedTransactionRequest,
)
from familybudget.models.common import utc_now
from familybudget.models.user import AuthenticatedUser
from familybudget.services.errors import InvalidRequestError, NotFoundError, UnauthorizedError
from familybudget.services.family_service import FamilyService
from familybudget.services.storage import OP_EQUAL, DocumentStore, Filter


BUDGETS = "budgets"
IMPORTED_TRANSACTIONS = "importedTransactions"
SHARED_BUDGETS = "sharedBudgets"


class BudgetService:
    """
    The Budget Ledger.

    Usage:
        service = BudgetService(store, family_service, history, matcher)
        tx = await service.add_transaction(budget_id, Transaction(...), user)
    """

    def __init__(
        self,
        store: DocumentStore,
        family_service: FamilyService,
        history: EditHistoryLogger,
        matcher: Optional[ReconciliationMatcher] = None,
    ):
        self._store = store
        self._families = family_service
        self._history = history
        self._matcher = matcher or ReconciliationMatcher()
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    async def load_accessible_budgets(self, user: AuthenticatedUser) -> list[BudgetInfo]:
        """Every budget of the caller's family, or [] if they have no family."""
        family = await self._families.get_user_family(user.uid)
        if family is None:
            return []

        documents = await self._store.query(
            BUDGETS,
            filters=[Filter("familyId", OP_EQUAL, family.id)],
        )
        return [
            BudgetInfo(
                budget_id=doc.id,
                family_id=doc.data.get("familyId", family.id),
                user_id=doc.data.get("userId", ""),
                month=doc.data.get("month", ""),
                label=doc.data.get("label"),
                is_owner=family.owner_uid == user.uid,
            )
            for doc in documents
        ]

    async def _load_budget(self, budget_id: str) -> Budget:
        data = await self._store.get(BUDGETS, budget_id)
        if data is None:
            raise NotFoundError(f"Budget {budget_id} not found")
        return Budget.from_document(data, budget_id=budget_id)

    async def get_budget(self, budget_id: str, user: AuthenticatedUser) -> Budget:
        """
        Raises:
            NotFoundError: If the budget does not exist
            UnauthorizedError: If the caller is neither a family member
                nor a user the budget is shared with
        """
        budget = await self._load_budget(budget_id)
        if user.uid in budget.shared_with_ids or user.uid == budget.user_id:
            return budget
        if not await self._families.is_member(budget.family_id, user.uid):
            raise UnauthorizedError("User cannot access this budget")
        return budget

    async def _require_writer(self, budget: Budget, user: AuthenticatedUser) -> None:
        if not await self._families.is_member(budget.family_id, user.uid):
            raise UnauthorizedError("User not part of this family")

    async def save_budget(
        self,
        budget_id: str,
        budget: Budget,
        user: AuthenticatedUser,
    ) -> Budget:
        """
        Merge-write a whole budget.

        Transactions without an id get one, and the merchant index is
        rebuilt from the transaction list.

        Raises:
            UnauthorizedError: If the caller is not a member of the stored
                budget's family (or of the body's family for a new budget)
            InvalidRequestError: If the body moves the budget to another family
        """
        data = await self._store.get(BUDGETS, budget_id)
        if data is None:
            await self._require_writer(budget, user)
        else:
            stored = Budget.from_document(data, budget_id=budget_id)
            await self._require_writer(stored, user)
            if budget.family_id != stored.family_id:
                raise InvalidRequestError("A budget cannot be moved to another family")

        transactions = [
            tx if tx.id else tx.model_copy(update={"id": self._store.new_id()})
            for tx in budget.transactions
        ]
        budget = budget.model_copy(update={
            "budget_id": budget_id,
            "transactions": transactions,
            "merchants": reindex_merchants(budget.merchants, transactions),
        })

        await self._store.set(BUDGETS, budget_id, budget.to_document(), merge=True)
        await self._history.log(budget_id, user, EditAction.UPDATE_BUDGET)
        return budget

    async def get_edit_history(
        self,
        budget_id: str,
        user: AuthenticatedUser,
        since: Optional[datetime] = None,
        days: int = 30,
    ) -> list[EditEvent]:
        """Edit events at or after ``since`` (default: ``days`` ago), oldest first."""
        await self.get_budget(budget_id, user)
        if since is None:
            since = utc_now() - timedelta(days=days)
        return await self._history.get_events(budget_id, since)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def _mutate_budget(self, budget_id: str, change) -> Budget:
        """Run ``change(budget)`` inside one atomic read-modify-write."""

        def mutate(data):
            if data is None:
                raise NotFoundError(f"Budget {budget_id} not found")
            budget = Budget.from_document(data, budget_id=budget_id)
            change(budget)
            return budget.to_document()

        document = await self._store.transact(BUDGETS, budget_id, mutate)
        return Budget.from_document(document, budget_id=budget_id)

    async def add_transaction(
        self,
        budget_id: str,
        transaction: Transaction,
        user: AuthenticatedUser,
    ) -> Transaction:
        """
        Append a transaction and count its merchant.

        Raises:
            NotFoundError: If the budget does not exist
            UnauthorizedError: If the caller is not a family member
        """
        await self._require_writer(await self._load_budget(budget_id), user)
        if not transaction.id:
            transaction = transaction.model_copy(update={"id": self._store.new_id()})

        def change(budget: Budget) -> None:
            budget.transactions.append(transaction)
            budget.merchants = apply_merchant_change(budget.merchants, None, transaction.merchant)

        await self._mutate_budget(budget_id, change)
        await self._history.log(budget_id, user, EditAction.ADD_TRANSACTION)
        self._logger.info(
            "transaction_added",
            budget_id=budget_id,
            transaction_id=transaction.id,
        )
        return transaction

    async def save_transaction(
        self,
        budget_id: str,
        transaction: Transaction,
        user: AuthenticatedUser,
    ) -> Transaction:
        """
        Replace the transaction with the same id in place, or append it.

        The merchant index moves one unit of usage from the old label to
        the new one when they differ.
        """
        await self._require_writer(await self._load_budget(budget_id), user)
        new_id = transaction.id or self._store.new_id()
        replaced = {}

        def change(budget: Budget) -> None:
            replaced.clear()
            index = budget.find_transaction_index(transaction.id)
            if index >= 0:
                old_merchant = budget.transactions[index].merchant
                budget.transactions[index] = transaction
                replaced["found"] = True
            else:
                old_merchant = None
                budget.transactions.append(transaction.model_copy(update={"id": new_id}))
            budget.merchants = apply_merchant_change(
                budget.merchants, old_merchant, transaction.merchant
            )

        await self._mutate_budget(budget_id, change)

        found = replaced.get("found", False)
        action = EditAction.UPDATE_TRANSACTION if found else EditAction.ADD_TRANSACTION
        await self._history.log(budget_id, user, action)
        return transaction if found else transaction.model_copy(update={"id": new_id})

    async def delete_transaction(
        self,
        budget_id: str,
        transaction_id: str,
        user: AuthenticatedUser,
    ) -> None:
        """
        Remove a transaction and release its merchant usage.

        Raises:
            NotFoundError: If the budget or the transaction does not exist
                (nothing is written)
        """
        await self._require_writer(await self._load_budget(budget_id), user)

        def change(budget: Budget) -> None:
            index = budget.find_transaction_index(transaction_id)
            if index < 0:
                raise NotFoundError(
                    f"Transaction {transaction_id} not found in budget {budget_id}"
                )
            removed = budget.transactions.pop(index)
            budget.merchants = apply_merchant_change(budget.merchants, removed.merchant, None)

        await self._mutate_budget(budget_id, change)
        await self._history.log(budget_id, user, EditAction.DELETE_TRANSACTION)
        self._logger.info(
            "transaction_deleted",
            budget_id=budget_id,
            transaction_id=transaction_id,
        )

    # -------------------------------------------------------------------------
    # Imported transactions
    # -------------------------------------------------------------------------

    async def save_imported_transactions(
        self,
        user: AuthenticatedUser,
        doc: ImportedTransactionDoc,
    ) -> str:
        """
        Stamp owner and family, overwrite-write, return the document id.

        Raises:
            UnauthorizedError: If ``doc.id`` names an existing document the
                caller cannot access
        """
        if doc.id:
            data = await self._store.get(IMPORTED_TRANSACTIONS, doc.id)
            if data is not None:
                await self._require_imported_access(
                    ImportedTransactionDoc.from_document(data, id=doc.id), user
                )

        family = await self._families.get_user_family(user.uid)
        doc = doc.model_copy(update={
            "id": doc.id or self._store.new_id(),
            "user_id": user.uid,
            "family_id": family.id if family else None,
        })
        await self._store.set(IMPORTED_TRANSACTIONS, doc.id, doc.to_document())
        self._logger.info(
            "imported_transactions_saved",
            doc_id=doc.id,
            count=len(doc.imported_transactions),
        )
        return doc.id

    async def _query_imported(self, field: str, value: str) -> list[ImportedTransactionDoc]:
        documents = await self._store.query(
            IMPORTED_TRANSACTIONS,
            filters=[Filter(field, OP_EQUAL, value)],
        )
        return [ImportedTransactionDoc.from_document(d.data, id=d.id) for d in documents]

    async def _require_imported_access(
        self,
        doc: ImportedTransactionDoc,
        user: AuthenticatedUser,
    ) -> None:
        if doc.user_id == user.uid:
            return
        if doc.family_id and await self._families.is_member(doc.family_id, user.uid):
            return
        raise UnauthorizedError("User cannot access this imported transaction document")

    async def get_imported_transactions(self, user: AuthenticatedUser) -> list[ImportedTransactionDoc]:
        """Imported docs of the caller's family (their own docs if they have none)."""
        family = await self._families.get_user_family(user.uid)
        if family is None:
            return await self._query_imported("userId", user.uid)
        return await self._query_imported("familyId", family.id)

    async def update_imported_transaction(
        self,
        doc_id: str,
        transaction_id: str,
        request: UpdateImportedTransactionRequest,
        user: AuthenticatedUser,
    ) -> ImportedTransactionDoc:
        """
        Set the provided flags on one imported transaction.

        Raises:
            NotFoundError: If the document or the entry does not exist
        """
        data = await self._store.get(IMPORTED_TRANSACTIONS, doc_id)
        if data is None:
            raise NotFoundError(f"Imported transaction document {doc_id} not found")
        await self._require_imported_access(ImportedTransactionDoc.from_document(data, id=doc_id), user)

        flags = request.model_dump(exclude_none=True)

        def mutate(current):
            if current is None:
                raise NotFoundError(f"Imported transaction document {doc_id} not found")
            doc = ImportedTransactionDoc.from_document(current, id=doc_id)
            index = doc.find_entry_index(transaction_id)
            if index < 0:
                raise NotFoundError(
                    f"Imported transaction {transaction_id} not found in document {doc_id}"
                )
            doc.imported_transactions[index] = doc.imported_transactions[index].model_copy(
                update=flags
            )
            return doc.to_document()

        document = await self._store.transact(IMPORTED_TRANSACTIONS, doc_id, mutate)
        return ImportedTransactionDoc.from_document(document, id=doc_id)

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    async def batch_reconcile(
        self,
        budget_id: str,
        requests: list[ReconcileRequest],
        user: AuthenticatedUser,
    ) -> ReconcileOutcome:
        """
        Pair budget transactions with imported lines and persist the result.

        Every touched imported doc and the budget's transaction list are
        written in one batch commit, followed by one ``update_budget`` event.

        Raises:
            NotFoundError: If the budget, or any requested budget
                transaction, does not exist (nothing is written)
        """
        started = utc_now()
        budget = await self._load_budget(budget_id)
        await self._require_writer(budget, user)

        imported_docs = await self._query_imported("familyId", budget.family_id)
        outcome = self._matcher.apply(budget, imported_docs, requests)

        batch = self._store.batch()
        for doc_id, doc in outcome.touched_docs.items():
            batch.set(
                IMPORTED_TRANSACTIONS,
                doc_id,
                {"importedTransactions": [e.to_document() for e in doc.imported_transactions]},
                merge=True,
            )
        batch.set(
            BUDGETS,
            budget_id,
            {"transactions": [tx.to_document() for tx in outcome.transactions]},
            merge=True,
        )
        await batch.commit()

        await self._history.log(budget_id, user, EditAction.UPDATE_BUDGET)
        self._logger.info(
            "batch_reconcile_completed",
            budget_id=budget_id,
            requested=len(requests),
            applied=outcome.applied,
            skipped=len(outcome.skipped),
            imported_docs=len(outcome.touched_docs),
            elapsed_ms=round((utc_now() - started).total_seconds() * 1000, 1),
        )
        return outcome

    # -------------------------------------------------------------------------
    # Sharing
    # -------------------------------------------------------------------------

    async def get_shared_budgets(self, user: AuthenticatedUser) -> list[SharedBudget]:
        documents = await self._store.query(
            SHARED_BUDGETS,
            filters=[Filter("userId", OP_EQUAL, user.uid)],
        )
        return [SharedBudget.from_document(doc.data) for doc in documents]

    async def _require_owned(self, budget_ids: list[str], owner: AuthenticatedUser) -> None:
        for budget_id in budget_ids:
            budget = await self._load_budget(budget_id)
            if budget.user_id != owner.uid:
                raise UnauthorizedError(f"Only the owner can share budget {budget_id}")

    async def update_shared_budgets(
        self,
        owner: AuthenticatedUser,
        shared_uid: str,
        budget_ids: list[str],
    ) -> SharedBudget:
        """
        Share ``budget_ids`` with ``shared_uid``.

        Creates the owner/user sharing record, or unions the ids into it,
        and marks each budget as readable by ``shared_uid``.
        """
        await self._require_owned(budget_ids, owner)

        documents = await self._store.query(
            SHARED_BUDGETS,
            filters=[
                Filter("userId", OP_EQUAL, shared_uid),
                Filter("ownerUid", OP_EQUAL, owner.uid),
            ],
            limit=1,
        )
        if documents:
            await self._store.array_union(SHARED_BUDGETS, documents[0].id, "budgetIds", budget_ids)
        else:
            record = SharedBudget(
                user_id=shared_uid,
                owner_uid=owner.uid,
                budget_ids=list(dict.fromkeys(budget_ids)),
            )
            await self._store.set(SHARED_BUDGETS, self._store.new_id(), record.to_document())

        for budget_id in budget_ids:
            await self._store.array_union(BUDGETS, budget_id, "sharedWithIds", [shared_uid])

        self._logger.info(
            "budgets_shared",
            owner_uid=owner.uid,
            shared_uid=shared_uid,
            budget_ids=budget_ids,
        )
        return await self._get_shared_record(owner.uid, shared_uid)

    async def remove_shared_budgets(
        self,
        owner: AuthenticatedUser,
        shared_uid: str,
        budget_ids: list[str],
    ) -> SharedBudget:
        """
        Stop sharing ``budget_ids`` with ``shared_uid``.

        Raises:
            NotFoundError: If nothing is shared between the two users
        """
        await self._require_owned(budget_ids, owner)

        documents = await self._store.query(
            SHARED_BUDGETS,
            filters=[
                Filter("userId", OP_EQUAL, shared_uid),
                Filter("ownerUid", OP_EQUAL, owner.uid),
            ],
            limit=1,
        )
        if not documents:
            raise NotFoundError(f"No budgets shared with {shared_uid}")

        await self._store.array_remove(SHARED_BUDGETS, documents[0].id, "budgetIds", budget_ids)
        for budget_id in budget_ids:
            await self._store.array_remove(BUDGETS, budget_id, "sharedWithIds", [shared_uid])

        self._logger.info(
            "budgets_unshared",
            owner_uid=owner.uid,
            shared_uid=shared_uid,
            budget_ids=budget_ids,
        )
        return await self._get_shared_record(owner.uid, shared_uid)

    async def _get_shared_record(self, owner_uid: str, shared_uid: str) -> SharedBudget:
        documents = await self._store.query(
            SHARED_BUDGETS,
            filters=[
                Filter("userId", OP_EQUAL, shared_uid),
                Filter("ownerUid", OP_EQUAL, owner_uid),
            ],
            limit=1,
        )
        return SharedBudget.from_document(documents[0].data)
