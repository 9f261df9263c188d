"""
Reconciliation Matcher

Pairs budget transactions with imported bank-statement lines.

For each request:
1. Resolve the budget transaction (missing -> the whole call fails)
2. Resolve the imported transaction across all imported docs
   (missing -> log and skip the request)
3. Match: copy bank fields onto the budget transaction through
   FIELD_MAPPING, mark it cleared, flag the imported line as matched
4. Ignore: flag the imported line as ignored (independent of Match)

Requests are processed in fixed-size chunks to bound each step's work.
Chunking has no effect on the result.

The matcher never touches the store. It works on copies and returns the
new transaction list plus the imported docs it changed; the caller
persists them in one atomic write.
"""

from dataclasses import dataclass, field
from typing import NamedTuple

import structlog

from familybudget.models.budget import (
    STATUS_CLEARED,
    Budget,
    ImportedTransaction,
    ImportedTransactionDoc,
    ReconcileRequest,
    Transaction,
)
from familybudget.services.errors import NotFoundError


logger = structlog.get_logger(__name__)


DEFAULT_BATCH_SIZE = 50


class FieldMapping(NamedTuple):
    """Copy ``source`` (imported line) onto ``target`` (budget transaction)."""
    source: str
    target: str


# Copied only when the imported value is not None. The budget
# transaction's own ``merchant`` label is never overwritten, and its
# ``status`` is always set to STATUS_CLEARED after the copy.
FIELD_MAPPING: tuple[FieldMapping, ...] = (
    FieldMapping("amount", "amount"),
    FieldMapping("posted_date", "posted_date"),
    FieldMapping("payee", "imported_merchant"),
    FieldMapping("account_number", "account_number"),
    FieldMapping("account_source", "account_source"),
    FieldMapping("check_number", "check_number"),
)


def copy_matched_fields(
    imported: ImportedTransaction,
    transaction: Transaction,
) -> Transaction:
    """Return ``transaction`` updated from ``imported`` and marked cleared."""
    updates = {}
    for mapping in FIELD_MAPPING:
        value = getattr(imported, mapping.source)
        if value is not None:
            updates[mapping.target] = value
    updates["status"] = STATUS_CLEARED
    return transaction.model_copy(update=updates)


@dataclass
class ReconcileOutcome:
    """Result of applying a set of reconcile requests in memory."""

    transactions: list[Transaction]
    touched_docs: dict[str, ImportedTransactionDoc] = field(default_factory=dict)
    applied: int = 0
    skipped: list[str] = field(default_factory=list)


class ReconciliationMatcher:
    """
    Applies reconcile requests to a budget and its imported docs.

    Usage:
        matcher = ReconciliationMatcher(batch_size=50)
        outcome = matcher.apply(budget, imported_docs, requests)
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def apply(
        self,
        budget: Budget,
        imported_docs: list[ImportedTransactionDoc],
        requests: list[ReconcileRequest],
    ) -> ReconcileOutcome:
        """
        Apply all requests.

        Raises:
            NotFoundError: If any request names a budget transaction that is
                not in the budget. Inputs are left untouched.
        """
        transactions = list(budget.transactions)
        positions = {tx.id: index for index, tx in enumerate(transactions) if tx.id}

        docs = {doc.id: doc.model_copy(deep=True) for doc in imported_docs if doc.id}
        owners: dict[str, str] = {}
        for doc_id, doc in docs.items():
            for entry in doc.imported_transactions:
                # First document holding an id wins
                owners.setdefault(entry.id, doc_id)

        outcome = ReconcileOutcome(transactions=transactions)

        for start in range(0, len(requests), self._batch_size):
            chunk = requests[start:start + self._batch_size]
            for request in chunk:
                self._apply_one(budget, request, positions, docs, owners, outcome)
            logger.debug(
                "reconcile_chunk_applied",
                budget_id=budget.budget_id,
                chunk_start=start,
                chunk_size=len(chunk),
            )

        return outcome

    def _apply_one(
        self,
        budget: Budget,
        request: ReconcileRequest,
        positions: dict[str, int],
        docs: dict[str, ImportedTransactionDoc],
        owners: dict[str, str],
        outcome: ReconcileOutcome,
    ) -> None:
        position = positions.get(request.budget_transaction_id)
        if position is None:
            raise NotFoundError(
                f"Transaction {request.budget_transaction_id} not found in budget {budget.budget_id}"
            )

        doc_id = owners.get(request.imported_transaction_id)
        if doc_id is None:
            logger.warning(
                "imported_transaction_not_found",
                budget_id=budget.budget_id,
                imported_transaction_id=request.imported_transaction_id,
            )
            outcome.skipped.append(request.imported_transaction_id)
            return

        doc = docs[doc_id]
        entry_index = doc.find_entry_index(request.imported_transaction_id)
        entry = doc.imported_transactions[entry_index]

        flags = {}
        if request.match:
            outcome.transactions[position] = copy_matched_fields(
                entry, outcome.transactions[position]
            )
            flags["matched"] = True
        if request.ignore:
            flags["ignored"] = True

        doc.imported_transactions[entry_index] = entry.model_copy(update=flags)
        outcome.touched_docs[doc_id] = doc
        outcome.applied += 1
