"""
Budget Data Models

A Budget is one household's plan for one month: income target, category
targets, the month's transactions and the merchant usage index derived
from them. Imported transactions are bank-statement lines waiting to be
reconciled against budget transactions.

DESIGN DECISION: Amounts are floats because the document store has no
decimal type. Calendar dates on transactions stay ISO "YYYY-MM-DD" strings,
exactly as the client sends them.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from familybudget.models.common import DocumentModel, UserRef, utc_now


# Status code set on a budget transaction once it is matched to a bank line.
STATUS_CLEARED = "C"


# =============================================================================
# BUDGET
# =============================================================================

class CategoryAllocation(DocumentModel):
    """Part of a transaction's amount assigned to one budget category."""

    category: str = Field(..., min_length=1)
    amount: float = 0.0


class BudgetCategory(DocumentModel):
    """A category line in the budget with its monthly target."""

    name: str = Field(..., min_length=1, max_length=100)
    target: float = 0.0
    group: Optional[str] = None
    is_fund: bool = Field(
        default=False,
        description="Fund categories carry their balance over month to month"
    )


class Transaction(DocumentModel):
    """
    A budget transaction.

    The id is assigned on first save and never changes afterwards.
    The account/posted/imported fields are bank provenance filled in by
    reconciliation.
    """

    id: Optional[str] = None
    date: Optional[str] = Field(
        default=None,
        description="Transaction date (YYYY-MM-DD)"
    )
    budget_month: Optional[str] = None
    merchant: Optional[str] = Field(
        default=None,
        max_length=200,
        description="User-facing merchant label (feeds the merchant index)"
    )
    categories: list[CategoryAllocation] = Field(default_factory=list)
    amount: float = 0.0
    notes: Optional[str] = None
    recurring: bool = False
    recurring_interval: Optional[str] = None
    user_id: Optional[str] = None
    is_income: bool = False

    # Bank provenance
    account_source: Optional[str] = None
    account_number: Optional[str] = None
    posted_date: Optional[str] = None
    imported_merchant: Optional[str] = Field(
        default=None,
        description="Payee text from the bank statement, separate from merchant"
    )
    status: Optional[str] = None
    check_number: Optional[str] = None


class Merchant(DocumentModel):
    """Entry in a budget's merchant usage index."""

    name: str = Field(..., min_length=1)
    usage_count: int = Field(default=1, ge=1)


class Budget(DocumentModel):
    """
    One month's budget.

    Stored in the ``budgets`` collection under the composite key
    ``{owner uid}_{month}``. ``budget_id`` mirrors the document id and is
    not written into the document body.
    """

    budget_id: Optional[str] = None
    family_id: str = Field(..., min_length=1)
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the budget"
    )
    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Budget month (YYYY-MM)"
    )
    label: Optional[str] = None
    income_target: float = 0.0
    categories: list[BudgetCategory] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    merchants: list[Merchant] = Field(default_factory=list)

    # Sharing metadata
    shared_with: list[UserRef] = Field(default_factory=list)
    shared_with_ids: list[str] = Field(default_factory=list)

    @staticmethod
    def make_id(owner_uid: str, month: str) -> str:
        """Composite document key for an owner's budget month."""
        return f"{owner_uid}_{month}"

    def find_transaction_index(self, transaction_id: Optional[str]) -> int:
        """Index of the transaction with this id, or -1."""
        if transaction_id is None:
            return -1
        for index, transaction in enumerate(self.transactions):
            if transaction.id == transaction_id:
                return index
        return -1

    def to_document(self, exclude: Optional[set[str]] = None) -> dict:
        return super().to_document(exclude={"budget_id"} | (exclude or set()))


class BudgetInfo(DocumentModel):
    """Summary row returned when listing the budgets a user can open."""

    budget_id: str
    family_id: str
    user_id: str
    month: str
    label: Optional[str] = None
    is_owner: bool = False


class SharedBudget(DocumentModel):
    """Budgets an owner has shared with one other user."""

    user_id: str
    owner_uid: str
    budget_ids: list[str] = Field(default_factory=list)


class UpdateSharedBudgetsRequest(DocumentModel):
    """Body for sharing additional budgets with a user."""

    shared_uid: str = Field(..., min_length=1)
    budget_ids: list[str] = Field(default_factory=list)


# =============================================================================
# IMPORTED TRANSACTIONS
# =============================================================================

class ImportedTransaction(DocumentModel):
    """
    A bank-statement line.

    ``matched`` and ``ignored`` are independent flags; a line can be both.
    """

    id: str = Field(..., min_length=1)
    account_id: Optional[str] = None
    account_number: Optional[str] = None
    account_source: Optional[str] = None
    payee: Optional[str] = None
    posted_date: Optional[str] = None
    amount: Optional[float] = None
    debit_amount: Optional[float] = None
    credit_amount: Optional[float] = None
    status: Optional[str] = None
    check_number: Optional[str] = None
    matched: bool = False
    ignored: bool = False


class ImportedTransactionDoc(DocumentModel):
    """One statement import: a container of imported transactions."""

    id: Optional[str] = None
    user_id: Optional[str] = None
    family_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    imported_transactions: list[ImportedTransaction] = Field(default_factory=list)

    def find_entry_index(self, transaction_id: str) -> int:
        """Index of the imported transaction with this id, or -1."""
        for index, entry in enumerate(self.imported_transactions):
            if entry.id == transaction_id:
                return index
        return -1


class UpdateImportedTransactionRequest(DocumentModel):
    """Flags to set on one imported transaction; None leaves a flag alone."""

    matched: Optional[bool] = None
    ignored: Optional[bool] = None


class ReconcileRequest(DocumentModel):
    """Pair one budget transaction with one imported transaction."""

    budget_transaction_id: str = Field(..., min_length=1)
    imported_transaction_id: str = Field(..., min_length=1)
    match: bool = True
    ignore: bool = False
