"""
Data Models Package

This package contains all Pydantic models used in the Family Budget API.
All data flowing through the system must conform to these schemas.
"""

from familybudget.models.common import DocumentModel, UserRef, utc_now
from familybudget.models.budget import (
    STATUS_CLEARED,
    Budget,
    BudgetCategory,
    BudgetInfo,
    CategoryAllocation,
    ImportedTransaction,
    ImportedTransactionDoc,
    Merchant,
    ReconcileRequest,
    SharedBudget,
    Transaction,
    UpdateImportedTransactionRequest,
    UpdateSharedBudgetsRequest,
)
from familybudget.models.family import (
    LIABILITY_TYPES,
    Account,
    AccountDetails,
    BatchDeleteSnapshotsRequest,
    CreateFamilyRequest,
    CreateInviteRequest,
    Entity,
    Family,
    ImportAccountEntry,
    Invite,
    Snapshot,
    SnapshotAccount,
)
from familybudget.models.user import AuthenticatedUser, UserData
from familybudget.models.audit import EditAction, EditEvent

__all__ = [
    # Shared
    "DocumentModel",
    "UserRef",
    "utc_now",
    # Budget models
    "STATUS_CLEARED",
    "Budget",
    "BudgetCategory",
    "BudgetInfo",
    "CategoryAllocation",
    "ImportedTransaction",
    "ImportedTransactionDoc",
    "Merchant",
    "ReconcileRequest",
    "SharedBudget",
    "Transaction",
    "UpdateImportedTransactionRequest",
    "UpdateSharedBudgetsRequest",
    # Family models
    "LIABILITY_TYPES",
    "Account",
    "AccountDetails",
    "BatchDeleteSnapshotsRequest",
    "CreateFamilyRequest",
    "CreateInviteRequest",
    "Entity",
    "Family",
    "ImportAccountEntry",
    "Invite",
    "Snapshot",
    "SnapshotAccount",
    # User models
    "AuthenticatedUser",
    "UserData",
    # Edit history
    "EditAction",
    "EditEvent",
]
