"""
Services package.

Service classes live in their own modules (budget_service, family_service,
...) and are wired together by familybudget.orchestrator. This package
exports the shared exceptions.
"""

from familybudget.services.errors import (
    BudgetApiError,
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
)
from familybudget.services.storage import StorageError

__all__ = [
    "BudgetApiError",
    "InvalidRequestError",
    "NotFoundError",
    "StorageError",
    "UnauthorizedError",
    "UpstreamError",
]
