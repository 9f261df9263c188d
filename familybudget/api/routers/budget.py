"""Budget ledger routes (``/api/budget``)."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from familybudget.api.dependencies import get_components, get_current_user
from familybudget.models.budget import (
    Budget,
    ImportedTransactionDoc,
    ReconcileRequest,
    Transaction,
    UpdateImportedTransactionRequest,
    UpdateSharedBudgetsRequest,
)
from familybudget.models.user import AuthenticatedUser
from familybudget.orchestrator import AppComponents


router = APIRouter(prefix="/api/budget", tags=["budget"])


@router.get("/ping")
async def ping():
    return {"message": "pong"}


@router.get("/accessible")
async def load_accessible_budgets(
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.load_accessible_budgets(user)


# Shared budgets

@router.get("/shared")
async def get_shared_budgets(
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.get_shared_budgets(user)


@router.post("/shared")
async def update_shared_budgets(
    request: UpdateSharedBudgetsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.update_shared_budgets(
        user, request.shared_uid, request.budget_ids
    )


@router.post("/shared/remove")
async def remove_shared_budgets(
    request: UpdateSharedBudgetsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.remove_shared_budgets(
        user, request.shared_uid, request.budget_ids
    )


# Imported transactions

@router.get("/imported-transactions")
async def get_imported_transactions(
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.get_imported_transactions(user)


@router.post("/imported-transactions")
async def save_imported_transactions(
    doc: ImportedTransactionDoc,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    doc_id = await components.budgets.save_imported_transactions(user, doc)
    return {"docId": doc_id}


@router.put("/imported-transactions/{doc_id}/{transaction_id}")
async def update_imported_transaction(
    doc_id: str,
    transaction_id: str,
    request: UpdateImportedTransactionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.update_imported_transaction(
        doc_id, transaction_id, request, user
    )


# Budgets and transactions

@router.get("/{budget_id}")
async def get_budget(
    budget_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.get_budget(budget_id, user)


@router.post("/{budget_id}")
async def save_budget(
    budget_id: str,
    budget: Budget,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.save_budget(budget_id, budget, user)


@router.get("/{budget_id}/edit-history")
async def get_edit_history(
    budget_id: str,
    since: Optional[datetime] = Query(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.get_edit_history(
        budget_id,
        user,
        since=since,
        days=components.settings.edit_history_days,
    )


@router.post("/{budget_id}/transactions")
async def add_transaction(
    budget_id: str,
    transaction: Transaction,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.budgets.add_transaction(budget_id, transaction, user)


@router.put("/{budget_id}/transactions/{transaction_id}")
async def save_transaction(
    budget_id: str,
    transaction_id: str,
    transaction: Transaction,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    transaction = transaction.model_copy(update={"id": transaction_id})
    return await components.budgets.save_transaction(budget_id, transaction, user)


@router.delete("/{budget_id}/transactions/{transaction_id}")
async def delete_transaction(
    budget_id: str,
    transaction_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    await components.budgets.delete_transaction(budget_id, transaction_id, user)
    return {"message": "Transaction deleted"}


@router.post("/{budget_id}/batch-reconcile")
async def batch_reconcile(
    budget_id: str,
    requests: list[ReconcileRequest],
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    outcome = await components.budgets.batch_reconcile(budget_id, requests, user)
    return {"applied": outcome.applied, "skipped": outcome.skipped}
