"""Family, member, entity, account and snapshot routes (``/api/family``)."""

from fastapi import APIRouter, Depends

from familybudget.api.dependencies import get_components, get_current_user
from familybudget.models.common import UserRef
from familybudget.models.family import (
    Account,
    BatchDeleteSnapshotsRequest,
    CreateFamilyRequest,
    Entity,
    ImportAccountEntry,
    Snapshot,
)
from familybudget.models.user import AuthenticatedUser
from familybudget.orchestrator import AppComponents
from familybudget.services.errors import NotFoundError, UnauthorizedError


router = APIRouter(prefix="/api/family", tags=["family"])


@router.post("/create")
async def create_family(
    request: CreateFamilyRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.families.create_family(user, request)


@router.get("/{uid}")
async def get_user_family(
    uid: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    if uid != user.uid:
        raise UnauthorizedError("Users can only look up their own family")
    family = await components.families.get_user_family(uid)
    if family is None:
        raise NotFoundError(f"No family found for user {uid}")
    return family


# Members

@router.post("/{family_id}/members")
async def add_member(
    family_id: str,
    member: UserRef,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.families.add_member(family_id, member, user)


@router.put("/{family_id}/members/{member_uid}")
async def update_member(
    family_id: str,
    member_uid: str,
    member: UserRef,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    member = member.model_copy(update={"uid": member_uid})
    return await components.families.update_member(family_id, member, user)


@router.delete("/{family_id}/members/{member_uid}")
async def remove_member(
    family_id: str,
    member_uid: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.families.remove_member(family_id, member_uid, user)


# Entities

@router.post("/{family_id}/entities")
async def save_entity(
    family_id: str,
    entity: Entity,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.families.save_entity(family_id, entity, user)


@router.delete("/{family_id}/entities/{entity_id}")
async def remove_entity(
    family_id: str,
    entity_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    await components.families.remove_entity(family_id, entity_id, user)
    return {"message": "Entity removed"}


# Accounts

@router.get("/{family_id}/accounts")
async def get_accounts(
    family_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.accounts.get_accounts(family_id, user)


@router.post("/{family_id}/accounts")
async def save_account(
    family_id: str,
    account: Account,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.accounts.save_account(family_id, account, user)


@router.post("/{family_id}/accounts/import")
async def import_accounts(
    family_id: str,
    entries: list[ImportAccountEntry],
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    family = await components.accounts.import_accounts_and_snapshots(family_id, entries, user)
    return {"accounts": family.accounts, "snapshots": family.snapshots}


@router.get("/{family_id}/accounts/{account_id}")
async def get_account(
    family_id: str,
    account_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.accounts.get_account(family_id, account_id, user)


@router.delete("/{family_id}/accounts/{account_id}")
async def delete_account(
    family_id: str,
    account_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    await components.accounts.delete_account(family_id, account_id, user)
    return {"message": "Account deleted"}


# Snapshots

@router.get("/{family_id}/snapshots")
async def get_snapshots(
    family_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.accounts.get_snapshots(family_id, user)


@router.post("/{family_id}/snapshots")
async def save_snapshot(
    family_id: str,
    snapshot: Snapshot,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.accounts.save_snapshot(family_id, snapshot, user)


@router.post("/{family_id}/snapshots/batch-delete")
async def batch_delete_snapshots(
    family_id: str,
    request: BatchDeleteSnapshotsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    await components.accounts.batch_delete_snapshots(family_id, request.snapshot_ids, user)
    return {"message": "Snapshots deleted"}


@router.delete("/{family_id}/snapshots/{snapshot_id}")
async def delete_snapshot(
    family_id: str,
    snapshot_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    await components.accounts.delete_snapshot(family_id, snapshot_id, user)
    return {"message": "Snapshot deleted"}
