"""Invite routes (``/api/invites``)."""

from fastapi import APIRouter, Depends

from familybudget.api.dependencies import get_components, get_current_user
from familybudget.models.family import CreateInviteRequest
from familybudget.models.user import AuthenticatedUser
from familybudget.orchestrator import AppComponents


router = APIRouter(prefix="/api/invites", tags=["invites"])


@router.post("")
async def create_invite(
    request: CreateInviteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.invites.create_invite(user, request)


@router.get("")
async def list_invites(
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.invites.list_invites(user)


@router.post("/{token}/accept")
async def accept_invite(
    token: str,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return await components.invites.accept_invite(user, token)
