"""Profile routes for the calling user (``/api/users``)."""

from fastapi import APIRouter, Depends

from familybudget.api.dependencies import get_components, get_current_user
from familybudget.models.user import AuthenticatedUser, UserData
from familybudget.orchestrator import AppComponents
from familybudget.services.errors import NotFoundError


router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me")
async def get_me(
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    profile = await components.users.get_user(user.uid)
    if profile is None:
        raise NotFoundError(f"User {user.uid} not found")
    return profile


@router.post("/me")
async def save_me(
    profile: UserData,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    if not profile.email:
        profile = profile.model_copy(update={"email": user.email or None})
    return await components.users.save_user(user.uid, profile)
