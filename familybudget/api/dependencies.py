"""
Request dependencies: the wired components and the authenticated caller.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from familybudget.models.user import AuthenticatedUser
from familybudget.orchestrator import AppComponents
from familybudget.services.errors import UnauthorizedError


BEARER_PREFIX = "bearer "


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def bearer_token(authorization: Optional[str]) -> str:
    """Token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        raise UnauthorizedError("Missing bearer token")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise UnauthorizedError("Missing bearer token")
    return token


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    components: AppComponents = Depends(get_components),
) -> AuthenticatedUser:
    return await components.verifier.verify(bearer_token(authorization))
