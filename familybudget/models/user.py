"""User models: stored profiles and the authenticated caller."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from familybudget.models.common import DocumentModel, utc_now


class UserData(DocumentModel):
    """Profile document in the ``users`` collection (document id = uid)."""

    uid: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(default_factory=utc_now)


class AuthenticatedUser(BaseModel):
    """
    The caller resolved from a verified bearer token.

    Every authorization check and every edit-history entry uses this
    identity as the actor.
    """

    uid: str = Field(..., min_length=1)
    email: str = ""
