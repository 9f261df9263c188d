"""
Family Data Models

A Family groups the users who share budgets. Members, entities, accounts
and net-worth snapshots all live as lists on the family document and are
edited in place by index inside one atomic update.
"""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from familybudget.models.common import DocumentModel, UserRef, utc_now


# Account types that count against net worth.
LIABILITY_TYPES = frozenset({"CreditCard", "Loan"})


class Entity(DocumentModel):
    """A household or business unit inside a family."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(
        default="Family",
        description="Entity kind, e.g. 'Family' or 'Business'"
    )
    members: list[UserRef] = Field(default_factory=list)


# =============================================================================
# ACCOUNTS AND SNAPSHOTS
# =============================================================================

class AccountDetails(DocumentModel):
    interest_rate: Optional[float] = None
    appraised_value: Optional[float] = None
    address: Optional[str] = None


class Account(DocumentModel):
    """A bank, card, loan or property account tracked for net worth."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(
        ...,
        description="Account type, e.g. 'Bank', 'CreditCard', 'Loan', 'Property'"
    )
    category: Optional[str] = Field(
        default=None,
        pattern="^(Asset|Liability)$"
    )
    account_number: Optional[str] = None
    institution: Optional[str] = None
    balance: Optional[float] = None
    details: AccountDetails = Field(default_factory=AccountDetails)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @staticmethod
    def category_for(account_type: str) -> str:
        return "Liability" if account_type in LIABILITY_TYPES else "Asset"


class SnapshotAccount(DocumentModel):
    account_id: str
    account_name: Optional[str] = None
    type: Optional[str] = None
    value: float = 0.0


class Snapshot(DocumentModel):
    """Net worth across the family's accounts on one date."""

    id: Optional[str] = None
    date: str = Field(
        ...,
        description="Snapshot date (YYYY-MM-DD)"
    )
    accounts: list[SnapshotAccount] = Field(default_factory=list)
    net_worth: float = 0.0
    created_at: Optional[str] = None


class ImportAccountEntry(DocumentModel):
    """One row of a bulk account-balance import."""

    account_name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    date: str = Field(
        ...,
        description="Balance date (YYYY-MM-DD)"
    )
    balance: Optional[float] = None
    account_number: Optional[str] = None
    institution: Optional[str] = None
    interest_rate: Optional[float] = None
    appraised_value: Optional[float] = None
    address: Optional[str] = None


class BatchDeleteSnapshotsRequest(DocumentModel):
    snapshot_ids: list[str] = Field(default_factory=list)


# =============================================================================
# FAMILY
# =============================================================================

class Family(DocumentModel):
    """
    A family document.

    ``member_uids`` duplicates the uids in ``members`` so the store can
    answer array-membership queries.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    owner_uid: str = Field(..., min_length=1)
    members: list[UserRef] = Field(default_factory=list)
    member_uids: list[str] = Field(default_factory=list)
    entities: list[Entity] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    snapshots: list[Snapshot] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def is_member(self, uid: str) -> bool:
        return uid in self.member_uids

    def find_member_index(self, uid: str) -> int:
        for index, member in enumerate(self.members):
            if member.uid == uid:
                return index
        return -1


class CreateFamilyRequest(DocumentModel):
    """
    Body for creating a family.

    The name is validated by the service so a blank name is reported as an
    invalid request rather than a schema error.
    """

    name: str = ""
    email: Optional[str] = None


# =============================================================================
# INVITES
# =============================================================================

class Invite(DocumentModel):
    """
    A pending (or accepted) invitation to join a family.

    Stored in the ``invites`` collection; the document id is the token
    sent in the invitation link.
    """

    id: str = Field(..., min_length=1)
    family_id: str
    family_name: Optional[str] = None
    inviter_uid: str
    inviter_email: Optional[str] = None
    invitee_email: str
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime
    accepted: bool = False
    accepted_at: Optional[datetime] = None


class CreateInviteRequest(DocumentModel):
    family_id: str = Field(..., min_length=1)
    invitee_email: EmailStr
