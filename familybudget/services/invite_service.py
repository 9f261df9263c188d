"""
Invite Service

Family owners invite people by email; the invitee accepts with the token
from the invitation link.

Flow for creating an invite:
1. Check the caller owns the family
2. Write the pending invite (document id = token)
3. Send the invitation email
4. If sending fails, delete the invite and report an upstream failure

DESIGN DECISION: The invite is written before the email goes out so a
recipient can never hold a token that does not exist. The delete in step 4
is the compensating action that keeps a failed send from leaving an
orphaned pending invite behind.
"""

import secrets
from datetime import timedelta
from typing import Optional

import structlog

from familybudget.config import AppSettings, get_settings
from familybudget.models.common import UserRef, utc_now
from familybudget.models.family import CreateInviteRequest, Invite
from familybudget.models.user import AuthenticatedUser
from familybudget.services.errors import (
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
)
from familybudget.services.family_service import FamilyService
from familybudget.services.mail import MailSender
from familybudget.services.storage import OP_EQUAL, DocumentStore, Filter


INVITES = "invites"


class InviteService:
    """
    Creates, accepts and lists family invitations.

    Usage:
        service = InviteService(store, family_service, SmtpMailSender())
        invite = await service.create_invite(owner, CreateInviteRequest(...))
        await service.accept_invite(invitee, invite.id)
    """

    def __init__(
        self,
        store: DocumentStore,
        family_service: FamilyService,
        mail_sender: MailSender,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._families = family_service
        self._mail = mail_sender
        self._settings = settings or get_settings().app
        self._logger = structlog.get_logger(__name__)

    def accept_url(self, token: str) -> str:
        return f"{self._settings.invite_base_url}?token={token}"

    async def create_invite(
        self,
        user: AuthenticatedUser,
        request: CreateInviteRequest,
    ) -> Invite:
        """
        Raises:
            UnauthorizedError: If the caller does not own the family
            InvalidRequestError: If the invitee is already a member
            UpstreamError: If the email could not be sent (no invite remains)
        """
        family = await self._families.require_owner(request.family_id, user, "invite members")
        invitee_email = str(request.invitee_email).lower()
        if any((m.email or "").lower() == invitee_email for m in family.members):
            raise InvalidRequestError(f"{invitee_email} is already a member of this family")

        now = utc_now()
        invite = Invite(
            id=secrets.token_urlsafe(32),
            family_id=family.id,
            family_name=family.name,
            inviter_uid=user.uid,
            inviter_email=user.email,
            invitee_email=invitee_email,
            created_at=now,
            expires_at=now + timedelta(days=self._settings.invite_expiry_days),
        )
        await self._store.set(INVITES, invite.id, invite.to_document())

        try:
            await self._mail.send_invite(
                to_address=invitee_email,
                family_name=family.name,
                inviter_email=user.email,
                accept_url=self.accept_url(invite.id),
            )
        except Exception as e:
            # Any failure to dispatch leaves no pending invite behind
            await self._store.delete(INVITES, invite.id)
            self._logger.warning(
                "invite_rolled_back",
                family_id=family.id,
                invitee_email=invitee_email,
                error=str(e),
            )
            raise UpstreamError("Failed to send the invitation email") from e

        self._logger.info("invite_created", family_id=family.id, invitee_email=invitee_email)
        return invite

    async def accept_invite(self, user: AuthenticatedUser, token: str) -> Invite:
        """
        Join the invite's family as the caller.

        Raises:
            NotFoundError: If the token is unknown
            InvalidRequestError: If the invite was already accepted or has expired
            UnauthorizedError: If the caller's email is not the invitee's
        """
        data = await self._store.get(INVITES, token)
        if data is None:
            raise NotFoundError("Invite not found")
        invite = Invite.from_document(data, id=token)

        if invite.accepted:
            raise InvalidRequestError("Invite has already been accepted")
        if invite.expires_at <= utc_now():
            raise InvalidRequestError("Invite has expired")
        if user.email.lower() != invite.invitee_email.lower():
            raise UnauthorizedError("This invite was sent to a different email address")

        await self._families.join_family(
            invite.family_id,
            UserRef(uid=user.uid, email=user.email, role="member"),
        )

        invite = invite.model_copy(update={"accepted": True, "accepted_at": utc_now()})
        await self._store.set(
            INVITES,
            token,
            {"accepted": True, "acceptedAt": invite.accepted_at},
            merge=True,
        )
        self._logger.info("invite_accepted", family_id=invite.family_id, uid=user.uid)
        return invite

    async def list_invites(self, user: AuthenticatedUser) -> list[Invite]:
        """Pending invites the caller sent plus pending invites addressed to them."""
        sent = await self._store.query(
            INVITES,
            filters=[Filter("inviterUid", OP_EQUAL, user.uid), Filter("accepted", OP_EQUAL, False)],
        )
        received = []
        if user.email:
            received = await self._store.query(
                INVITES,
                filters=[
                    Filter("inviteeEmail", OP_EQUAL, user.email.lower()),
                    Filter("accepted", OP_EQUAL, False),
                ],
            )

        invites = {}
        for doc in sent + received:
            invites[doc.id] = Invite.from_document(doc.data, id=doc.id)
        return sorted(invites.values(), key=lambda invite: invite.created_at)
