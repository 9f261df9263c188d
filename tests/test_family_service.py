"""Tests for families, members, entities and invites."""

import pytest

from familybudget.models import CreateFamilyRequest, CreateInviteRequest, Entity, Invite, UserRef, utc_now
from familybudget.services.errors import (
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
)
from familybudget.services.invite_service import InviteService
from familybudget.services.mail import MailSender

from conftest import MEMBER, OUTSIDER, OWNER


pytestmark = pytest.mark.asyncio


class BrokenMailSender(MailSender):
    async def send_invite(self, to_address, family_name, inviter_email, accept_url):
        raise RuntimeError("unexpected sender failure")


class TestFamilies:
    """Tests for family creation and lookup."""

    async def test_create_family(self, components):
        family = await components.families.create_family(
            OWNER, CreateFamilyRequest(name="  Rivera  ", email=OWNER.email)
        )
        assert family.name == "Rivera"
        assert family.owner_uid == OWNER.uid
        assert family.member_uids == [OWNER.uid]
        assert family.members[0].role == "owner"

        found = await components.families.get_user_family(OWNER.uid)
        assert found.id == family.id

    async def test_blank_name_is_invalid(self, components):
        with pytest.raises(InvalidRequestError):
            await components.families.create_family(OWNER, CreateFamilyRequest(name="   "))

    async def test_user_without_family(self, components):
        assert await components.families.get_user_family(OUTSIDER.uid) is None

    async def test_get_family_by_id(self, components, family):
        assert (await components.families.get_family_by_id(family.id)).name == family.name
        assert await components.families.get_family_by_id("ghost") is None


class TestMembers:
    """Tests for owner-only member management."""

    async def test_add_member(self, components, family):
        updated = await components.families.add_member(
            family.id, UserRef(uid=OUTSIDER.uid, email=OUTSIDER.email), OWNER
        )
        assert OUTSIDER.uid in updated.member_uids
        assert await components.families.get_user_family(OUTSIDER.uid) is not None

    async def test_add_existing_member_is_noop(self, components, family):
        updated = await components.families.add_member(
            family.id, UserRef(uid=MEMBER.uid, email="changed@example.com"), OWNER
        )
        assert [m.uid for m in updated.members] == [OWNER.uid, MEMBER.uid]
        assert updated.members[1].email == MEMBER.email

    async def test_non_owner_cannot_add(self, components, family):
        with pytest.raises(UnauthorizedError):
            await components.families.add_member(family.id, UserRef(uid=OUTSIDER.uid), MEMBER)

    async def test_update_member_in_place(self, components, family):
        updated = await components.families.update_member(
            family.id, UserRef(uid=MEMBER.uid, email=MEMBER.email, role="parent"), OWNER
        )
        assert [m.uid for m in updated.members] == [OWNER.uid, MEMBER.uid]
        assert updated.members[1].role == "parent"

    async def test_update_unknown_member(self, components, family):
        with pytest.raises(NotFoundError):
            await components.families.update_member(family.id, UserRef(uid="ghost"), OWNER)

    async def test_remove_member(self, components, family):
        updated = await components.families.remove_member(family.id, MEMBER.uid, OWNER)
        assert updated.member_uids == [OWNER.uid]
        assert [m.uid for m in updated.members] == [OWNER.uid]

    async def test_owner_cannot_be_removed(self, components, family):
        with pytest.raises(InvalidRequestError):
            await components.families.remove_member(family.id, OWNER.uid, OWNER)

    async def test_update_preserves_concurrent_additions(self, components, family):
        """An in-place update never drops a member added since the caller's read."""
        stale = await components.families.get_family_by_id(family.id)
        await components.families.add_member(family.id, UserRef(uid=OUTSIDER.uid), OWNER)
        await components.families.update_member(
            stale.id, UserRef(uid=MEMBER.uid, role="parent"), OWNER
        )
        current = await components.families.get_family_by_id(family.id)
        assert [m.uid for m in current.members] == [OWNER.uid, MEMBER.uid, OUTSIDER.uid]


class TestEntities:
    """Tests for member-managed entities."""

    async def test_save_and_replace_entity(self, components, family):
        entity = await components.families.save_entity(family.id, Entity(name="Household"), MEMBER)
        assert entity.id

        renamed = entity.model_copy(update={"name": "Rivera LLC", "type": "Business"})
        await components.families.save_entity(family.id, renamed, OWNER)

        current = await components.families.get_family_by_id(family.id)
        assert [(e.id, e.name, e.type) for e in current.entities] == [(entity.id, "Rivera LLC", "Business")]

    async def test_remove_entity(self, components, family):
        entity = await components.families.save_entity(family.id, Entity(name="Household"), MEMBER)
        await components.families.remove_entity(family.id, entity.id, MEMBER)
        assert (await components.families.get_family_by_id(family.id)).entities == []

        with pytest.raises(NotFoundError):
            await components.families.remove_entity(family.id, entity.id, MEMBER)

    async def test_outsider_cannot_save(self, components, family):
        with pytest.raises(UnauthorizedError):
            await components.families.save_entity(family.id, Entity(name="Nope"), OUTSIDER)


class TestInvites:
    """Tests for invite create/accept/list."""

    async def test_create_invite_sends_mail(self, components, family, mail_sender):
        invite = await components.invites.create_invite(
            OWNER, CreateInviteRequest(family_id=family.id, invitee_email="Outsider@Example.com")
        )
        assert invite.invitee_email == "outsider@example.com"
        assert invite.expires_at > utc_now()
        assert mail_sender.sent[0]["to"] == "outsider@example.com"
        assert mail_sender.sent[0]["accept_url"] == (
            f"https://budget.example.com/accept-invite?token={invite.id}"
        )

    async def test_mail_failure_rolls_back_invite(self, components, store, family, mail_sender):
        mail_sender.fail = True
        with pytest.raises(UpstreamError):
            await components.invites.create_invite(
                OWNER, CreateInviteRequest(family_id=family.id, invitee_email=OUTSIDER.email)
            )
        assert await store.query("invites") == []

    async def test_unexpected_sender_error_rolls_back_invite(self, components, store, family):
        service = InviteService(store, components.families, BrokenMailSender(), components.settings)
        with pytest.raises(UpstreamError):
            await service.create_invite(
                OWNER, CreateInviteRequest(family_id=family.id, invitee_email=OUTSIDER.email)
            )
        assert await store.query("invites") == []

    async def test_only_owner_can_invite(self, components, family):
        with pytest.raises(UnauthorizedError):
            await components.invites.create_invite(
                MEMBER, CreateInviteRequest(family_id=family.id, invitee_email=OUTSIDER.email)
            )

    async def test_cannot_invite_existing_member(self, components, family):
        with pytest.raises(InvalidRequestError):
            await components.invites.create_invite(
                OWNER, CreateInviteRequest(family_id=family.id, invitee_email=MEMBER.email)
            )

    async def test_accept_invite_joins_family(self, components, family):
        invite = await components.invites.create_invite(
            OWNER, CreateInviteRequest(family_id=family.id, invitee_email=OUTSIDER.email)
        )
        accepted = await components.invites.accept_invite(OUTSIDER, invite.id)
        assert accepted.accepted
        assert (await components.families.get_user_family(OUTSIDER.uid)).id == family.id

        with pytest.raises(InvalidRequestError):
            await components.invites.accept_invite(OUTSIDER, invite.id)

    async def test_accept_checks_email(self, components, family):
        invite = await components.invites.create_invite(
            OWNER, CreateInviteRequest(family_id=family.id, invitee_email="someone@example.com")
        )
        with pytest.raises(UnauthorizedError):
            await components.invites.accept_invite(OUTSIDER, invite.id)

    async def test_accept_unknown_token(self, components):
        with pytest.raises(NotFoundError):
            await components.invites.accept_invite(OUTSIDER, "no-such-token")

    async def test_accept_expired(self, components, store, family):
        invite = Invite(
            id="expired-token",
            family_id=family.id,
            inviter_uid=OWNER.uid,
            invitee_email=OUTSIDER.email,
            expires_at=utc_now(),
        )
        await store.set("invites", invite.id, invite.to_document())
        with pytest.raises(InvalidRequestError):
            await components.invites.accept_invite(OUTSIDER, invite.id)

    async def test_list_invites(self, components, family):
        invite = await components.invites.create_invite(
            OWNER, CreateInviteRequest(family_id=family.id, invitee_email=OUTSIDER.email)
        )
        assert [i.id for i in await components.invites.list_invites(OWNER)] == [invite.id]
        assert [i.id for i in await components.invites.list_invites(OUTSIDER)] == [invite.id]
        assert await components.invites.list_invites(MEMBER) == []

        await components.invites.accept_invite(OUTSIDER, invite.id)
        assert await components.invites.list_invites(OWNER) == []
