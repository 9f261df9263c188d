"""
Family Service

Families group the users who share budgets. Members, entities, accounts
and snapshots are lists on the family document.

DESIGN DECISION: Every list edit is an index-addressed in-place change
made inside one store transaction. We never remove an element and re-add
a modified copy in two writes.
"""

from typing import Callable, Optional

import structlog

from familybudget.models.common import UserRef, utc_now
from familybudget.models.family import CreateFamilyRequest, Entity, Family
from familybudget.models.user import AuthenticatedUser
from familybudget.services.errors import (
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
)
from familybudget.services.storage import OP_ARRAY_CONTAINS, DocumentStore, Filter


FAMILIES = "families"

# A family change returns False when it turned out to be a no-op.
FamilyChange = Callable[[Family], Optional[bool]]


class FamilyService:
    """
    Family CRUD and membership management.

    Owner-only operations: add/update/remove member.
    Member operations: save/remove entity.
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def get_user_family(self, uid: str) -> Optional[Family]:
        """First family that lists ``uid`` as a member, or None."""
        documents = await self._store.query(
            FAMILIES,
            filters=[Filter("memberUids", OP_ARRAY_CONTAINS, uid)],
            limit=1,
        )
        if not documents:
            return None
        return Family.from_document(documents[0].data, id=documents[0].id)

    async def get_family_by_id(self, family_id: str) -> Optional[Family]:
        data = await self._store.get(FAMILIES, family_id)
        if data is None:
            return None
        return Family.from_document(data, id=family_id)

    async def require_family(self, family_id: str) -> Family:
        family = await self.get_family_by_id(family_id)
        if family is None:
            raise NotFoundError(f"Family {family_id} not found")
        return family

    async def is_member(self, family_id: str, uid: str) -> bool:
        family = await self.get_family_by_id(family_id)
        return family is not None and family.is_member(uid)

    async def require_member(self, family_id: str, user: AuthenticatedUser) -> Family:
        family = await self.require_family(family_id)
        if not family.is_member(user.uid):
            raise UnauthorizedError("User not part of this family")
        return family

    async def require_owner(self, family_id: str, user: AuthenticatedUser, action: str) -> Family:
        family = await self.get_family_by_id(family_id)
        if family is None or family.owner_uid != user.uid:
            raise UnauthorizedError(f"Only the family owner can {action}")
        return family

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def update_family(self, family_id: str, change: FamilyChange) -> Family:
        """
        Apply ``change`` to the family inside one atomic update.

        ``change`` edits the Family in place; it may raise to abort.

        Raises:
            NotFoundError: If the family does not exist
        """

        def mutate(data):
            if data is None:
                raise NotFoundError(f"Family {family_id} not found")
            family = Family.from_document(data, id=family_id)
            if change(family) is False:
                return data
            family.updated_at = utc_now()
            return family.to_document()

        document = await self._store.transact(FAMILIES, family_id, mutate)
        return Family.from_document(document, id=family_id)

    async def create_family(
        self,
        user: AuthenticatedUser,
        request: CreateFamilyRequest,
    ) -> Family:
        """
        Create a family owned by ``user``, with ``user`` as its only member.

        Raises:
            InvalidRequestError: If the name is blank
        """
        name = (request.name or "").strip()
        if not name:
            raise InvalidRequestError("Family name is required")

        family = Family(
            id=self._store.new_id(),
            name=name,
            owner_uid=user.uid,
            members=[UserRef(uid=user.uid, email=request.email or user.email, role="owner")],
            member_uids=[user.uid],
        )
        await self._store.set(FAMILIES, family.id, family.to_document())
        self._logger.info("family_created", family_id=family.id, owner_uid=user.uid)
        return family

    async def join_family(self, family_id: str, member: UserRef) -> Family:
        """Add ``member`` without an ownership check (used by invite acceptance)."""

        def change(family: Family) -> bool:
            if family.find_member_index(member.uid) >= 0:
                return False
            family.members.append(member)
            if member.uid not in family.member_uids:
                family.member_uids.append(member.uid)
            return True

        family = await self.update_family(family_id, change)
        self._logger.info("family_member_added", family_id=family_id, member_uid=member.uid)
        return family

    async def add_member(
        self,
        family_id: str,
        member: UserRef,
        user: AuthenticatedUser,
    ) -> Family:
        """Owner adds a member. Adding an existing member is a no-op."""
        await self.require_owner(family_id, user, "add members")
        return await self.join_family(family_id, member)

    async def update_member(
        self,
        family_id: str,
        member: UserRef,
        user: AuthenticatedUser,
    ) -> Family:
        """
        Owner replaces a member's reference in place.

        Raises:
            NotFoundError: If the uid is not a member
        """
        await self.require_owner(family_id, user, "update members")

        def change(family: Family) -> None:
            index = family.find_member_index(member.uid)
            if index < 0:
                raise NotFoundError(f"Member {member.uid} not found in family {family_id}")
            family.members[index] = member

        return await self.update_family(family_id, change)

    async def remove_member(
        self,
        family_id: str,
        member_uid: str,
        user: AuthenticatedUser,
    ) -> Family:
        """
        Owner removes a member. Removing a non-member is a no-op.

        Raises:
            InvalidRequestError: If asked to remove the owner
        """
        family = await self.require_owner(family_id, user, "remove members")
        if member_uid == family.owner_uid:
            raise InvalidRequestError("The family owner cannot be removed")

        def change(family: Family) -> bool:
            before = len(family.members)
            family.members = [m for m in family.members if m.uid != member_uid]
            family.member_uids = [uid for uid in family.member_uids if uid != member_uid]
            return len(family.members) != before

        family = await self.update_family(family_id, change)
        self._logger.info("family_member_removed", family_id=family_id, member_uid=member_uid)
        return family

    async def save_entity(
        self,
        family_id: str,
        entity: Entity,
        user: AuthenticatedUser,
    ) -> Entity:
        """Insert an entity, or replace the one with the same id in place."""
        await self.require_member(family_id, user)
        if entity.id is None:
            entity = entity.model_copy(update={"id": self._store.new_id()})

        def change(family: Family) -> None:
            for index, existing in enumerate(family.entities):
                if existing.id == entity.id:
                    family.entities[index] = entity
                    return
            family.entities.append(entity)

        await self.update_family(family_id, change)
        return entity

    async def remove_entity(
        self,
        family_id: str,
        entity_id: str,
        user: AuthenticatedUser,
    ) -> None:
        """
        Raises:
            NotFoundError: If no entity has this id
        """
        await self.require_member(family_id, user)

        def change(family: Family) -> None:
            remaining = [e for e in family.entities if e.id != entity_id]
            if len(remaining) == len(family.entities):
                raise NotFoundError(f"Entity {entity_id} not found in family {family_id}")
            family.entities = remaining

        await self.update_family(family_id, change)
