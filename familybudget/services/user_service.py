"""User profile documents (collection ``users``, document id = uid)."""

from typing import Optional

from familybudget.models.user import UserData
from familybudget.services.storage import OP_EQUAL, DocumentStore, Filter


USERS = "users"


class UserService:

    def __init__(self, store: DocumentStore):
        self._store = store

    async def get_user(self, uid: str) -> Optional[UserData]:
        data = await self._store.get(USERS, uid)
        if data is None:
            return None
        return UserData.from_document(data)

    async def get_user_by_email(self, email: str) -> Optional[UserData]:
        documents = await self._store.query(
            USERS,
            filters=[Filter("email", OP_EQUAL, email)],
            limit=1,
        )
        if not documents:
            return None
        return UserData.from_document(documents[0].data)

    async def save_user(self, uid: str, user: UserData) -> UserData:
        """
        Merge ``user`` into the profile.

        The uid always matches the key, unset fields are left alone and
        ``createdAt`` is only written the first time.
        """
        user = user.model_copy(update={"uid": uid})
        fields = {
            key: value
            for key, value in user.to_document(exclude={"created_at"}).items()
            if value is not None
        }
        await self._store.set(USERS, uid, fields, merge=True)
        data = await self._store.get(USERS, uid)
        if "createdAt" not in data:
            await self._store.set(USERS, uid, {"createdAt": user.created_at}, merge=True)
            data["createdAt"] = user.created_at
        return UserData.from_document(data)
