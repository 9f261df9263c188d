"""
Shared fixtures.

Everything runs against the in-memory document store with a fake token
verifier and a fake mail sender, so no test touches the network.
"""

import pytest
import pytest_asyncio

from familybudget.config import AppSettings
from familybudget.models import AuthenticatedUser, Budget, CreateFamilyRequest, UserRef
from familybudget.orchestrator import create_app_components
from familybudget.services.auth import TokenVerifier
from familybudget.services.errors import UnauthorizedError
from familybudget.services.mail import MailError, MailSender
from familybudget.services.storage import MemoryDocumentStore


OWNER = AuthenticatedUser(uid="owner-1", email="owner@example.com")
MEMBER = AuthenticatedUser(uid="member-1", email="member@example.com")
OUTSIDER = AuthenticatedUser(uid="outsider-1", email="outsider@example.com")

MONTH = "2024-06"


class FakeVerifier(TokenVerifier):
    """Accepts ``token-<uid>`` for every known user."""

    def __init__(self, users=(OWNER, MEMBER, OUTSIDER)):
        self.users = {f"token-{user.uid}": user for user in users}

    async def verify(self, token: str) -> AuthenticatedUser:
        if token not in self.users:
            raise UnauthorizedError("Invalid or expired token")
        return self.users[token]


class FakeMailSender(MailSender):
    """Records invitations; raises MailError when ``fail`` is set."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send_invite(self, to_address, family_name, inviter_email, accept_url):
        if self.fail:
            raise MailError("SMTP relay unavailable")
        self.sent.append({
            "to": to_address,
            "family_name": family_name,
            "inviter_email": inviter_email,
            "accept_url": accept_url,
        })


def auth_header(user: AuthenticatedUser) -> dict:
    return {"Authorization": f"Bearer token-{user.uid}"}


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def mail_sender():
    return FakeMailSender()


@pytest.fixture
def app_settings():
    return AppSettings(
        storage_backend="memory",
        reconcile_batch_size=50,
        invite_base_url="https://budget.example.com/accept-invite",
    )


@pytest.fixture
def components(store, mail_sender, app_settings):
    return create_app_components(
        store=store,
        verifier=FakeVerifier(),
        mail_sender=mail_sender,
        settings=app_settings,
    )


@pytest_asyncio.fixture
async def family(components):
    """A family owned by OWNER with MEMBER joined."""
    created = await components.families.create_family(
        OWNER, CreateFamilyRequest(name="Rivera Household", email=OWNER.email)
    )
    return await components.families.join_family(
        created.id, UserRef(uid=MEMBER.uid, email=MEMBER.email, role="member")
    )


@pytest_asyncio.fixture
async def budget(components, store, family):
    """An empty June budget owned by OWNER in ``family``."""
    budget = Budget(
        budget_id=Budget.make_id(OWNER.uid, MONTH),
        family_id=family.id,
        user_id=OWNER.uid,
        month=MONTH,
        label="June",
    )
    await store.set("budgets", budget.budget_id, budget.to_document())
    return budget
