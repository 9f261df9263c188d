"""
Main Orchestrator for the Family Budget API

This module ties together all the components: the document store, the
edit-history logger, the reconciliation matcher and the services that the
HTTP layer delegates to.

DESIGN DECISION: The orchestrator is the only place that picks concrete
backends. Services receive their collaborators, so the same wiring runs
against Firestore in production and the in-memory store in tests.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from familybudget.audit import EditHistoryLogger
from familybudget.config import AppSettings, get_settings
from familybudget.ledger import ReconciliationMatcher
from familybudget.services.account_service import AccountService
from familybudget.services.auth import FirebaseTokenVerifier, TokenVerifier
from familybudget.services.budget_service import BudgetService
from familybudget.services.family_service import FamilyService
from familybudget.services.invite_service import InviteService
from familybudget.services.mail import MailSender, SmtpMailSender
from familybudget.services.storage import DocumentStore, MemoryDocumentStore
from familybudget.services.user_service import UserService


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a request handler may need."""

    settings: AppSettings
    store: DocumentStore
    history: EditHistoryLogger
    families: FamilyService
    budgets: BudgetService
    accounts: AccountService
    users: UserService
    invites: InviteService
    verifier: TokenVerifier


def create_store(settings: AppSettings) -> DocumentStore:
    """Build the document store named by ``storage_backend``."""
    if settings.storage_backend == "memory":
        logger.warning("using_memory_store", environment=settings.app_environment)
        return MemoryDocumentStore()

    # Imported here so the memory backend runs without the Firestore SDK configured
    from familybudget.services.storage.firestore import FirestoreDocumentStore

    return FirestoreDocumentStore()


def create_app_components(
    store: Optional[DocumentStore] = None,
    verifier: Optional[TokenVerifier] = None,
    mail_sender: Optional[MailSender] = None,
    settings: Optional[AppSettings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Document store (default: chosen by settings)
        verifier: Bearer token verifier (default: Firebase)
        mail_sender: Invitation mail sender (default: SMTP)
        settings: Application settings (default: from the environment)

    Returns:
        The wired components
    """
    settings = settings or get_settings().app
    store = store or create_store(settings)

    history = EditHistoryLogger(store)
    matcher = ReconciliationMatcher(batch_size=settings.reconcile_batch_size)
    families = FamilyService(store)

    components = AppComponents(
        settings=settings,
        store=store,
        history=history,
        families=families,
        budgets=BudgetService(store, families, history, matcher),
        accounts=AccountService(store, families),
        users=UserService(store),
        invites=InviteService(store, families, mail_sender or SmtpMailSender(), settings),
        verifier=verifier or FirebaseTokenVerifier(),
    )
    logger.info(
        "components_created",
        storage_backend=type(store).__name__,
        reconcile_batch_size=matcher.batch_size,
    )
    return components
