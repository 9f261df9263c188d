"""
Edit History Logger

DESIGN DECISION: Every budget mutation is recorded twice:
1. In the budget's ``editHistory`` sub-collection (visible to the family)
2. In the structured local log (for debugging)

The edit-history logger:
- Is async to fit the request flow
- Never updates or deletes events
- Does not swallow storage failures: if the event cannot be written the
  caller sees a StorageError, after the failure is logged locally
"""

import logging
from datetime import datetime, timezone

import structlog

from familybudget.models.audit import EditAction, EditEvent
from familybudget.models.user import AuthenticatedUser
from familybudget.services.storage import (
    OP_GREATER_OR_EQUAL,
    DocumentStore,
    Filter,
    StorageError,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and therefore structlog) to stderr at ``level``."""
    logging.basicConfig(format="%(message)s", level=level.upper())


def edit_history_path(budget_id: str) -> str:
    """Collection path of a budget's edit history."""
    return f"budgets/{budget_id}/editHistory"


class EditHistoryLogger:
    """
    Appends and reads budget edit-history events.

    Usage:
        history = EditHistoryLogger(store)
        await history.log(budget_id, user, EditAction.ADD_TRANSACTION)
        events = await history.get_events(budget_id, since)
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._logger = structlog.get_logger(__name__)

    async def log(
        self,
        budget_id: str,
        user: AuthenticatedUser,
        action: EditAction,
    ) -> EditEvent:
        """
        Append one edit event for ``budget_id``.

        Always logs locally, then persists.

        Raises:
            StorageError: If the event could not be written
        """
        event = EditEvent(user_id=user.uid, user_email=user.email, action=action)
        self._logger.info("edit_event", **event.to_log_dict(budget_id))

        try:
            await self._store.set(
                edit_history_path(budget_id),
                self._store.new_id(),
                event.to_document(),
            )
        except StorageError as e:
            self._logger.error(
                "edit_event_storage_failed",
                budget_id=budget_id,
                action=action.value,
                error=str(e),
            )
            raise

        return event

    async def get_events(self, budget_id: str, since: datetime) -> list[EditEvent]:
        """
        Events for ``budget_id`` at or after ``since``, oldest first.

        A naive ``since`` is taken to be UTC.
        """
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        documents = await self._store.query(
            edit_history_path(budget_id),
            filters=[Filter("timestamp", OP_GREATER_OR_EQUAL, since)],
        )
        events = [EditEvent.from_document(doc.data) for doc in documents]
        events.sort(key=lambda event: event.timestamp)
        return events
