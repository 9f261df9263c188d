"""
Edit History Models

Every budget mutation leaves one EditEvent in the budget's
``editHistory`` sub-collection. This provides:
1. Who changed a shared budget, and when
2. A coarse action label for the change
3. A feed the client can poll for recent changes

DESIGN DECISION: Edit events are append-only. We never update or delete them.
"""

from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, Field

from familybudget.models.common import DocumentModel, utc_now


class EditAction(str, Enum):
    """Action labels recorded in a budget's edit history."""
    ADD_TRANSACTION = "add_transaction"
    UPDATE_TRANSACTION = "update_transaction"
    DELETE_TRANSACTION = "delete_transaction"
    UPDATE_BUDGET = "update_budget"


class EditEvent(DocumentModel):
    """
    A single edit-history entry.

    Frozen: once built it is only ever written, never changed.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(
        default="",
        description="Acting user id"
    )
    user_email: str = Field(
        default="",
        description="Acting user email"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the edit happened (UTC)"
    )
    action: EditAction = Field(
        ...,
        description="What kind of edit"
    )

    def to_document(self, exclude=None) -> dict:
        document = super().to_document(exclude)
        document["action"] = self.action.value
        return document

    def to_log_dict(self, budget_id: str) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "budget_id": budget_id,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
        }
