"""
Shared model plumbing.

Stored documents use camelCase keys (``familyId``, ``memberUids``) while
Python code uses snake_case attributes. Every persisted model derives from
DocumentModel so the mapping is declared once.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class DocumentModel(BaseModel):
    """Base for models stored in (or embedded in) a document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_document(self, exclude: Optional[set[str]] = None) -> dict[str, Any]:
        """Serialize with stored (camelCase) keys, keeping datetimes native."""
        return self.model_dump(by_alias=True, exclude=exclude)

    @classmethod
    def from_document(cls, data: dict[str, Any], **extra: Any):
        """Build a model from a stored document, overlaying ``extra`` fields."""
        return cls.model_validate({**data, **extra})


class UserRef(DocumentModel):
    """Reference to a user embedded in family, entity and budget documents."""

    uid: str = Field(
        ...,
        min_length=1,
        description="Identity-provider user id"
    )
    email: Optional[str] = Field(
        default=None,
        description="Email address at the time the reference was written"
    )
    display_name: Optional[str] = None
    role: Optional[str] = Field(
        default=None,
        description="Free-form role label (e.g. 'owner', 'member')"
    )
