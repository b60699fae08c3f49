"""Base record model and utilities.

This module provides the shared base for stored records:
- new_id: string UUID generator
- utcnow: timezone-aware current time
- RecordModel: id and created_at fields
"""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    """Generate a new record ID.

    Returns:
        Random UUID4 as string
    """
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time in UTC.

    Returns:
        Timezone-aware datetime
    """
    return datetime.now(UTC)


class RecordModel(BaseModel):
    """Base for records held by the stores.

    Stores validate on assignment so field-level updates go through the
    same validators as construction.

    Example:
        >>> class Pattern(RecordModel):
        ...     name: str
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["RecordModel", "new_id", "utcnow"]
