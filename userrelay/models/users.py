"""Normalized user change models — the shape every source variant decodes into.

A ``UserSnapshot`` is a point-in-time copy of a user row/document.  A
``Change`` pairs the state before and after a single write.  Both are frozen
Pydantic models; pipeline stages derive new values with ``model_copy`` and
never mutate what they were given.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator


class UserSnapshot(BaseModel):
    """Immutable copy of a user's fields at one point in time."""

    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    email: str = ""
    password_hash: str | None = None  # credential material, cleared before publication
    country: str = ""
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None  # None = not (soft-)deleted

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Change(BaseModel):
    """A single user change captured from the source database.

    ``before`` is absent for creations, ``after`` is absent for hard
    deletions.  A change with neither side cannot be constructed.
    """

    model_config = ConfigDict(frozen=True)

    id: str  # broker message id of the change-log message
    before: UserSnapshot | None = None
    after: UserSnapshot | None = None

    @model_validator(mode="after")
    def _require_one_side(self) -> Change:
        if self.before is None and self.after is None:
            raise ValueError(
                f"Change {self.id!r} has neither a before nor an after snapshot"
            )
        return self

    @property
    def is_creation(self) -> bool:
        return self.before is None

    @property
    def is_deletion(self) -> bool:
        return self.after is None
