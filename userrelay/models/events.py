"""Outbound public user events.

This is the contract with downstream consumers.  It deliberately carries
no credential material and no deletion timestamp: a missing ``before``
means the user was created, a missing ``after`` means the user was deleted.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from userrelay.models.users import Change, UserSnapshot


class PublicUser(BaseModel):
    """The consumer-facing view of a user."""

    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str
    last_name: str
    nickname: str
    email: str
    country: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_snapshot(cls, snapshot: UserSnapshot | None) -> PublicUser | None:
        if snapshot is None:
            return None
        return cls(
            id=snapshot.id,
            first_name=snapshot.first_name,
            last_name=snapshot.last_name,
            nickname=snapshot.nickname,
            email=snapshot.email,
            country=snapshot.country,
            created_at=snapshot.created_at,
            updated_at=snapshot.updated_at,
        )


class UserEventMessage(BaseModel):
    """Body of a message published to the public user-events topic."""

    model_config = ConfigDict(frozen=True)

    before: PublicUser | None = None
    after: PublicUser | None = None

    @classmethod
    def from_change(cls, change: Change) -> UserEventMessage:
        return cls(
            before=PublicUser.from_snapshot(change.before),
            after=PublicUser.from_snapshot(change.after),
        )
