"""userrelay data models — all Pydantic v2, all frozen (immutable)."""

from userrelay.models.delivery import TERMINAL_STATES, VALID_TRANSITIONS, DeliveryState
from userrelay.models.envelopes import (
    DateRef,
    DocumentEnvelope,
    DocumentRow,
    EnvelopeVariant,
    ObjectIdRef,
    RelationalEnvelope,
    RelationalRow,
    SourceDescriptor,
)
from userrelay.models.events import PublicUser, UserEventMessage
from userrelay.models.users import Change, UserSnapshot

__all__ = [
    # users
    "UserSnapshot",
    "Change",
    # envelopes
    "EnvelopeVariant",
    "SourceDescriptor",
    "RelationalEnvelope",
    "RelationalRow",
    "DocumentEnvelope",
    "DocumentRow",
    "ObjectIdRef",
    "DateRef",
    # events
    "PublicUser",
    "UserEventMessage",
    # delivery
    "DeliveryState",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
]
