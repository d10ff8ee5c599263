"""Publisher — serializes sanitized changes and hands them to the broker.

The body is the canonical JSON of a ``UserEventMessage``; absent sides are
omitted.  Two attributes travel with it:

* ``event_id`` — the id of the inbound change-log message, so consumers can
  de-duplicate redeliveries;
* ``content_sha256`` — SHA-256 of the body.

``publish`` blocks until the broker confirms.  It never retries: a failure
surfaces as ``PublishError`` and the caller decides what happens next.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from userrelay.bridge.transport import Transport, TransportError
from userrelay.core.hasher import canonical_json_bytes, sha256_hex
from userrelay.models.events import UserEventMessage
from userrelay.models.users import Change

logger = logging.getLogger(__name__)


class PublishError(RuntimeError):
    """Raised when a change could not be serialized or published."""


def serialize_change(change: Change) -> bytes:
    """Render *change* as the outbound event body (canonical JSON)."""
    message = UserEventMessage.from_change(change)
    return canonical_json_bytes(message.model_dump(mode="json", exclude_none=True))


class UserEventPublisher:
    """Publishes public user events to the outbound topic.

    Parameters
    ----------
    transport:
        Anything exposing ``publish(data, attributes) -> message_id`` that
        blocks until the broker confirms.  Must be safe to call from
        several threads at once.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def publish(self, change: Change) -> str:
        """Publish *change* and return the broker-assigned message id.

        Raises
        ------
        PublishError
            On any serialization or transport failure.
        """
        try:
            data = serialize_change(change)
        except (ValidationError, TypeError, ValueError) as exc:
            raise PublishError(f"Cannot serialize change {change.id}: {exc}") from exc

        attributes = {"event_id": change.id, "content_sha256": sha256_hex(data)}
        try:
            message_id = self._transport.publish(data, attributes)
        except TransportError as exc:
            raise PublishError(f"Error sending user event {change.id}: {exc}") from exc

        logger.info("Published change %s as message %s", change.id, message_id)
        return message_id
