"""Tests for UserEventPublisher — outbound schema, attributes, failure mapping."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from userrelay.bridge.transport import LocalTransport, TransportError
from userrelay.core.hasher import sha256_hex
from userrelay.core.publisher import PublishError, UserEventPublisher, serialize_change
from userrelay.models.users import Change, UserSnapshot

T0 = datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


def _user(**overrides) -> UserSnapshot:
    fields = {
        "id": "u1",
        "first_name": "Joe",
        "last_name": "Bloggs",
        "nickname": "jb",
        "email": "joe@example.com",
        "country": "UK",
        "created_at": T0,
        "updated_at": T0,
    }
    fields.update(overrides)
    return UserSnapshot(**fields)


class TestSerializeChange:
    def test_creation_omits_before(self):
        body = json.loads(serialize_change(Change(id="e1", after=_user())))
        assert "before" not in body
        assert body["after"]["id"] == "u1"
        assert body["after"]["first_name"] == "Joe"

    def test_deletion_omits_after(self):
        body = json.loads(serialize_change(Change(id="e2", before=_user())))
        assert "after" not in body
        assert body["before"]["email"] == "joe@example.com"

    def test_outbound_fields(self):
        body = json.loads(serialize_change(Change(id="e3", after=_user())))
        assert set(body["after"]) == {
            "id",
            "first_name",
            "last_name",
            "nickname",
            "email",
            "country",
            "created_at",
            "updated_at",
        }

    def test_credential_never_serialized(self):
        # Even an unredacted snapshot cannot leak the hash through the schema.
        body = serialize_change(Change(id="e4", after=_user(password_hash="secret")))
        assert b"password_hash" not in body
        assert b"secret" not in body

    def test_deletion_time_not_serialized(self):
        body = serialize_change(Change(id="e5", before=_user(deleted_at=T0)))
        assert b"deleted_at" not in body

    def test_timestamps_keep_microseconds(self):
        body = json.loads(serialize_change(Change(id="e6", after=_user())))
        parsed = datetime.fromisoformat(body["after"]["created_at"].replace("Z", "+00:00"))
        assert parsed == T0

    def test_canonical_bytes(self):
        change = Change(id="e7", before=_user(), after=_user(country="FR"))
        assert serialize_change(change) == serialize_change(change)
        assert b" " not in serialize_change(change)


class TestUserEventPublisher:
    def test_publish_returns_broker_id(self):
        transport = LocalTransport()
        message_id = UserEventPublisher(transport).publish(Change(id="e8", after=_user()))
        assert transport.published[0].message_id == message_id

    def test_attributes(self):
        transport = LocalTransport()
        UserEventPublisher(transport).publish(Change(id="inbound-42", after=_user()))
        published = transport.published[0]
        assert published.attributes["event_id"] == "inbound-42"
        assert published.attributes["content_sha256"] == sha256_hex(published.data)

    def test_transport_failure_raises_publish_error(self):
        transport = MagicMock()
        transport.publish.side_effect = TransportError("broker said no")
        publisher = UserEventPublisher(transport)
        with pytest.raises(PublishError, match="e9"):
            publisher.publish(Change(id="e9", after=_user()))

    def test_no_internal_retry(self):
        transport = MagicMock()
        transport.publish.side_effect = TransportError("down")
        with pytest.raises(PublishError):
            UserEventPublisher(transport).publish(Change(id="e10", after=_user()))
        assert transport.publish.call_count == 1
