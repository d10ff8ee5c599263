"""Shared test fixtures for userrelay."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from userrelay.bridge.transport import LocalTransport
from userrelay.core.relay import ChangeRelay, build_relay
from userrelay.models.envelopes import EnvelopeVariant

USER_ID = "6f1c2b9e-3d4a-4b5c-8d7e-9f0a1b2c3d4e"
OBJECT_ID = "64b7f3c2a1d4e5f60718293a"
CREATED_AT_MICROS = 1_700_000_000_123_456
UPDATED_AT_MICROS = 1_700_000_500_654_321
DELETED_AT_MICROS = 1_700_001_000_000_001


# ---------------------------------------------------------------------------
# Wire payload factories — shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user_row() -> Callable[..., dict[str, Any]]:
    """Factory fixture: a relational ``users`` row with sensible defaults."""

    def _factory(**overrides: Any) -> dict[str, Any]:
        row: dict[str, Any] = {
            "id": USER_ID,
            "first_name": "Joe",
            "last_name": "Bloggs",
            "nickname": "jb",
            "email": "joe@example.com",
            "password_hash": "h1",
            "country": "UK",
            "created_at": CREATED_AT_MICROS,
            "updated_at": UPDATED_AT_MICROS,
            "deleted_at": None,
        }
        row.update(overrides)
        return row

    return _factory


def to_document(row: dict[str, Any]) -> dict[str, Any]:
    """Re-shape a relational row as the document store would capture it."""
    document = {k: v for k, v in row.items() if k not in ("id", "deleted_at")}
    document["_id"] = {"$oid": row["id"]}
    document["created_at"] = {"$date": row["created_at"]}
    document["updated_at"] = {"$date": row["updated_at"]}
    if row.get("deleted_at") is not None:
        document["deleted_at"] = {"$date": row["deleted_at"]}
    return document


@pytest.fixture
def make_relational_payload() -> Callable[..., bytes]:
    """Factory fixture: a relational-source change-log message."""

    def _factory(
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        table: str = "users",
        op: str = "u",
    ) -> bytes:
        envelope = {
            "schema": {"type": "struct", "optional": False},
            "payload": {
                "op": op,
                "source": {"db": "users", "schema": "public", "table": table},
                "before": before,
                "after": after,
                "ts_ms": 1_700_000_000_000,
            },
        }
        return json.dumps(envelope).encode("utf-8")

    return _factory


@pytest.fixture
def make_document_payload() -> Callable[..., bytes]:
    """Factory fixture: a document-store change-log message.

    Rows are given in relational shape and converted with ``to_document``.
    """

    def _factory(
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        collection: str = "users",
        op: str = "u",
    ) -> bytes:
        envelope = {
            "payload": {
                "op": op,
                "source": {"db": "users", "collection": collection},
                "before": json.dumps(to_document(before)) if before is not None else None,
                "after": json.dumps(to_document(after)) if after is not None else None,
            },
        }
        return json.dumps(envelope).encode("utf-8")

    return _factory


# ---------------------------------------------------------------------------
# Pipeline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def local_transport() -> LocalTransport:
    """Provide an in-process broker."""
    return LocalTransport(max_workers=4, poll_interval_seconds=0.005)


@pytest.fixture
def relay(local_transport: LocalTransport) -> ChangeRelay:
    """Provide a relational-variant relay publishing to the local transport."""
    return build_relay(local_transport, EnvelopeVariant.RELATIONAL, "users")


@pytest.fixture
def document_relay(local_transport: LocalTransport) -> ChangeRelay:
    """Provide a document-variant relay publishing to the local transport."""
    return build_relay(local_transport, EnvelopeVariant.DOCUMENT, "users")
