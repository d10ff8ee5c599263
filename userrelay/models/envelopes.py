"""Inbound change-log envelopes as emitted by the replication connector.

Two wire variants exist and are selected by configuration:

* ``RELATIONAL`` — rows are embedded objects, the source names a ``table``,
  timestamps are integer microseconds since the epoch.
* ``DOCUMENT`` — rows are JSON-encoded strings, the source names a
  ``collection``, the id is wrapped as ``{"$oid": ...}`` and timestamps as
  ``{"$date": ...}``.

Envelopes are validated in two passes.  The outer envelope keeps the rows
untyped so that messages from unrelated tables are discarded before their
shape is checked; the row models below are applied only to messages from
the target entity.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator


class EnvelopeVariant(str, Enum):
    """The supported change-log wire variants."""

    RELATIONAL = "relational"
    DOCUMENT = "document"


class SourceDescriptor(BaseModel):
    """Where a change-log message originated.

    Relational connectors fill ``table``, document connectors fill
    ``collection``; ``entity_name`` returns whichever is set.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    db: str = ""
    schema_name: str = Field(default="", alias="schema")
    table: str | None = None
    collection: str | None = None

    @property
    def entity_name(self) -> str | None:
        return self.table if self.table is not None else self.collection


# ---------------------------------------------------------------------------
# Outer envelopes
# ---------------------------------------------------------------------------


class RelationalPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    op: str = ""
    source: SourceDescriptor
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None


class RelationalEnvelope(BaseModel):
    """Relational-source envelope: ``{"payload": {...}}``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    payload: RelationalPayload


class DocumentPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    op: str = ""
    source: SourceDescriptor
    before: str | None = None  # JSON-encoded document
    after: str | None = None  # JSON-encoded document


class DocumentEnvelope(BaseModel):
    """Document-store envelope: ``{"payload": {...}}`` with stringified rows."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    payload: DocumentPayload


# ---------------------------------------------------------------------------
# Row shapes
# ---------------------------------------------------------------------------


class RelationalRow(BaseModel):
    """A ``users`` row as captured from the relational source."""

    model_config = ConfigDict(frozen=True, extra="ignore", strict=True)

    id: str
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    email: str = ""
    password_hash: str | None = None
    country: str = ""
    created_at: StrictInt  # microseconds since epoch
    updated_at: StrictInt
    deleted_at: StrictInt | None = None

    # Connectors emit JSON null for empty text columns.
    @field_validator("first_name", "last_name", "nickname", "email", "country", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ObjectIdRef(BaseModel):
    """Extended-JSON object id: ``{"$oid": "<24 hex chars>"}``."""

    model_config = ConfigDict(frozen=True, strict=True)

    oid: str = Field(alias="$oid")


class DateRef(BaseModel):
    """Extended-JSON date wrapping microseconds since epoch.

    Accepts both the relaxed form ``{"$date": 1700000000000000}`` and the
    canonical form ``{"$date": {"$numberLong": "1700000000000000"}}``.
    """

    model_config = ConfigDict(frozen=True)

    date: int = Field(alias="$date")

    @field_validator("date", mode="before")
    @classmethod
    def _unwrap_number_long(cls, value: Any) -> int:
        if isinstance(value, dict):
            value = value.get("$numberLong")
            if isinstance(value, str) and value.lstrip("-").isdigit():
                return int(value)
            raise ValueError("$numberLong must be a decimal string")
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"$date must be an integer, got {type(value).__name__}")
        return value


class DocumentRow(BaseModel):
    """A ``users`` document as captured from the document store."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: ObjectIdRef = Field(alias="_id")
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    email: str = ""
    password_hash: str | None = None
    country: str = ""
    created_at: DateRef
    updated_at: DateRef
    deleted_at: DateRef | None = None

    @field_validator("first_name", "last_name", "nickname", "email", "country", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value
