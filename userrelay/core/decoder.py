"""Envelope decoders — turn raw change-log bytes into a normalized ``Change``.

One decoder strategy exists per wire variant.  The relay is configured with
exactly one of them; content is never sniffed to pick a variant.

Every decoder answers one of three ways:

* a ``Change`` — the message describes a change to the target entity;
* ``None`` — the message comes from another table/collection and should be
  acknowledged without publishing anything;
* ``DecodeError`` — the payload is malformed and should be redelivered.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from userrelay.core.timecodec import micros_to_datetime
from userrelay.models.envelopes import (
    DocumentEnvelope,
    DocumentRow,
    EnvelopeVariant,
    RelationalEnvelope,
    RelationalRow,
    SourceDescriptor,
)
from userrelay.models.users import Change, UserSnapshot

logger = logging.getLogger(__name__)

_OBJECT_ID_RE = re.compile(r"[0-9a-fA-F]{24}")


class DecodeError(ValueError):
    """Raised when a change-log payload cannot be decoded."""


def parse_user_id(raw: str) -> str:
    """Normalize a source identity into the domain user id.

    Relational rows usually carry UUIDs and documents carry 24-hex
    ObjectIds.  Both normalize to lowercase strings so the same user
    decodes to the same id whichever store it came from.  Any other
    non-empty string is an opaque identity and passes through unchanged.
    """
    if not isinstance(raw, str) or not raw:
        raise DecodeError(f"Missing or non-string user id: {raw!r}")
    if _OBJECT_ID_RE.fullmatch(raw):
        return raw.lower()
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return raw


def _timestamp(micros: int, field: str) -> datetime:
    try:
        return micros_to_datetime(micros)
    except (TypeError, OverflowError) as exc:
        raise DecodeError(f"Invalid {field} timestamp {micros!r}: {exc}") from exc


@runtime_checkable
class ChangeDecoder(Protocol):
    """Protocol every envelope decoder implements."""

    @property
    def variant(self) -> EnvelopeVariant:
        ...

    @property
    def target_entity(self) -> str:
        ...

    def decode(self, data: bytes | str, message_id: str) -> Change | None:
        """Decode *data* into a ``Change`` identified by *message_id*.

        Returns ``None`` when the message belongs to another entity.
        Raises ``DecodeError`` when the payload is malformed.
        """
        ...


class _EnvelopeDecoder:
    """Shared decode flow; subclasses supply the variant-specific parts."""

    variant: EnvelopeVariant
    envelope_model: type[BaseModel]

    def __init__(self, target_entity: str = "users") -> None:
        self._target_entity = target_entity

    @property
    def target_entity(self) -> str:
        return self._target_entity

    def decode(self, data: bytes | str, message_id: str) -> Change | None:
        raw = _load_json_object(data, what="envelope")

        try:
            envelope = self.envelope_model.model_validate(raw)
        except ValidationError as exc:
            raise DecodeError(f"Envelope validation failed: {exc}") from exc

        payload = envelope.payload
        if not self._matches(payload.source):
            logger.debug(
                "Ignoring message %s from %r (target entity %r)",
                message_id,
                payload.source.entity_name,
                self._target_entity,
            )
            return None

        before = self._snapshot(payload.before, side="before")
        after = self._snapshot(payload.after, side="after")

        try:
            change = Change(id=message_id, before=before, after=after)
        except ValidationError as exc:
            raise DecodeError(f"Invalid change in message {message_id}: {exc}") from exc

        logger.debug(
            "Decoded message %s (op=%r, before=%s, after=%s)",
            message_id,
            payload.op,
            before is not None,
            after is not None,
        )
        return change

    def _matches(self, source: SourceDescriptor) -> bool:
        raise NotImplementedError

    def _snapshot(self, raw: Any, *, side: str) -> UserSnapshot | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(variant={self.variant.value!r}, "
            f"target_entity={self._target_entity!r})"
        )


class RelationalDecoder(_EnvelopeDecoder):
    """Decodes relational-source envelopes (embedded rows, ``source.table``)."""

    variant = EnvelopeVariant.RELATIONAL
    envelope_model = RelationalEnvelope

    def _matches(self, source: SourceDescriptor) -> bool:
        return source.table == self._target_entity

    def _snapshot(self, raw: dict[str, Any] | None, *, side: str) -> UserSnapshot | None:
        if raw is None:
            return None
        try:
            row = RelationalRow.model_validate(raw)
        except ValidationError as exc:
            raise DecodeError(f"Invalid {side} row: {exc}") from exc

        return UserSnapshot(
            id=parse_user_id(row.id),
            first_name=row.first_name,
            last_name=row.last_name,
            nickname=row.nickname,
            email=row.email,
            password_hash=row.password_hash,
            country=row.country,
            created_at=_timestamp(row.created_at, "created_at"),
            updated_at=_timestamp(row.updated_at, "updated_at"),
            deleted_at=(
                _timestamp(row.deleted_at, "deleted_at")
                if row.deleted_at is not None
                else None
            ),
        )


class DocumentDecoder(_EnvelopeDecoder):
    """Decodes document-store envelopes (stringified rows, ``source.collection``)."""

    variant = EnvelopeVariant.DOCUMENT
    envelope_model = DocumentEnvelope

    def _matches(self, source: SourceDescriptor) -> bool:
        return source.collection == self._target_entity

    def _snapshot(self, raw: str | None, *, side: str) -> UserSnapshot | None:
        if raw is None:
            return None
        document = _load_json_object(raw, what=f"{side} document")
        try:
            row = DocumentRow.model_validate(document)
        except ValidationError as exc:
            raise DecodeError(f"Invalid {side} document: {exc}") from exc

        return UserSnapshot(
            id=parse_user_id(row.id.oid),
            first_name=row.first_name,
            last_name=row.last_name,
            nickname=row.nickname,
            email=row.email,
            password_hash=row.password_hash,
            country=row.country,
            created_at=_timestamp(row.created_at.date, "created_at"),
            updated_at=_timestamp(row.updated_at.date, "updated_at"),
            deleted_at=(
                _timestamp(row.deleted_at.date, "deleted_at")
                if row.deleted_at is not None
                else None
            ),
        )


def _load_json_object(data: bytes | str, *, what: str) -> dict[str, Any]:
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Invalid UTF-8 in {what}: {exc}") from exc

    try:
        obj = json.loads(data)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON in {what}: {exc}") from exc

    if not isinstance(obj, dict):
        raise DecodeError(f"The {what} must be a JSON object, got {type(obj).__name__}")
    return obj


# Registry for decoder construction by configured variant
DECODER_TYPE_MAP: dict[EnvelopeVariant, type[_EnvelopeDecoder]] = {
    EnvelopeVariant.RELATIONAL: RelationalDecoder,
    EnvelopeVariant.DOCUMENT: DocumentDecoder,
}


def build_decoder(
    variant: EnvelopeVariant | str, target_entity: str = "users"
) -> ChangeDecoder:
    """Return the decoder strategy for *variant*."""
    try:
        variant = EnvelopeVariant(variant)
    except ValueError as exc:
        raise ValueError(f"Unknown envelope variant: {variant!r}") from exc
    return DECODER_TYPE_MAP[variant](target_entity)
