"""Microsecond-epoch timestamp codec.

The replication connector encodes every timestamp as an integer count of
microseconds since the Unix epoch.  Decoding is epoch + micros (the same
instant as micros * 1000 epoch nanoseconds) in UTC; encoding is the exact
inverse.  Integer ``timedelta`` arithmetic keeps the round trip lossless
at microsecond resolution, which floats would not.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MICROSECOND = timedelta(microseconds=1)


def micros_to_datetime(micros: int) -> datetime:
    """Convert integer epoch microseconds to an aware UTC ``datetime``.

    Raises
    ------
    TypeError
        If *micros* is not an ``int`` (``bool`` is rejected too).
    OverflowError
        If the instant falls outside the range ``datetime`` can represent.
    """
    if isinstance(micros, bool) or not isinstance(micros, int):
        raise TypeError(f"epoch microseconds must be int, got {type(micros).__name__}")
    return EPOCH + timedelta(microseconds=micros)


def datetime_to_micros(value: datetime) -> int:
    """Convert an aware ``datetime`` back to integer epoch microseconds.

    Raises
    ------
    ValueError
        If *value* is naive; the wire format has no notion of local time.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("cannot encode a naive datetime as epoch microseconds")
    return (value - EPOCH) // _ONE_MICROSECOND
