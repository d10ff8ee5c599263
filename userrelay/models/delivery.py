"""Per-message delivery states for the consume loop."""

from __future__ import annotations

from enum import Enum


class DeliveryState(str, Enum):
    """Where an inbound message is in the relay pipeline."""

    RECEIVED = "received"
    DECODING = "decoding"
    IGNORED = "ignored"
    DECODED = "decoded"
    FILTERING = "filtering"
    SUPPRESSED = "suppressed"
    READY = "ready"
    PUBLISHING = "publishing"
    ACKED = "acked"
    NACKED = "nacked"


# Valid state transitions — enforced by MessageDelivery.
# ACKED and NACKED are terminal.  Every other state may fall through to
# NACKED when the handler fails unexpectedly.
VALID_TRANSITIONS: dict[DeliveryState, set[DeliveryState]] = {
    DeliveryState.RECEIVED: {DeliveryState.DECODING, DeliveryState.NACKED},
    DeliveryState.DECODING: {
        DeliveryState.IGNORED,
        DeliveryState.DECODED,
        DeliveryState.NACKED,
    },
    DeliveryState.IGNORED: {DeliveryState.ACKED, DeliveryState.NACKED},
    DeliveryState.DECODED: {DeliveryState.FILTERING, DeliveryState.NACKED},
    DeliveryState.FILTERING: {
        DeliveryState.SUPPRESSED,
        DeliveryState.READY,
        DeliveryState.NACKED,
    },
    DeliveryState.SUPPRESSED: {DeliveryState.ACKED, DeliveryState.NACKED},
    DeliveryState.READY: {DeliveryState.PUBLISHING, DeliveryState.NACKED},
    DeliveryState.PUBLISHING: {DeliveryState.ACKED, DeliveryState.NACKED},
    DeliveryState.ACKED: set(),  # terminal
    DeliveryState.NACKED: set(),  # terminal
}

TERMINAL_STATES: frozenset[DeliveryState] = frozenset(
    state for state, targets in VALID_TRANSITIONS.items() if not targets
)
