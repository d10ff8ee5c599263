"""Per-message delivery state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Exactly one terminal outcome (ACKED or NACKED) per delivery
- Every transition logged against the broker message id

One ``MessageDelivery`` exists per in-flight message and is owned by the
handler invocation processing it; instances are never shared between
threads.
"""

from __future__ import annotations

import logging

from userrelay.models.delivery import TERMINAL_STATES, VALID_TRANSITIONS, DeliveryState

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested delivery state transition is not valid."""


class MessageDelivery:
    """Tracks one inbound message through the relay pipeline.

    Parameters
    ----------
    message_id:
        Broker-assigned id of the message being processed.
    """

    def __init__(self, message_id: str) -> None:
        self._message_id = message_id
        self._state = DeliveryState.RECEIVED
        self._history: list[DeliveryState] = [DeliveryState.RECEIVED]

    @property
    def message_id(self) -> str:
        return self._message_id

    @property
    def state(self) -> DeliveryState:
        return self._state

    @property
    def history(self) -> list[DeliveryState]:
        """Every state visited so far, oldest first."""
        return list(self._history)

    @property
    def is_settled(self) -> bool:
        return self._state in TERMINAL_STATES

    def advance(self, target: DeliveryState) -> DeliveryState:
        """Move to *target*, validating against ``VALID_TRANSITIONS``."""
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition message {self._message_id} from "
                f"{self._state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        logger.debug(
            "Message %s: %s->%s", self._message_id, self._state.value, target.value
        )
        self._state = target
        self._history.append(target)
        return target

    def __repr__(self) -> str:
        return f"MessageDelivery(message_id={self._message_id!r}, state={self._state.value})"
