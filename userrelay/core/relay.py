"""ChangeRelay — the consume loop driving decode, filter and publish.

For every inbound message::

    received -> decoding -> ignored                      -> ack
                         -> (decode error)               -> nack
                         -> decoded -> filtering -> suppressed -> ack
                                                 -> ready -> publishing -> ack
                                                                        -> nack

Every failure is scoped to the message that caused it: it is nacked and
the broker redelivers it later.  The relay itself never retries, never
dead-letters, and never stops because of a single message.
"""

from __future__ import annotations

import logging
import threading

from userrelay.bridge.transport import InboundMessage, Transport
from userrelay.core.decoder import ChangeDecoder, DecodeError, build_decoder
from userrelay.core.delivery_machine import MessageDelivery
from userrelay.core.informer import Informer
from userrelay.core.publisher import PublishError, UserEventPublisher
from userrelay.models.delivery import DeliveryState
from userrelay.models.envelopes import EnvelopeVariant

logger = logging.getLogger(__name__)


class ChangeRelay:
    """Relays CDC change-log messages to the public user-events topic.

    Parameters
    ----------
    decoder:
        The envelope decoder for the configured wire variant.
    informer:
        Publication policy applied to every decoded change.
    publisher:
        Outbound publisher; blocks until the broker confirms.

    ``handle_message`` holds no state between calls and is safe to run
    concurrently for distinct messages.
    """

    def __init__(
        self,
        decoder: ChangeDecoder,
        informer: Informer,
        publisher: UserEventPublisher,
    ) -> None:
        self._decoder = decoder
        self._informer = informer
        self._publisher = publisher

    @property
    def decoder(self) -> ChangeDecoder:
        return self._decoder

    # ------------------------------------------------------------------
    # Per-message handling
    # ------------------------------------------------------------------

    def handle_message(self, message: InboundMessage) -> DeliveryState:
        """Process one inbound message, settle it, and return its final state."""
        delivery = MessageDelivery(message.message_id)
        try:
            state = self._process(message, delivery)
        except Exception:
            logger.exception(
                "Unexpected failure handling message %s in state %s",
                message.message_id,
                delivery.state.value,
            )
            state = DeliveryState.NACKED

        try:
            if state == DeliveryState.ACKED:
                message.ack()
            else:
                message.nack()
        except Exception:
            logger.exception(
                "Failed to %s message %s",
                "ack" if state == DeliveryState.ACKED else "nack",
                message.message_id,
            )
        if not delivery.is_settled:
            delivery.advance(state)
        return delivery.state

    def _process(self, message: InboundMessage, delivery: MessageDelivery) -> DeliveryState:
        delivery.advance(DeliveryState.DECODING)
        try:
            change = self._decoder.decode(message.data, message.message_id)
        except DecodeError as exc:
            logger.error("Error decoding message %s into user event: %s", message.message_id, exc)
            return DeliveryState.NACKED

        if change is None:
            delivery.advance(DeliveryState.IGNORED)
            return DeliveryState.ACKED

        delivery.advance(DeliveryState.DECODED)
        delivery.advance(DeliveryState.FILTERING)
        sanitized = self._informer.sanitize(change)
        if sanitized is None:
            delivery.advance(DeliveryState.SUPPRESSED)
            return DeliveryState.ACKED

        delivery.advance(DeliveryState.READY)
        delivery.advance(DeliveryState.PUBLISHING)
        try:
            self._publisher.publish(sanitized)
        except PublishError as exc:
            logger.error("Error in user event handler for message %s: %s", message.message_id, exc)
            return DeliveryState.NACKED

        return DeliveryState.ACKED

    # ------------------------------------------------------------------
    # Consume loop
    # ------------------------------------------------------------------

    def consume(self, transport: Transport, stop: threading.Event) -> None:
        """Consume from *transport* until *stop* is set.

        Blocking; start it on its own thread and set *stop* to cancel.
        Raises ``TransportError`` if the subscription itself breaks.
        """
        logger.info("ChangeRelay: consuming with %r", self._decoder)
        transport.subscribe(self.handle_message, stop)
        logger.info("ChangeRelay: consume loop stopped.")


def build_relay(
    transport: Transport,
    variant: EnvelopeVariant | str = EnvelopeVariant.RELATIONAL,
    target_entity: str = "users",
) -> ChangeRelay:
    """Wire a ``ChangeRelay`` for *variant* publishing through *transport*."""
    return ChangeRelay(
        decoder=build_decoder(variant, target_entity),
        informer=Informer(),
        publisher=UserEventPublisher(transport),
    )
