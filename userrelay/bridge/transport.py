"""Transport bridge — broker I/O for the relay.

Bridge boundary
---------------
``google.cloud.pubsub_v1`` provides streaming-pull subscriptions and
future-based publishing.  This module wraps it behind a small
``Transport`` surface that the relay core depends on:

* ``publish(data, attributes)`` blocks until the broker has accepted the
  message and returns the broker-assigned message id;
* ``subscribe(callback, stop)`` blocks, invoking *callback* (possibly
  concurrently) for every inbound message until *stop* is set.

Inbound messages expose ``data``, ``message_id``, ``attributes``, ``ack()``
and ``nack()``, which is exactly what Pub/Sub hands to its callbacks.

``LocalTransport`` implements the same surface in-process (bounded queue,
thread-pool callbacks, explicit redelivery of nacked messages) for
development and tests.
"""

from __future__ import annotations

import collections
import logging
import threading
import uuid
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from google.cloud import pubsub_v1

if TYPE_CHECKING:
    from userrelay.config import RelayConfig

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when a transport-level operation fails."""


@runtime_checkable
class InboundMessage(Protocol):
    """A message delivered by the broker, pending acknowledgment."""

    @property
    def data(self) -> bytes:
        ...

    @property
    def message_id(self) -> str:
        ...

    @property
    def attributes(self) -> Mapping[str, str]:
        ...

    def ack(self) -> None:
        """Permanently remove the message from redelivery."""
        ...

    def nack(self) -> None:
        """Make the message eligible for redelivery."""
        ...


MessageCallback = Callable[[Any], Any]


class Transport(Protocol):
    """Publish/subscribe surface the relay is written against."""

    def publish(self, data: bytes, attributes: Mapping[str, str] | None = None) -> str:
        ...

    def subscribe(self, callback: MessageCallback, stop: threading.Event) -> None:
        ...


# ---------------------------------------------------------------------------
# Google Cloud Pub/Sub
# ---------------------------------------------------------------------------


class PubSubTransport:
    """Google Cloud Pub/Sub transport.

    Parameters
    ----------
    project_id:
        Google Cloud project hosting the topic and subscription.
    topic_id:
        Outbound topic for published events.
    subscription_id:
        Inbound subscription carrying change-log messages.
    publish_timeout_seconds:
        Upper bound on how long ``publish`` waits for the broker's
        confirmation.
    max_outstanding_messages:
        Flow-control limit; bounds how many callbacks run at once.
    poll_interval_seconds:
        How often ``subscribe`` checks the stop event.
    publisher / subscriber:
        Pre-built clients.  Created from application default credentials
        (or ``PUBSUB_EMULATOR_HOST``) when omitted.
    """

    def __init__(
        self,
        project_id: str,
        topic_id: str,
        subscription_id: str,
        *,
        publish_timeout_seconds: float = 30.0,
        max_outstanding_messages: int = 100,
        poll_interval_seconds: float = 0.5,
        publisher: Any | None = None,
        subscriber: Any | None = None,
    ) -> None:
        self._publisher = publisher if publisher is not None else pubsub_v1.PublisherClient()
        self._subscriber = (
            subscriber if subscriber is not None else pubsub_v1.SubscriberClient()
        )
        self._topic_path = self._publisher.topic_path(project_id, topic_id)
        self._subscription_path = self._subscriber.subscription_path(
            project_id, subscription_id
        )
        self._publish_timeout = publish_timeout_seconds
        self._max_outstanding = max_outstanding_messages
        self._poll_interval = poll_interval_seconds

    @classmethod
    def from_config(cls, config: RelayConfig, **clients: Any) -> PubSubTransport:
        """Build a transport from a ``RelayConfig``."""
        return cls(
            config.project_id,
            config.topic_id,
            config.subscription_id,
            publish_timeout_seconds=config.publish_timeout_seconds,
            max_outstanding_messages=config.max_outstanding_messages,
            poll_interval_seconds=config.shutdown_poll_seconds,
            **clients,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def topic_path(self) -> str:
        return self._topic_path

    @property
    def subscription_path(self) -> str:
        return self._subscription_path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def publish(self, data: bytes, attributes: Mapping[str, str] | None = None) -> str:
        """Publish *data* and block until Pub/Sub confirms it.

        Returns
        -------
        str
            The server-assigned message id.

        Raises
        ------
        TransportError
            If the publish is rejected, fails in transit, or is not
            confirmed within ``publish_timeout_seconds``.
        """
        try:
            future = self._publisher.publish(
                self._topic_path, data, **dict(attributes or {})
            )
            message_id = future.result(timeout=self._publish_timeout)
        except Exception as exc:
            raise TransportError(
                f"Publish to {self._topic_path} failed: {exc}"
            ) from exc

        logger.debug(
            "PubSubTransport.publish: %s confirmed as %s.", self._topic_path, message_id
        )
        return message_id

    def subscribe(self, callback: MessageCallback, stop: threading.Event) -> None:
        """Stream messages into *callback* until *stop* is set.

        Pub/Sub runs *callback* on its own thread pool, so it may be called
        concurrently for distinct messages.  Messages still in flight when
        *stop* is set are not awaited; unacknowledged ones are redelivered
        by the broker.

        Raises
        ------
        TransportError
            If the streaming pull terminates with an error before *stop*
            was set.
        """
        flow_control = pubsub_v1.types.FlowControl(
            max_messages=self._max_outstanding
        )
        future = self._subscriber.subscribe(
            self._subscription_path, callback=callback, flow_control=flow_control
        )
        logger.info(
            "PubSubTransport: listening on %s (max_outstanding=%d).",
            self._subscription_path,
            self._max_outstanding,
        )

        try:
            while not stop.wait(self._poll_interval):
                if future.done():
                    break
        finally:
            future.cancel()

        try:
            future.result()
        except Exception as exc:
            if stop.is_set():
                logger.debug("PubSubTransport: stream closed during shutdown: %s", exc)
            else:
                raise TransportError(
                    f"Subscription {self._subscription_path} terminated: {exc}"
                ) from exc
        else:
            if not stop.is_set():
                raise TransportError(
                    f"Subscription {self._subscription_path} closed unexpectedly"
                )

        logger.info("PubSubTransport: stopped listening on %s.", self._subscription_path)

    def close(self) -> None:
        """Release the underlying clients."""
        try:
            self._subscriber.close()
        finally:
            stop_publisher = getattr(self._publisher, "stop", None)
            if stop_publisher is not None:
                stop_publisher()
        logger.info("PubSubTransport: closed.")

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> PubSubTransport:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"PubSubTransport(topic={self._topic_path!r}, "
            f"subscription={self._subscription_path!r})"
        )


# ---------------------------------------------------------------------------
# In-process transport
# ---------------------------------------------------------------------------


class LocalMessage:
    """In-process stand-in for a broker message."""

    def __init__(
        self,
        data: bytes,
        message_id: str,
        attributes: Mapping[str, str] | None = None,
        *,
        on_nack: Callable[[LocalMessage], None] | None = None,
    ) -> None:
        self.data = data
        self.message_id = message_id
        self.attributes = dict(attributes or {})
        self.delivery_attempt = 0
        self.outcome: str | None = None  # "ack" | "nack" once settled
        self._on_nack = on_nack

    def ack(self) -> None:
        self.outcome = "ack"

    def nack(self) -> None:
        self.outcome = "nack"
        if self._on_nack is not None:
            self._on_nack(self)

    def __repr__(self) -> str:
        return f"LocalMessage(message_id={self.message_id!r}, outcome={self.outcome!r})"


class PublishedMessage:
    """A message accepted by ``LocalTransport.publish``."""

    def __init__(self, message_id: str, data: bytes, attributes: dict[str, str]) -> None:
        self.message_id = message_id
        self.data = data
        self.attributes = attributes

    def __repr__(self) -> str:
        return f"PublishedMessage(message_id={self.message_id!r})"


class LocalTransport:
    """In-process broker with Pub/Sub-like semantics.

    Parameters
    ----------
    max_local_queue:
        Maximum number of undelivered inbound messages.
    max_workers:
        Size of the callback thread pool; values above 1 run callbacks
        concurrently, as Pub/Sub does.
    poll_interval_seconds:
        How long ``subscribe`` sleeps when the queue is empty.
    """

    def __init__(
        self,
        *,
        max_local_queue: int = 1024,
        max_workers: int = 4,
        poll_interval_seconds: float = 0.01,
    ) -> None:
        self._max_local_queue = max_local_queue
        self._max_workers = max_workers
        self._poll_interval = poll_interval_seconds
        self._inbound: collections.deque[LocalMessage] = collections.deque()
        self._delivered: list[LocalMessage] = []
        self._redelivery: collections.deque[LocalMessage] = collections.deque()
        self.published: list[PublishedMessage] = []

    # ------------------------------------------------------------------
    # Inbound side
    # ------------------------------------------------------------------

    def deliver(
        self,
        data: bytes | str,
        message_id: str | None = None,
        attributes: Mapping[str, str] | None = None,
    ) -> LocalMessage:
        """Enqueue a raw inbound message, as the upstream connector would."""
        if len(self._inbound) >= self._max_local_queue:
            raise TransportError(
                f"Local transport queue is full (depth={len(self._inbound)})."
            )
        if isinstance(data, str):
            data = data.encode("utf-8")
        message = LocalMessage(
            data,
            message_id or uuid.uuid4().hex,
            attributes,
            on_nack=self._redelivery.append,
        )
        self._inbound.append(message)
        return message

    def redeliver(self) -> int:
        """Requeue every nacked message; returns how many were requeued."""
        count = 0
        while self._redelivery:
            message = self._redelivery.popleft()
            message.outcome = None
            self._inbound.append(message)
            count += 1
        return count

    @property
    def pending(self) -> int:
        """Messages waiting to be handed to a subscriber."""
        return len(self._inbound)

    @property
    def delivered(self) -> list[LocalMessage]:
        return list(self._delivered)

    @property
    def acked(self) -> list[LocalMessage]:
        return [m for m in self._delivered if m.outcome == "ack"]

    @property
    def nacked(self) -> list[LocalMessage]:
        return [m for m in self._delivered if m.outcome == "nack"]

    @property
    def unsettled(self) -> list[LocalMessage]:
        return [m for m in self._delivered if m.outcome is None]

    # ------------------------------------------------------------------
    # Transport surface
    # ------------------------------------------------------------------

    def publish(self, data: bytes, attributes: Mapping[str, str] | None = None) -> str:
        message_id = uuid.uuid4().hex
        self.published.append(PublishedMessage(message_id, data, dict(attributes or {})))
        logger.debug("LocalTransport.publish: accepted %s.", message_id)
        return message_id

    def subscribe(self, callback: MessageCallback, stop: threading.Event) -> None:
        """Hand queued messages to *callback* on a thread pool until *stop* is set."""
        logger.info("LocalTransport: listening (workers=%d).", self._max_workers)
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="local-transport"
        ) as pool:
            while not stop.is_set():
                try:
                    message = self._inbound.popleft()
                except IndexError:
                    stop.wait(self._poll_interval)
                    continue
                message.delivery_attempt += 1
                if message.delivery_attempt == 1:
                    self._delivered.append(message)
                pool.submit(callback, message)
        logger.info("LocalTransport: stopped listening.")

    def __repr__(self) -> str:
        return (
            f"LocalTransport(pending={self.pending}, "
            f"published={len(self.published)})"
        )
