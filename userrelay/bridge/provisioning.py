"""Pub/Sub topology provisioning.

Creates the topics and subscriptions the relay needs, typically against
the Pub/Sub emulator in development.  The topology is written as a single
comma-separated string::

    PROJECT,TOPIC1:SUB11:SUB12,TOPIC2:SUB21

Existing topics and subscriptions are left untouched.
"""

from __future__ import annotations

import logging
from typing import Any

from google.api_core.exceptions import AlreadyExists
from google.cloud import pubsub_v1
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class Topology(BaseModel):
    """Topics of one project and the subscriptions attached to each."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    topics: dict[str, list[str]] = {}


def parse_topology(spec: str) -> Topology:
    """Parse ``PROJECT,TOPIC:SUB:SUB,...`` into a ``Topology``.

    Whitespace is ignored everywhere.  A topic may have no subscriptions.
    """
    items = [item.replace(" ", "") for item in spec.split(",")]
    project_id = items[0] if items else ""
    if not project_id:
        raise ValueError("Topology must start with a project id")

    topics: dict[str, list[str]] = {}
    for item in items[1:]:
        if not item:
            continue
        topic_id, *subscriptions = item.split(":")
        if not topic_id:
            raise ValueError(f"Missing topic name in {item!r}")
        topics.setdefault(topic_id, []).extend(s for s in subscriptions if s)

    return Topology(project_id=project_id, topics=topics)


def provision(
    topology: Topology,
    publisher: Any | None = None,
    subscriber: Any | None = None,
) -> list[tuple[str, str]]:
    """Create every topic and subscription in *topology*.

    Returns the ``(topic_path, subscription_path)`` pairs that now exist.
    Topics without subscriptions are created but not listed.
    """
    publisher = publisher if publisher is not None else pubsub_v1.PublisherClient()
    subscriber = subscriber if subscriber is not None else pubsub_v1.SubscriberClient()

    provisioned: list[tuple[str, str]] = []
    for topic_id, subscription_ids in topology.topics.items():
        topic_path = publisher.topic_path(topology.project_id, topic_id)
        try:
            publisher.create_topic(request={"name": topic_path})
            logger.info("Created topic %s", topic_path)
        except AlreadyExists:
            logger.info("Topic %s already exists", topic_path)

        for subscription_id in subscription_ids:
            subscription_path = subscriber.subscription_path(
                topology.project_id, subscription_id
            )
            try:
                subscriber.create_subscription(
                    request={"name": subscription_path, "topic": topic_path}
                )
                logger.info("Created subscription %s on %s", subscription_path, topic_path)
            except AlreadyExists:
                logger.info("Subscription %s already exists", subscription_path)
            provisioned.append((topic_path, subscription_path))

    return provisioned
