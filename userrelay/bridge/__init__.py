"""Bridge layer between the relay core and the message broker.

Modules
-------
transport
    ``PubSubTransport`` wraps ``google.cloud.pubsub_v1`` publisher and
    subscriber clients behind ``publish()`` / ``subscribe()``.
    ``LocalTransport`` offers the same surface in-process.
provisioning
    Creates Pub/Sub topics and subscriptions from a compact topology string.
"""
