"""userrelay: change-data-capture relay for user events.

Consumes raw change-log messages produced by a database replication
connector, normalizes relational or document-store envelopes into a single
``Change`` shape, strips credential material, collapses soft deletions and
no-op updates, and republishes sanitized user events to a public Pub/Sub
topic with at-least-once semantics.
"""

__version__ = "0.1.0"
__description__ = "Change-data-capture relay for user events"

from userrelay.core.relay import ChangeRelay, build_relay
from userrelay.cli.app import app as cli

__all__ = ["ChangeRelay", "build_relay", "cli", "__version__"]
