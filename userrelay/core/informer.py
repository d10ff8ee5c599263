"""Informer — turns internal CDC changes into public-facing user changes.

Rules, applied in order:

1. Credential redaction: ``password_hash`` is cleared on both sides.
2. Soft-delete normalization: an update whose after-state carries a
   deletion time is published as a deletion (``after`` dropped).  Whether a
   user was soft- or hard-deleted is internal to this service.
3. No-op suppression: if before and after are now identical (typically a
   password-only change), nothing is published.
"""

from __future__ import annotations

import logging

from userrelay.models.users import Change, UserSnapshot

logger = logging.getLogger(__name__)


def _redact(snapshot: UserSnapshot | None) -> UserSnapshot | None:
    if snapshot is None or snapshot.password_hash is None:
        return snapshot
    return snapshot.model_copy(update={"password_hash": None})


class Informer:
    """Applies the publication policy to decoded changes.

    Stateless: one instance is shared by every concurrent message handler.
    """

    def sanitize(self, change: Change) -> Change | None:
        """Return the change to publish, or ``None`` to suppress it."""
        before = _redact(change.before)
        after = _redact(change.after)

        if before is not None and after is not None and after.is_deleted:
            after = None

        if before == after:
            logger.info("Suppressing change %s: no public fields changed", change.id)
            return None

        return change.model_copy(update={"before": before, "after": after})
