"""Best-effort audit recording for the access flow."""

from __future__ import annotations

import logging
from typing import Any

from gate_repo.audit import INVITATIONS_STREAM, AuditWriteError, append_event

logger = logging.getLogger(__name__)


def record(event_type: str, **data: Any) -> str | None:
    """Append an ``invitations`` event; a failed write is logged, never raised."""
    try:
        return append_event(INVITATIONS_STREAM, event_type, data)
    except AuditWriteError:
        logger.warning("Audit write failed for %s; attempt continues.", event_type, exc_info=True)
        return None
